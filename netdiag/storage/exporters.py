"""
Result export helpers choosing CSV or JSON by file suffix.
"""

from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from loguru import logger

from netdiag.modules.base import HopRecord, ProbeResult
from netdiag.storage.csv_handler import CSVHandler
from netdiag.storage.json_handler import JSONHandler


def _is_json(path: Path) -> bool:
    return path.suffix.lower() == ".json"


def export_scan_results(path: Path, results: Iterable[ProbeResult]) -> int:
    """Write scan results to ``path`` (``.json`` for JSON, anything else CSV)."""
    path = Path(path)
    if _is_json(path):
        return JSONHandler(path).write(results)
    return CSVHandler(path).write_scan_results(results)


def load_scan_results(path: Path) -> List[ProbeResult]:
    path = Path(path)
    if _is_json(path):
        return JSONHandler(path).read(ProbeResult)
    return CSVHandler(path).read_scan_results()


def export_hops(path: Path, hops: Iterable[HopRecord]) -> int:
    """Write a hop trace to ``path`` (``.json`` for JSON, anything else CSV)."""
    path = Path(path)
    if _is_json(path):
        return JSONHandler(path).write(hops)
    return CSVHandler(path).write_hops(hops)


def load_hops(path: Path) -> List[HopRecord]:
    path = Path(path)
    if _is_json(path):
        return JSONHandler(path).read(HopRecord)
    return CSVHandler(path).read_hops()


def _safely(export: Callable[[Path, Iterable], int], path: Path, records: Iterable) -> Tuple[bool, Optional[str]]:
    try:
        export(path, records)
    except (OSError, ValueError, TypeError) as e:
        logger.error(f"Export to {path} failed: {e}")
        return False, str(e)
    return True, None


def try_export_scan_results(path: Path, results: Iterable[ProbeResult]) -> Tuple[bool, Optional[str]]:
    """Like export_scan_results but returns (ok, error_message) instead of raising."""
    return _safely(export_scan_results, path, results)


def try_export_hops(path: Path, hops: Iterable[HopRecord]) -> Tuple[bool, Optional[str]]:
    """Like export_hops but returns (ok, error_message) instead of raising."""
    return _safely(export_hops, path, hops)
