"""
Log sinks for a netdiag run.

The console shows INFO and above, or every record when verbose. The output
directory keeps two files: ``netdiag.log`` with every record, including the
per-probe debug lines, and ``netdiag_errors.log`` with warnings and errors
only (DNS failures, probes that raised), kept for longer.
"""

import sys
from pathlib import Path
from typing import Dict, Union

from loguru import logger

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"


def log_paths(output_dir: Union[str, Path]) -> Dict[str, Path]:
    """Where ``setup_logging`` writes for ``output_dir``."""
    output_dir = Path(output_dir)
    return {
        "main": output_dir / "netdiag.log",
        "errors": output_dir / "netdiag_errors.log",
    }


def setup_logging(output_dir: Union[str, Path], verbose: bool = False):
    """
    Replace loguru's sinks with the console and file sinks of a run.

    Args:
        output_dir: Directory for the log files; created when missing
        verbose: Show debug records (every probe) on the console

    Returns:
        The configured loguru logger
    """
    paths = log_paths(output_dir)
    paths["main"].parent.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO", format=CONSOLE_FORMAT)
    logger.add(
        paths["main"],
        level="DEBUG",
        format=FILE_FORMAT,
        rotation="10 MB",
        retention="30 days",
        encoding="utf-8",
    )
    # no local variable dumps in tracebacks; probe payloads can end up there
    logger.add(
        paths["errors"],
        level="WARNING",
        format=FILE_FORMAT,
        rotation="10 MB",
        retention="90 days",
        encoding="utf-8",
        diagnose=False,
    )

    logger.debug(f"Logging to {paths['main']} and {paths['errors']}")
    return logger
