"""
Storage and logging components.
"""

from netdiag.storage.csv_handler import CSVHandler
from netdiag.storage.exporters import (
    export_hops,
    export_scan_results,
    load_hops,
    load_scan_results,
    try_export_hops,
    try_export_scan_results,
)
from netdiag.storage.json_handler import JSONHandler
from netdiag.storage.logger import setup_logging

__all__ = [
    "setup_logging",
    "CSVHandler",
    "JSONHandler",
    "export_scan_results",
    "export_hops",
    "load_scan_results",
    "load_hops",
    "try_export_scan_results",
    "try_export_hops",
]
