"""
Core functionality components.
"""

from netdiag.core.config import AppConfig, load_config_file
from netdiag.core.detector import SystemDetector, SystemInfo
from netdiag.core.errors import (
    DnsResolutionError,
    InvalidArgumentError,
    InvalidRangeError,
    NetDiagError,
)
from netdiag.core.executor import CommandExecutor, CommandResult

__all__ = [
    "AppConfig",
    "load_config_file",
    "SystemDetector",
    "SystemInfo",
    "CommandExecutor",
    "CommandResult",
    "NetDiagError",
    "InvalidArgumentError",
    "InvalidRangeError",
    "DnsResolutionError",
]
