"""
netdiag - Network Diagnostics Engine
"""

from netdiag.__version__ import __version__
from netdiag.core.config import AppConfig
from netdiag.core.errors import InvalidArgumentError, InvalidRangeError, NetDiagError
from netdiag.modules.ports import ScanSession
from netdiag.modules.ping import LatencySampler
from netdiag.modules.services import ServiceTable
from netdiag.modules.traceroute import HopDiscovery
from netdiag.modules.urls import UrlChecker

__all__ = [
    "AppConfig",
    "HopDiscovery",
    "InvalidArgumentError",
    "InvalidRangeError",
    "LatencySampler",
    "NetDiagError",
    "ScanSession",
    "ServiceTable",
    "UrlChecker",
    "__version__",
]
