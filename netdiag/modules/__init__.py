"""
Diagnostic modules.
"""

from netdiag.modules.base import (
    EchoReply,
    EchoStatus,
    HopRecord,
    HopStatus,
    PingReport,
    PingSample,
    PortStatus,
    ProbeResult,
    ProbeTarget,
    Protocol,
    UrlResult,
)
from netdiag.modules.ping import LatencySampler
from netdiag.modules.ports import PORT_PRESET_TOP20, PORT_PRESET_TOP100, ScanSession
from netdiag.modules.probe import probe
from netdiag.modules.services import ServiceTable
from netdiag.modules.traceroute import HopDiscovery, TraceMode
from netdiag.modules.urls import UrlChecker

__all__ = [
    "EchoReply",
    "EchoStatus",
    "HopDiscovery",
    "HopRecord",
    "HopStatus",
    "LatencySampler",
    "PingReport",
    "PingSample",
    "PortStatus",
    "ProbeResult",
    "ProbeTarget",
    "Protocol",
    "ScanSession",
    "ServiceTable",
    "TraceMode",
    "UrlChecker",
    "UrlResult",
    "probe",
    "PORT_PRESET_TOP20",
    "PORT_PRESET_TOP100",
]
