"""Version information for netdiag."""

__version__ = "1.0.0"
__version_info__ = (1, 0, 0)

# Release information
__author__ = "NetDiag Team"
__author_email__ = "team@netdiag.dev"
__license__ = "MIT"
__url__ = "https://github.com/netdiag/netdiag"
__description__ = "Concurrent port scanning, traceroute, ping sampling and URL checks"
