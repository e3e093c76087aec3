"""
System and tool detection.
"""

import platform
import sys
import shutil
import socket
from typing import List

from pydantic import BaseModel, ConfigDict


class SystemInfo(BaseModel):
    """System information model."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    os_type: str  # 'Linux', 'Darwin', 'Windows'
    platform: str
    python_version: str
    hostname: str


class MissingTool(BaseModel):
    """Information about a missing tool."""

    name: str
    suggestion: str


class SystemDetector:
    """Detect system information and availability of the OS probing tools."""

    def detect_system(self) -> SystemInfo:
        """Detect current system information."""
        return SystemInfo(
            os_type=platform.system(),
            platform=platform.platform(),
            python_version=sys.version.split()[0],
            hostname=socket.gethostname(),
        )

    def check_required_tools(self, tools: List[str]) -> List[MissingTool]:
        """Return the tools from ``tools`` that are not on PATH."""
        missing = []
        os_type = platform.system()

        for tool in tools:
            if shutil.which(tool) is None:
                missing.append(MissingTool(
                    name=tool,
                    suggestion=self._get_installation_suggestion(tool, os_type),
                ))

        return missing

    def _get_installation_suggestion(self, tool: str, os_type: str) -> str:
        """Get installation suggestion for a missing tool."""
        suggestions = {
            "Linux": {
                "ping": "sudo apt-get install iputils-ping (or yum install iputils)",
            },
            "Darwin": {
                "ping": "Pre-installed",
            },
            "Windows": {
                "ping": "Pre-installed",
            },
        }

        if os_type in suggestions and tool in suggestions[os_type]:
            return suggestions[os_type][tool]

        return f"Please install {tool} manually"
