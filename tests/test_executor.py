"""Tests for the command executor and system detector."""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from netdiag.core.detector import SystemDetector
from netdiag.core.executor import CommandExecutor, CommandResult


def _fake_process(returncode=0, stdout=b"", stderr=b""):
    process = MagicMock()
    process.returncode = returncode
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.wait = AsyncMock(return_value=returncode)
    return process


@pytest.fixture
def executor():
    return CommandExecutor()


@pytest.mark.asyncio
async def test_run_command_success(executor):
    """run_command returns CommandResult with success=True when process returns 0."""
    process = _fake_process(0, b"ping output", b"")
    with patch("netdiag.core.executor.asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
        result = await executor.run_command(["ping", "-c", "1", "127.0.0.1"])
    assert isinstance(result, CommandResult)
    assert result.success is True
    assert result.return_code == 0
    assert "ping" in result.command
    assert result.stdout == "ping output"
    assert result.timed_out is False


@pytest.mark.asyncio
async def test_run_command_failure(executor):
    """run_command returns success=False when process returns non-zero."""
    process = _fake_process(1, b"", b"connect: Network is unreachable")
    with patch("netdiag.core.executor.asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
        result = await executor.run_command(["ping", "-c", "1", "192.0.2.1"])
    assert result.success is False
    assert result.return_code == 1
    assert "Network is unreachable" in result.stderr


@pytest.mark.asyncio
async def test_run_command_missing_binary(executor):
    """A command that cannot start yields return_code -1 instead of raising."""
    with patch(
        "netdiag.core.executor.asyncio.create_subprocess_exec",
        AsyncMock(side_effect=FileNotFoundError("No such file or directory: 'ping'")),
    ):
        result = await executor.run_command(["ping", "127.0.0.1"])
    assert result.success is False
    assert result.return_code == -1
    assert result.timed_out is False
    assert "No such file" in result.stderr


@pytest.mark.asyncio
async def test_run_command_timeout_kills_process(executor):
    """When the timeout elapses the process is killed and timed_out is set."""

    async def never_finishes():
        await asyncio.sleep(10)

    process = _fake_process()
    process.communicate = never_finishes
    with patch("netdiag.core.executor.asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
        result = await executor.run_command(["ping", "192.0.2.1"], timeout=0.05)
    assert result.timed_out is True
    assert result.success is False
    process.kill.assert_called_once()


class TestSystemDetector:
    """Test SystemDetector."""

    def test_detect_system(self):
        """detect_system fills every field."""
        info = SystemDetector().detect_system()
        assert info.os_type
        assert info.python_version
        assert info.hostname

    def test_missing_tool_reported_with_suggestion(self):
        """Tools not on PATH are reported with an installation hint."""
        with patch("netdiag.core.detector.shutil.which", return_value=None), \
                patch("netdiag.core.detector.platform.system", return_value="Linux"):
            missing = SystemDetector().check_required_tools(["ping"])
        assert len(missing) == 1
        assert missing[0].name == "ping"
        assert "iputils" in missing[0].suggestion

    def test_present_tool_not_reported(self):
        """Tools found on PATH are not reported."""
        with patch("netdiag.core.detector.shutil.which", return_value="/bin/ping"):
            assert SystemDetector().check_required_tools(["ping"]) == []
