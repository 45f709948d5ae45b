"""
Tests for the production command runner and kernel version source.
"""

import subprocess
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from iptables_detect.commands import ProcVersionSource, SysCommandRunner
from iptables_detect.exceptions import CommandError
from iptables_detect.version import Version, parse_kernel_version


class TestSysCommandRunner:
    """Test running commands through subprocess."""

    @patch("iptables_detect.commands.subprocess.run")
    def test_returns_stdout(self, mock_run: Mock) -> None:
        mock_run.return_value = subprocess.CompletedProcess(["iptables", "--version"], 0, b"iptables v1.8.7 (nf_tables)\n", b"")
        assert SysCommandRunner().run("iptables", "--version") == b"iptables v1.8.7 (nf_tables)\n"
        mock_run.assert_called_once_with(["iptables", "--version"], capture_output=True, check=False)

    @patch("iptables_detect.commands.subprocess.run")
    def test_nonzero_exit_with_output(self, mock_run: Mock) -> None:
        """Test that output is still returned when the command fails."""
        mock_run.return_value = subprocess.CompletedProcess(["iptables-save"], 1, b"-A INPUT -j ACCEPT\n", b"partial failure")
        assert SysCommandRunner().run("iptables-save") == b"-A INPUT -j ACCEPT\n"

    @patch("iptables_detect.commands.subprocess.run")
    def test_nonzero_exit_without_output(self, mock_run: Mock) -> None:
        mock_run.return_value = subprocess.CompletedProcess(["iptables-save"], 2, b"", b"Permission denied")
        with pytest.raises(CommandError) as excinfo:
            SysCommandRunner().run("iptables-save")
        assert excinfo.value.exit_code == 2
        assert excinfo.value.stderr == "Permission denied"
        assert excinfo.value.cmd == ["iptables-save"]

    @patch("iptables_detect.commands.subprocess.run")
    def test_missing_binary(self, mock_run: Mock) -> None:
        """Test that a missing program becomes a CommandError."""
        mock_run.side_effect = FileNotFoundError(2, "No such file or directory", "iptables")
        with pytest.raises(CommandError, match="Failed to run iptables"):
            SysCommandRunner().run("iptables", "--version")


class TestProcVersionSource:
    """Test reading kernel version text from a file."""

    def test_reads_file(self, tmp_path: Path) -> None:
        version_file = tmp_path / "version"
        version_file.write_text("Linux version 6.1.0-13-amd64 (debian-kernel@lists.debian.org) #1 SMP\n")
        with ProcVersionSource(version_file).open() as stream:
            assert parse_kernel_version(stream) == Version(6, 1, 0)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            ProcVersionSource(tmp_path / "missing").open()

    def test_default_path(self) -> None:
        assert ProcVersionSource().path == Path("/proc/version")
