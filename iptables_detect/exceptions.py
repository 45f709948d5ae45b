from __future__ import annotations


class IptablesDetectError(Exception):
    """Base class for all errors raised by this package."""


class CommandError(IptablesDetectError):
    """An external command could not be run or produced no usable output."""

    def __init__(self, message: str, cmd: list[str] | None = None, exit_code: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.cmd = cmd or []
        self.exit_code = exit_code
        self.stderr = stderr


class VersionParseError(IptablesDetectError, ValueError):
    """Text did not contain a recognisable X.Y.Z version."""


class BinaryNotFoundError(IptablesDetectError):
    """None of the candidate iptables binaries exist on this host."""

    def __init__(self, message: str, candidates: list[str]) -> None:
        super().__init__(message)
        self.candidates = candidates
