"""
External collaborators used for probing the host.

``CommandRunner`` runs a program and returns its stdout, ``VersionSource``
supplies kernel version text. Both are abstract so tests can substitute
canned outputs; ``SysCommandRunner`` and ``ProcVersionSource`` are the real
implementations. Binary name resolution is a plain callable returning a path
or ``None``; ``shutil.which`` is used when none is given.
"""

from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import TextIO

from .exceptions import CommandError
from .log import debug

Resolver = Callable[[str], str | None]


class CommandRunner(ABC):
    """Runs an external program and returns its standard output."""

    @abstractmethod
    def run(self, name: str, *args: str) -> bytes:
        """Run ``name`` with ``args``.

        Raises:
            CommandError: if the program could not be run or failed without output
        """


class VersionSource(ABC):
    """Supplies kernel version text."""

    @abstractmethod
    def open(self) -> TextIO:
        """Return a readable text stream; raises OSError on failure."""


class SysCommandRunner(CommandRunner):
    def run(self, name: str, *args: str) -> bytes:
        cmd = [name, *args]
        try:
            result = subprocess.run(cmd, capture_output=True, check=False)  # noqa: S603
        except OSError as e:
            raise CommandError(f"Failed to run {name}: {e}", cmd=cmd) from e

        stderr = result.stderr.decode("utf-8", errors="ignore")
        if result.returncode != 0:
            debug(f"{' '.join(cmd)} exited with code {result.returncode}: {stderr.strip()}")
            # Output from a failing command is still usable evidence.
            if not result.stdout:
                raise CommandError(
                    f"{name} exited with code {result.returncode}",
                    cmd=cmd,
                    exit_code=result.returncode,
                    stderr=stderr,
                )
        return result.stdout


class ProcVersionSource(VersionSource):
    def __init__(self, path: str | Path = "/proc/version") -> None:
        self.path = Path(path)

    def open(self) -> TextIO:
        return self.path.open(encoding="utf-8", errors="replace")
