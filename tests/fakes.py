"""
Deterministic stand-ins for the command runner and kernel version source.
"""

import io
import threading
import time
from typing import TextIO

from iptables_detect.commands import CommandRunner, VersionSource
from iptables_detect.exceptions import CommandError


class FakeRunner(CommandRunner):
    """Returns canned output per command name and records every call."""

    def __init__(self, outputs: dict[str, bytes | Exception] | None = None, delay: float = 0.0) -> None:
        self.outputs = dict(outputs or {})
        self.delay = delay
        self.calls: list[tuple[str, ...]] = []
        self._lock = threading.Lock()
        self.running = threading.Event()

    def run(self, name: str, *args: str) -> bytes:
        with self._lock:
            self.calls.append((name, *args))
        self.running.set()
        if self.delay:
            time.sleep(self.delay)
        out = self.outputs.get(name, CommandError(f"{name}: command not found", cmd=[name, *args]))
        if isinstance(out, Exception):
            raise out
        return out

    def called(self, name: str) -> bool:
        return any(call[0] == name for call in self.calls)


class FakeVersionSource(VersionSource):
    """Serves kernel version text, or raises the configured error."""

    def __init__(self, text: str | Exception) -> None:
        self.text = text
        self.opens = 0

    def open(self) -> TextIO:
        self.opens += 1
        if isinstance(self.text, Exception):
            raise self.text
        return io.StringIO(self.text)


def kernel_text(version: str) -> str:
    return f"Linux version {version}-generic (buildd@host) (gcc 11.4.0) #1 SMP\n"


def iptables_banner(version: str) -> bytes:
    return f"iptables v{version} (legacy)\n".encode()
