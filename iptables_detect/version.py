"""
Minimal dotted-triplet version type.

Versions are compared lexicographically on (major, minor, patch). Helpers
extract a version from an ``iptables --version`` banner and from kernel
version text in the ``/proc/version`` format.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TextIO

from .exceptions import VersionParseError

_TRIPLET_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")
_BANNER_RE = re.compile(r"v(\d+\.\d+\.\d+)")
_KERNEL_RE = re.compile(r"Linux version (\d+\.\d+\.\d+)")


@dataclass(frozen=True, order=True)
class Version:
    """An immutable X.Y.Z version."""

    major: int
    minor: int
    patch: int

    def __post_init__(self) -> None:
        if min(self.major, self.minor, self.patch) < 0:
            raise ValueError(f"Version components must be non-negative: {self.major}.{self.minor}.{self.patch}")

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse a bare ``X.Y.Z`` token.

        Raises:
            VersionParseError: if the text is not exactly three dotted integers
        """
        match = _TRIPLET_RE.match(text.strip())
        if not match:
            raise VersionParseError(f"Not an X.Y.Z version: {text!r}")
        major, minor, patch = (int(part) for part in match.groups())
        return cls(major, minor, patch)

    @classmethod
    def from_banner(cls, text: str) -> Version:
        """Extract the first ``vX.Y.Z`` found anywhere in ``text``.

        Suitable for full ``--version`` output, e.g. ``iptables v1.8.7 (nf_tables)``.
        """
        match = _BANNER_RE.search(text)
        if not match:
            raise VersionParseError(f"No vX.Y.Z version found in {text!r}")
        return cls.parse(match.group(1))

    def compare(self, other: Version) -> int:
        """Return -1, 0 or 1 as this version is lower than, equal to or higher than ``other``."""
        if self < other:
            return -1
        if self > other:
            return 1
        return 0

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def parse_kernel_version(stream: TextIO) -> Version:
    """Read kernel version text and return the ``Linux version X.Y.Z`` triplet.

    Distribution suffixes such as ``-91-generic`` are ignored.
    """
    text = stream.read()
    match = _KERNEL_RE.search(text)
    if not match:
        raise VersionParseError(f"No kernel version found in {text.strip()!r}")
    return Version.parse(match.group(1))


# iptables versions.
# Oldest version ever supported; assumed when detection fails.
V1_4_7 = Version(1, 4, 7)
# Added --random-fully to SNAT.
V1_6_0 = Version(1, 6, 0)
# Added --random-fully to MASQUERADE and the xtables lock to iptables-restore.
V1_6_2 = Version(1, 6, 2)

# Kernel versions.
# Oldest version supported; assumed when detection fails.
V3_10_0 = Version(3, 10, 0)
# Added random-fully on the iptables interface.
V3_14_0 = Version(3, 14, 0)
# Contains the fix for checksum offload of packets with SNATed source ports.
V5_15_0 = Version(5, 15, 0)
