"""
Detection of the iptables backend (legacy or nft) in use on the host.

The same iptables command surface is provided by two incompatible
implementations. Whichever one already holds more rules is assumed to be the
one the host uses, the same heuristic as Kubernetes' iptables-wrapper.
"""

from __future__ import annotations

import shutil

from .commands import CommandRunner, Resolver
from .exceptions import BinaryNotFoundError, CommandError
from .log import debug, info, warn

BACKEND_LEGACY = "legacy"
BACKEND_NFT = "nft"
BACKEND_AUTO = "auto"

# Enough legacy rules to decide without probing nft at all.
LEGACY_RULE_THRESHOLD = 10


def count_rules_in_output(data: bytes) -> int:
    """Count lines of iptables-save output that start with ``-``."""
    return sum(1 for line in data.split(b"\n") if line.startswith(b"-"))


def find_best_binary(resolve: Resolver | None, ip_version: int, backend_mode: str, save_or_restore: str) -> str:
    """Find the iptables save/restore binary for a backend mode.

    Prefers the mode-specific binary (e.g. ``ip6tables-legacy-save``) and falls
    back to the generic one (``ip6tables-save``).

    Raises:
        BinaryNotFoundError: if neither candidate exists
    """
    if resolve is None:
        resolve = shutil.which

    ver_infix = "6" if ip_version == 6 else ""
    candidates = [
        f"ip{ver_infix}tables-{backend_mode}-{save_or_restore}",
        f"ip{ver_infix}tables-{save_or_restore}",
    ]

    for candidate in candidates:
        if resolve(candidate):
            info(f"Looked up iptables command {candidate} (IPv{ip_version}, mode={backend_mode}, {save_or_restore})")
            return candidate

    raise BinaryNotFoundError(
        f"Failed to find iptables command for IPv{ip_version}, mode={backend_mode}, {save_or_restore}; tried {candidates}",
        candidates=candidates,
    )


def _count_mode_rules(resolve: Resolver | None, runner: CommandRunner, backend_mode: str) -> int:
    total = 0
    for ip_version in (6, 4):
        binary = find_best_binary(resolve, ip_version, backend_mode, "save")
        try:
            out = runner.run(binary)
        except CommandError as e:
            debug(f"{binary} failed, treating as empty output: {e}")
            out = b""
        debug(f"{binary} output: {out.decode('utf-8', errors='replace')!r}")
        total += count_rules_in_output(out)
    return total


def detect_backend(resolve: Resolver | None, runner: CommandRunner, preferred_backend: str | None = BACKEND_AUTO) -> str:
    """Detect the iptables backend in use.

    If ``preferred_backend`` is set to something other than ``auto`` it is
    returned, with a warning when it does not match what was detected.

    Raises:
        BinaryNotFoundError: if no iptables-save binary can be found
    """
    legacy_lines = _count_mode_rules(resolve, runner, BACKEND_LEGACY)
    if legacy_lines >= LEGACY_RULE_THRESHOLD:
        detected = BACKEND_LEGACY
    else:
        nft_lines = _count_mode_rules(resolve, runner, BACKEND_NFT)
        detected = BACKEND_LEGACY if legacy_lines >= nft_lines else BACKEND_NFT
    debug(f"Detected iptables backend: {detected}")

    preferred = (preferred_backend or BACKEND_AUTO).lower()
    if preferred != BACKEND_AUTO:
        if preferred != detected:
            warn(
                f"iptables backend specified ({preferred}) does not match the detected backend ({detected}), "
                "using specified backend"
            )
        return preferred
    return detected
