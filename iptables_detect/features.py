"""
Detection of optional iptables and kernel features.

The FeatureDetector probes the iptables and kernel versions, derives a set of
capability flags from fixed version thresholds, applies operator overrides and
caches the result. Probing failures never propagate: the detector falls back
to the oldest supported versions, which disables every optional feature.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace

from .commands import CommandRunner, ProcVersionSource, SysCommandRunner, VersionSource
from .exceptions import CommandError, VersionParseError
from .log import debug, info, warn
from .version import V1_4_7, V1_6_0, V1_6_2, V3_10_0, V3_14_0, V5_15_0, Version, parse_kernel_version

# Flag names accepted as override keys.
SNAT_FULLY_RANDOM = "SNATFullyRandom"
MASQ_FULLY_RANDOM = "MASQFullyRandom"
RESTORE_SUPPORTS_LOCK = "RestoreSupportsLock"
CHECKSUM_OFFLOAD_BROKEN = "ChecksumOffloadBroken"

_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}


@dataclass(frozen=True)
class Features:
    """Capability flags for the running host.

    Attributes:
        snat_fully_random: --random-fully is supported by the SNAT action
        masq_fully_random: --random-fully is supported by the MASQUERADE action
        restore_supports_lock: iptables-restore takes the xtables lock and accepts -w/-W
        checksum_offload_broken: the kernel mangles checksum offload for packets with
            SNATed source ports; VXLAN devices should disable offload
    """

    snat_fully_random: bool = False
    masq_fully_random: bool = False
    restore_supports_lock: bool = False
    checksum_offload_broken: bool = False

    def to_dict(self) -> dict[str, bool]:
        """Flags keyed by their override names."""
        return {
            SNAT_FULLY_RANDOM: self.snat_fully_random,
            MASQ_FULLY_RANDOM: self.masq_fully_random,
            RESTORE_SUPPORTS_LOCK: self.restore_supports_lock,
            CHECKSUM_OFFLOAD_BROKEN: self.checksum_offload_broken,
        }


FLAG_SETTERS: dict[str, Callable[[Features, bool], Features]] = {
    SNAT_FULLY_RANDOM: lambda f, v: replace(f, snat_fully_random=v),
    MASQ_FULLY_RANDOM: lambda f, v: replace(f, masq_fully_random=v),
    RESTORE_SUPPORTS_LOCK: lambda f, v: replace(f, restore_supports_lock=v),
    CHECKSUM_OFFLOAD_BROKEN: lambda f, v: replace(f, checksum_offload_broken=v),
}


def parse_bool(value: str) -> bool:
    """Parse a boolean override value (1/0, t/f, true/false in the usual casings)."""
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


def compute_features(iptables_version: Version, kernel_version: Version) -> Features:
    """Derive the capability flags from the detected versions."""
    return Features(
        snat_fully_random=iptables_version >= V1_6_0 and kernel_version >= V3_14_0,
        masq_fully_random=iptables_version >= V1_6_2 and kernel_version >= V3_14_0,
        restore_supports_lock=iptables_version >= V1_6_2,
        checksum_offload_broken=kernel_version < V5_15_0,
    )


class FeatureDetector:
    """Detects and caches iptables features.

    All access to the cached features goes through a single lock, so a
    caller of get_features() during a refresh waits for the refresh and then
    sees its result.
    """

    def __init__(
        self,
        overrides: Mapping[str, str] | None = None,
        runner: CommandRunner | None = None,
        version_source: VersionSource | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._cache: Features | None = None
        self._overrides: dict[str, str] = dict(overrides or {})
        self._logged_overrides = False
        self._iptables_version: Version | None = None
        self._kernel_version: Version | None = None

        self.runner: CommandRunner = runner or SysCommandRunner()
        self.version_source: VersionSource = version_source or ProcVersionSource()

    @property
    def iptables_version(self) -> Version | None:
        """The iptables version used by the last detection."""
        with self._lock:
            return self._iptables_version

    @property
    def kernel_version(self) -> Version | None:
        """The kernel version used by the last detection."""
        with self._lock:
            return self._kernel_version

    def get_features(self) -> Features:
        """Return the cached features, detecting them first if needed."""
        with self._lock:
            if self._cache is None:
                return self._refresh_features_lock_held()
            return self._cache

    def refresh_features(self) -> None:
        """Re-probe the host and update the cached features."""
        with self._lock:
            self._refresh_features_lock_held()

    def _refresh_features_lock_held(self) -> Features:
        debug("Refreshing detected iptables features")

        iptables_version = self._get_iptables_version()
        kernel_version = self._get_kernel_version()

        features = compute_features(iptables_version, kernel_version)
        features = self._apply_overrides(features)

        self._iptables_version = iptables_version
        self._kernel_version = kernel_version

        if self._cache is None or self._cache != features:
            info(
                f"Updating detected iptables features: {features.to_dict()} "
                f"(iptables version {iptables_version}, kernel version {kernel_version})"
            )
            self._cache = features
        return features

    def _apply_overrides(self, features: Features) -> Features:
        for flag, value in self._overrides.items():
            try:
                override = parse_bool(value)
            except ValueError:
                if not self._logged_overrides:
                    warn(f"Failed to parse value for feature detection override {flag}={value!r}; ignoring")
                continue

            setter = FLAG_SETTERS.get(flag)
            if setter is None:
                if not self._logged_overrides:
                    warn(f"Unknown feature detection flag {flag}={value!r}; ignoring")
                continue

            features = setter(features, override)
            if not self._logged_overrides:
                info(f"Overriding feature detection flag {flag}={override}")

        # Only log the overrides on the first pass.
        self._logged_overrides = True
        return features

    def _get_iptables_version(self) -> Version:
        try:
            out = self.runner.run("iptables", "--version")
        except CommandError as e:
            warn(f"Failed to get iptables version, assuming old version with no optional features: {e}")
            return V1_4_7

        raw = out.decode("utf-8", errors="replace")
        debug(f"Ran iptables --version: {raw.strip()!r}")
        try:
            version = Version.from_banner(raw)
        except VersionParseError as e:
            warn(f"Failed to parse iptables version, assuming old version with no optional features: {e}")
            return V1_4_7

        debug(f"Parsed iptables version: {version}")
        return version

    def _get_kernel_version(self) -> Version:
        try:
            stream = self.version_source.open()
        except OSError as e:
            warn(f"Failed to get the kernel version reader, assuming old version with no optional features: {e}")
            return V3_10_0

        try:
            with stream:
                version = parse_kernel_version(stream)
        except (OSError, ValueError) as e:
            warn(f"Failed to get kernel version, assuming old version with no optional features: {e}")
            return V3_10_0

        debug(f"Parsed kernel version: {version}")
        return version
