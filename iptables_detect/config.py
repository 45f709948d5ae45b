from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, field_validator

from .backend import BACKEND_AUTO, BACKEND_LEGACY, BACKEND_NFT
from .features import FeatureDetector

ENV_FEATURE_OVERRIDE = "IPTABLES_DETECT_FEATURE_OVERRIDE"
ENV_BACKEND = "IPTABLES_DETECT_BACKEND"

VALID_BACKENDS = (BACKEND_AUTO, BACKEND_LEGACY, BACKEND_NFT)


def parse_override_string(text: str) -> dict[str, str]:
    """Parse ``Name=value,Name2=value2`` into a mapping.

    Values are kept verbatim; the detector decides whether they are usable.
    """
    overrides: dict[str, str] = {}
    for entry in text.split(","):
        entry = entry.strip()
        if not entry:
            continue
        name, sep, value = entry.partition("=")
        name = name.strip()
        if not sep or not name:
            raise ValueError(f"Feature override must be in the form Name=value, got {entry!r}")
        overrides[name] = value.strip()
    return overrides


class DetectorConfig(BaseModel):
    """Operator-supplied settings for feature and backend detection."""

    feature_overrides: dict[str, str] = {}
    iptables_backend: str = BACKEND_AUTO

    @field_validator("feature_overrides", mode="before")
    @classmethod
    def _parse_feature_overrides(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_override_string(v)
        return v

    @field_validator("iptables_backend")
    @classmethod
    def _validate_backend(cls, v: str) -> str:
        v = v.strip().lower() or BACKEND_AUTO
        if v not in VALID_BACKENDS:
            raise ValueError(f"iptables backend must be one of {', '.join(VALID_BACKENDS)}")
        return v

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> DetectorConfig:
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        if ENV_FEATURE_OVERRIDE in env:
            data["feature_overrides"] = env[ENV_FEATURE_OVERRIDE]
        if ENV_BACKEND in env:
            data["iptables_backend"] = env[ENV_BACKEND]
        return cls.model_validate(data)

    def build_detector(self, **collaborators: Any) -> FeatureDetector:
        """Create a FeatureDetector using the configured overrides."""
        return FeatureDetector(overrides=self.feature_overrides, **collaborators)
