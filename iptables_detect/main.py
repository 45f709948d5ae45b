from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field

from pydantic import ValidationError

from .backend import detect_backend
from .commands import ProcVersionSource, SysCommandRunner
from .config import VALID_BACKENDS, DetectorConfig, parse_override_string
from .exceptions import BinaryNotFoundError


@dataclass
class CliOptions:
    overrides: dict[str, str] = field(default_factory=dict)
    backend: str | None = None  # None -> from environment
    skip_backend: bool = False
    as_json: bool = False
    debug: bool = False


def parse_args(argv: list[str]) -> CliOptions:
    parser = argparse.ArgumentParser(description="Detect optional iptables features and the iptables backend in use")
    parser.add_argument(
        "--override",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Override a detected feature flag, e.g. SNATFullyRandom=false (repeatable)",
    )
    parser.add_argument("--backend", choices=VALID_BACKENDS, help="Preferred iptables backend (default: auto)")
    parser.add_argument("--skip-backend", action="store_true", help="Do not detect the iptables backend")
    parser.add_argument("--json", dest="as_json", action="store_true", help="Print results as JSON")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    ns = parser.parse_args(argv)
    overrides: dict[str, str] = {}
    for entry in ns.override:
        try:
            overrides.update(parse_override_string(entry))
        except ValueError as e:
            parser.error(str(e))

    return CliOptions(
        overrides=overrides,
        backend=ns.backend,
        skip_backend=ns.skip_backend,
        as_json=ns.as_json,
        debug=ns.debug,
    )


def main(argv: list[str] | None = None) -> int:
    opts = parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.DEBUG if opts.debug else logging.INFO,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = DetectorConfig.from_env()
    except ValidationError as e:
        print(f"ERROR: invalid configuration: {e}", file=sys.stderr)
        return 1

    # Command line overrides win over the environment.
    overrides = {**config.feature_overrides, **opts.overrides}
    runner = SysCommandRunner()
    config = config.model_copy(update={"feature_overrides": overrides})
    detector = config.build_detector(runner=runner, version_source=ProcVersionSource())
    features = detector.get_features()

    result: dict = {
        "iptables_version": str(detector.iptables_version),
        "kernel_version": str(detector.kernel_version),
        "features": features.to_dict(),
    }

    if not opts.skip_backend:
        preferred = opts.backend or config.iptables_backend
        try:
            result["backend"] = detect_backend(None, runner, preferred)
        except BinaryNotFoundError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1

    if opts.as_json:
        print(json.dumps(result, indent=4, sort_keys=True))
    else:
        print(f"iptables version: {result['iptables_version']}")
        print(f"kernel version: {result['kernel_version']}")
        for name, enabled in result["features"].items():
            print(f"{name}: {str(enabled).lower()}")
        if "backend" in result:
            print(f"backend: {result['backend']}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
