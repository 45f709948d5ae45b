from iptables_detect.backend import BACKEND_AUTO, BACKEND_LEGACY, BACKEND_NFT, detect_backend, find_best_binary
from iptables_detect.commands import CommandRunner, ProcVersionSource, SysCommandRunner, VersionSource
from iptables_detect.config import DetectorConfig
from iptables_detect.exceptions import BinaryNotFoundError, CommandError, IptablesDetectError, VersionParseError
from iptables_detect.features import FeatureDetector, Features
from iptables_detect.version import Version

__all__ = [
    "BACKEND_AUTO",
    "BACKEND_LEGACY",
    "BACKEND_NFT",
    "BinaryNotFoundError",
    "CommandError",
    "CommandRunner",
    "DetectorConfig",
    "FeatureDetector",
    "Features",
    "IptablesDetectError",
    "ProcVersionSource",
    "SysCommandRunner",
    "Version",
    "VersionParseError",
    "VersionSource",
    "detect_backend",
    "find_best_binary",
]
