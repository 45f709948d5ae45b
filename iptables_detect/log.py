"""
Logging helpers.

Thin wrappers over the ``iptables_detect`` stdlib logger so modules can log
pre-formatted messages with ``debug(...)``, ``info(...)`` and ``warn(...)``.
No handlers are installed here; applications configure logging themselves.
"""

from __future__ import annotations

import logging

logger = logging.getLogger("iptables_detect")


def debug(msg: str) -> None:
    logger.debug(msg)


def info(msg: str) -> None:
    logger.info(msg)


def warn(msg: str) -> None:
    logger.warning(msg)
