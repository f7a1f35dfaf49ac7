"""Numeric ordering for dotted plugin and core versions.

Versions are compared as up to four numeric components
(major, minor, patch, build); missing trailing components count as zero and
components past the fourth are ignored. Each component's value is its
leading run of digits, or zero when it has none, so ``1.0-beta-2`` orders
like ``1.0`` and ``1291.v51fd2a_625da_7`` like ``1291``. The numeric key is
compared as Python integers; the legacy packed-integer form is only kept for
compatibility with output that was produced by it.
"""

import logging
import re
from enum import Enum
from functools import lru_cache
from typing import Tuple, Union

from packaging.version import InvalidVersion, Version

from constants import Constants
from common.errors import ParseError

logger = logging.getLogger(__name__)

_LEADING_DIGITS = re.compile(r"^(\d+)")


class Comparison(Enum):
    """Result of comparing two versions."""
    LESS = -1
    EQUAL = 0
    GREATER = 1


@lru_cache(maxsize=1024)
def _report_anomaly(version: str) -> None:
    # Cached so each version is only reported once.
    logger.warning(
        "Version '%s' has a non-leading component >= %d; packed-integer ordering would be wrong",
        version,
        Constants.LEGACY_COMPONENT_LIMIT,
    )


def version_key(version: str) -> Tuple[int, ...]:
    """Return the 4-tuple numeric key of ``version``.

    Raises:
        ParseError: On an empty version, or one whose first component does
            not start with a digit.
    """
    if version is None or not str(version).strip():
        raise ParseError("empty version string")
    version = str(version).strip()
    parts = version.split(".")[:Constants.VERSION_COMPONENTS]
    if not _LEADING_DIGITS.match(parts[0]):
        raise ParseError(f"version '{version}' does not start with a number")
    key = []
    for position, part in enumerate(parts):
        match = _LEADING_DIGITS.match(part)
        value = int(match.group(1)) if match else 0
        # A large major packs fine; only the fixed-width fields overflow.
        if position and value >= Constants.LEGACY_COMPONENT_LIMIT:
            _report_anomaly(version)
        key.append(value)
    key.extend([0] * (Constants.VERSION_COMPONENTS - len(key)))
    return tuple(key)


def legacy_number(version: str) -> int:
    """Pack ``version`` into the ``%d%03d%03d%03d`` integer of the legacy tooling.

    Components of 1000 or more overflow into the neighbouring field, exactly
    as the packed form always did.
    """
    major, minor, patch, build = version_key(version)
    return int(f"{major}{minor:03d}{patch:03d}{build:03d}")


def compare(a: str, b: str, legacy: bool = False) -> Comparison:
    """Compare two versions numerically.

    Args:
        a: Left-hand version.
        b: Right-hand version.
        legacy: Compare the packed integers instead of the component tuples.
    """
    if legacy:
        left: Union[int, Tuple[int, ...]] = legacy_number(a)
        right: Union[int, Tuple[int, ...]] = legacy_number(b)
    else:
        left, right = version_key(a), version_key(b)
    if left < right:
        return Comparison.LESS
    if left > right:
        return Comparison.GREATER
    return Comparison.EQUAL


def is_greater(a: str, b: str) -> bool:
    """True when ``a`` is numerically newer than ``b``."""
    return compare(a, b) is Comparison.GREATER


def sort_key(version: str):
    """Total-order key for listings.

    Numeric key first; versions that only differ by qualifier
    (``2.0-rc1`` vs ``2.0``) are tie-broken by PEP 440 ordering where the
    string parses, then by the raw string.
    """
    try:
        qualifier = (1, Version(version))
    except InvalidVersion:
        qualifier = (0, Version("0"))
    return version_key(version), qualifier, version


def highest(*versions: str) -> str:
    """Return the numerically highest of ``versions`` (first wins on ties)."""
    if not versions:
        raise ValueError("highest() requires at least one version")
    best = versions[0]
    for candidate in versions[1:]:
        if is_greater(candidate, best):
            best = candidate
    return best
