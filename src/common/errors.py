"""Error types raised by the catalog, cache, manifest and resolver layers.

Library code raises these; only the command layer turns them into log
lines and exit codes.
"""
from __future__ import annotations

from typing import Optional


class PluginManagerError(Exception):
    """Base class for all fatal plugin-management errors."""


class NotFound(PluginManagerError):
    """An artifact, version, or version neighbour does not exist in a catalog."""

    def __init__(self, message: str, name: Optional[str] = None, version: Optional[str] = None):
        super().__init__(message)
        self.name = name
        self.version = version


class DownloadError(PluginManagerError):
    """A network fetch exhausted its retry budget."""

    def __init__(self, url: str, reason: Optional[str] = None):
        message = f"failed to download {url}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.url = url
        self.reason = reason


class ParseError(PluginManagerError, ValueError):
    """Malformed version string, manifest metadata, or feed payload."""


class PinConflict(PluginManagerError):
    """A discovered dependency version is newer than a caller-pinned version."""

    def __init__(self, dependency: str, version: str, pinned_version: str, parent: Optional[str] = None):
        message = (
            f"dependency '{dependency}:{version}' is greater than pinned dependency "
            f"'{dependency}:{pinned_version}'"
        )
        if parent:
            message = f"{message} (required by '{parent}')"
        super().__init__(message)
        self.dependency = dependency
        self.version = version
        self.pinned_version = pinned_version
        self.parent = parent
