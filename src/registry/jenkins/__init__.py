"""Jenkins update-site registry package.

This package provides Jenkins update-site support:
- catalog.py: published versions from the download directory listings
- warnings.py: security warnings from the update-center feed
- artifacts.py: local download cache for .hpi and .war packages
- manifest.py: Plugin-Dependencies extraction from META-INF/MANIFEST.MF
"""

from .artifacts import ArtifactCache  # noqa: F401
from .catalog import VersionCatalog  # noqa: F401
from .manifest import ManifestReader, read_dependencies  # noqa: F401
from .warnings import VulnerabilityIndex  # noqa: F401

__all__ = [
    "ArtifactCache",
    "ManifestReader",
    "VersionCatalog",
    "VulnerabilityIndex",
    "read_dependencies",
]
