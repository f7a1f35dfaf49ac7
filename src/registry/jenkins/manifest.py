"""Read dependency metadata embedded in plugin archives."""
from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Dict, List, Union

from constants import Constants
from common.errors import ParseError
from versioning.models import DependencyEdge

logger = logging.getLogger(__name__)


def unfold_manifest(text: str) -> List[str]:
    """Return logical manifest lines with continuation lines joined.

    A physical line that starts with a single space continues the previous
    one (JAR manifests wrap at 72 bytes).
    """
    lines: List[str] = []
    for raw in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        if raw.startswith(" ") and lines:
            lines[-1] += raw[1:]
        else:
            lines.append(raw)
    return [line for line in lines if line]


def parse_manifest(text: str) -> Dict[str, str]:
    """Parse manifest text into a header mapping (main section wins on duplicates).

    Lines that are not ``Key: value`` headers are skipped; only a malformed
    Plugin-Dependencies value is fatal, in :func:`parse_dependency`.
    """
    headers: Dict[str, str] = {}
    for line in unfold_manifest(text):
        if ":" not in line:
            logger.debug("Skipping malformed manifest line: %r", line)
            continue
        key, value = line.split(":", 1)
        headers.setdefault(key.strip(), value.strip())
    return headers


def parse_dependency(entry: str) -> DependencyEdge:
    """Parse one ``name:version[;attr...]`` tuple of Plugin-Dependencies."""
    spec, *attributes = [part.strip() for part in entry.strip().split(";")]
    if ":" not in spec:
        raise ParseError(f"malformed plugin dependency: {entry!r}")
    name, version = (part.strip() for part in spec.split(":", 1))
    if not name or not version:
        raise ParseError(f"malformed plugin dependency: {entry!r}")
    optional = Constants.OPTIONAL_MARKER in attributes
    return DependencyEdge(name=name, version=version, optional=optional)


def parse_dependencies(value: str) -> List[DependencyEdge]:
    return [parse_dependency(entry) for entry in value.split(",") if entry.strip()]


def read_manifest(artifact_path: Union[str, Path]) -> Dict[str, str]:
    """Open ``artifact_path`` as a zip archive and parse its manifest.

    Raises:
        ParseError: Not a zip archive, or the manifest entry is missing.
    """
    try:
        with zipfile.ZipFile(artifact_path) as archive:
            raw = archive.read(Constants.MANIFEST_ENTRY)
    except zipfile.BadZipFile as exc:
        raise ParseError(f"{artifact_path} is not a valid plugin archive: {exc}") from exc
    except KeyError as exc:
        raise ParseError(f"{artifact_path} has no {Constants.MANIFEST_ENTRY}") from exc
    return parse_manifest(raw.decode("utf-8", errors="replace"))


def read_dependencies(artifact_path: Union[str, Path]) -> List[DependencyEdge]:
    """Declared dependencies of an archive; a missing header means a leaf artifact."""
    value = read_manifest(artifact_path).get(Constants.DEPENDENCIES_HEADER)
    if not value:
        return []
    edges = parse_dependencies(value)
    logger.debug("%s declares %d dependencies", Path(artifact_path).name, len(edges))
    return edges


class ManifestReader:
    """Object form of :func:`read_dependencies`, injected into the resolver."""

    def read_dependencies(self, artifact_path: Union[str, Path]) -> List[DependencyEdge]:
        return read_dependencies(artifact_path)
