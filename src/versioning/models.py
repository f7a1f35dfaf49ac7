"""Data models for plugin references, dependency edges and advisories."""

from dataclasses import dataclass, field
from typing import Dict, Optional, Set, Tuple

from constants import Constants


@dataclass(frozen=True)
class PluginRef:
    """One artifact, optionally at an exact version."""
    name: str
    version: Optional[str] = None

    @property
    def is_core(self) -> bool:
        """True for the host application rather than a plugin."""
        return self.name == Constants.CORE_NAME

    @property
    def is_pinned(self) -> bool:
        return self.version is not None

    def with_version(self, version: str) -> "PluginRef":
        return PluginRef(self.name, version)

    def __str__(self) -> str:
        if self.version is None:
            return self.name
        return f"{self.name}:{self.version}"


@dataclass(frozen=True)
class DependencyEdge:
    """One entry of an artifact's Plugin-Dependencies manifest header."""
    name: str
    version: str
    optional: bool = False

    def as_ref(self) -> PluginRef:
        return PluginRef(self.name, self.version)


@dataclass(frozen=True)
class VulnerabilityRecord:
    """A known-vulnerable boundary for one artifact.

    ``threshold_version`` is the last vulnerable version; ``None`` flags every
    version of the artifact.
    """
    name: str
    threshold_version: Optional[str]
    warning_id: Optional[str] = None
    url: Optional[str] = None
    message: Optional[str] = None

    @property
    def affects_all_versions(self) -> bool:
        return self.threshold_version is None


# Caller-fixed exact versions, keyed by artifact name.
PinSet = Dict[str, str]


@dataclass
class ResolutionState:
    """Mutable bookkeeping for one resolver run."""
    scanned: Set[Tuple[str, str]] = field(default_factory=set)
    closure: Dict[str, str] = field(default_factory=dict)

    def is_scanned(self, ref: PluginRef) -> bool:
        return (ref.name, ref.version) in self.scanned

    def mark_scanned(self, ref: PluginRef) -> None:
        self.scanned.add((ref.name, ref.version))
