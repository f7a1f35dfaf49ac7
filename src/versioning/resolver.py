"""Transitive dependency closure for a set of requested plugins.

The resolver walks the dependency graph breadth-first, one batch at a time:
every artifact of a batch is downloaded and its manifest read (optionally in
parallel), then the batch's edges are checked against the caller's pins and
merged into the closure on the calling thread, in a fixed order. Artifacts are
scanned at most once per exact ``(name, version)`` pair, so dependency cycles
terminate.

Pin conflicts are only checked against the direct edges of each scanned
artifact. When fix-mode overrides a pin, deeper levels are not re-validated
against the overriding version.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Tuple

from constants import Constants
from common.errors import PinConflict
from common.logging_utils import extra_context, is_debug_enabled
from registry.jenkins.artifacts import ArtifactCache
from registry.jenkins.catalog import VersionCatalog
from registry.jenkins.manifest import ManifestReader

from .codec import highest, is_greater
from .models import DependencyEdge, PinSet, PluginRef, ResolutionState
from .parser import build_pin_set

logger = logging.getLogger(__name__)


def merge_highest(closure: Dict[str, str], refs: Iterable[PluginRef]) -> None:
    """Merge ``refs`` into ``closure`` keeping the highest version per name."""
    for ref in refs:
        current = closure.get(ref.name)
        closure[ref.name] = ref.version if current is None else highest(current, ref.version)


class DependencyResolver:
    """Computes the deduplicated, highest-version-wins closure of mandatory dependencies."""

    def __init__(
        self,
        catalog: VersionCatalog,
        cache: ArtifactCache,
        reader: Optional[ManifestReader] = None,
        max_workers: int = Constants.MAX_WORKERS,
    ):
        self.catalog = catalog
        self.cache = cache
        self.reader = reader or ManifestReader()
        self.max_workers = max(1, int(max_workers))

    def resolve(self, refs: Iterable[PluginRef], fix: bool = False) -> List[PluginRef]:
        """Resolve ``refs`` to their sorted closure.

        Args:
            refs: Requested plugins; versioned ones are pins.
            fix: Downgrade pin conflicts to logged overrides.

        Raises:
            PinConflict: A dependency is newer than a pin and ``fix`` is off.
            NotFound: An unversioned plugin has no published versions.
            DownloadError: An artifact could not be downloaded.
            ParseError: An artifact's dependency metadata is malformed.
        """
        refs = list(refs)
        pins = build_pin_set(refs)
        state = ResolutionState()

        batch = [self._normalize(ref) for ref in refs]
        while batch:
            batch = self._scan_batch(batch, pins, state, fix)

        return [PluginRef(name, state.closure[name]) for name in sorted(state.closure)]

    def _normalize(self, ref: PluginRef) -> PluginRef:
        if ref.version is not None:
            return ref
        logger.info("No version found for plugin '%s'; grabbing the latest version", ref.name)
        return self.catalog.resolve(ref)

    def _fetch_edges(self, ref: PluginRef) -> List[DependencyEdge]:
        path = self.cache.fetch(ref.name, ref.version)
        return self.reader.read_dependencies(path)

    def _fetch_all(self, pending: List[PluginRef]) -> List[Tuple[PluginRef, List[DependencyEdge]]]:
        if self.max_workers == 1 or len(pending) == 1:
            return [(ref, self._fetch_edges(ref)) for ref in pending]
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(pending))) as executor:
            futures = [executor.submit(self._fetch_edges, ref) for ref in pending]
            # Consume in submission order so conflicts surface deterministically.
            return [(ref, future.result()) for ref, future in zip(pending, futures)]

    def _scan_batch(
        self,
        batch: List[PluginRef],
        pins: PinSet,
        state: ResolutionState,
        fix: bool,
    ) -> List[PluginRef]:
        pending: List[PluginRef] = []
        for ref in sorted(set(batch), key=str):
            if not state.is_scanned(ref):
                pending.append(ref)
        if not pending:
            return []

        if is_debug_enabled(logger):
            logger.debug(
                "Scanning batch",
                extra=extra_context(
                    event="batch_start",
                    component="resolver",
                    action="scan",
                    target=" ".join(str(r) for r in pending)
                )
            )

        candidates: Dict[str, str] = {}
        for ref, edges in self._fetch_all(pending):
            found = [ref]
            for edge in edges:
                if edge.optional:
                    continue
                self._check_pin(ref, edge, pins, fix)
                found.append(edge.as_ref())
            merge_highest(candidates, found)
            merge_highest(state.closure, found)
            state.mark_scanned(ref)
            logger.info(
                "Plugin '%s' dependencies: %s",
                ref,
                " ".join(str(r) for r in found),
            )

        return [
            PluginRef(name, version)
            for name, version in sorted(candidates.items())
            if not state.is_scanned(PluginRef(name, version))
        ]

    @staticmethod
    def _check_pin(parent: PluginRef, edge: DependencyEdge, pins: PinSet, fix: bool) -> None:
        pinned = pins.get(edge.name)
        if pinned is None or not is_greater(edge.version, pinned):
            return
        conflict = PinConflict(edge.name, edge.version, pinned, parent=str(parent))
        if not fix:
            raise conflict
        logger.warning("%s; using %s:%s", conflict, edge.name, edge.version)
