"""Security warnings from the update-center feed.

The feed is a JSON document wrapped in an ``updateCenter.post(...);`` call.
Each warning names an artifact (``core`` for the WAR) and lists the last
affected version of every vulnerable range.
"""
from __future__ import annotations

import json
import logging
import threading
from typing import Any, Dict, List, Optional

from constants import Constants
from common.errors import DownloadError, NotFound, ParseError
from common.http_client import FetchSettings, robust_get
from versioning.codec import Comparison, compare, highest
from versioning.models import VulnerabilityRecord
from versioning.parser import strip_line_marker

from .catalog import VersionCatalog

logger = logging.getLogger(__name__)


def unwrap_feed(text: str) -> str:
    """Strip the JSONP-style call wrapper from the feed payload."""
    body = (text or "").strip()
    if body.startswith(Constants.UPDATE_CENTER_PREFIX):
        body = body[len(Constants.UPDATE_CENTER_PREFIX):]
    if body.endswith(");"):
        body = body[:-2]
    elif body.endswith(")"):
        body = body[:-1]
    return body.strip()


def parse_warnings(document: Dict[str, Any]) -> List[VulnerabilityRecord]:
    """Flatten the ``warnings`` array into one record per affected range.

    A warning without version ranges, or a range without ``lastVersion``,
    means no fixed release exists: every version is flagged.
    """
    records: List[VulnerabilityRecord] = []
    warnings = document.get("warnings") or []
    if not isinstance(warnings, list):
        raise ParseError("update-center 'warnings' is not a list")
    for warning in warnings:
        if not isinstance(warning, dict) or not warning.get("name"):
            raise ParseError(f"malformed update-center warning: {warning!r}")
        base = {
            "name": warning["name"],
            "warning_id": warning.get("id"),
            "url": warning.get("url"),
            "message": warning.get("message"),
        }
        ranges = warning.get("versions") or []
        if not ranges:
            records.append(VulnerabilityRecord(threshold_version=None, **base))
            continue
        for item in ranges:
            last = item.get("lastVersion") if isinstance(item, dict) else None
            records.append(VulnerabilityRecord(threshold_version=last or None, **base))
    return records


class VulnerabilityIndex:
    """Answers "is artifact@version vulnerable" from one fetch of the feed.

    Records are fetched lazily and kept for the lifetime of the instance,
    which the CLI scopes to a single command invocation.
    """

    def __init__(
        self,
        catalog: VersionCatalog,
        settings: Optional[FetchSettings] = None,
        url: str = Constants.UPDATE_CENTER_URL,
    ):
        self.catalog = catalog
        self.settings = settings
        self.url = url
        self._records: Optional[List[VulnerabilityRecord]] = None
        self._lock = threading.Lock()

    def fetch_all(self) -> List[VulnerabilityRecord]:
        """Download and parse the feed once; later calls reuse the records.

        Raises:
            DownloadError: The feed could not be fetched.
            ParseError: The payload is not the expected JSON document.
        """
        with self._lock:
            if self._records is not None:
                return self._records
            logger.info("Downloading %s ...", self.url)
            status, _, text = robust_get(self.url, settings=self.settings)
            if status != 200:
                raise DownloadError(self.url, text if status == 0 else f"HTTP {status}")
            try:
                document = json.loads(unwrap_feed(text))
            except json.JSONDecodeError as exc:
                raise ParseError(f"update-center feed is not valid JSON: {exc}") from exc
            if not isinstance(document, dict):
                raise ParseError("update-center feed is not a JSON object")
            self._records = parse_warnings(document)
            logger.debug("Loaded %d vulnerability records", len(self._records))
            return self._records

    def records_for(self, name: str) -> List[VulnerabilityRecord]:
        return [r for r in self.fetch_all() if r.name == name]

    def vulnerability_for(self, name: str, version: str) -> Optional[VulnerabilityRecord]:
        """Return the record that flags ``name@version``, or None if it is presumed secure.

        An all-versions record wins; otherwise the highest threshold that is
        not older than ``version``.
        """
        version = strip_line_marker(version)
        matching = None
        for record in self.records_for(name):
            if record.affects_all_versions:
                return record
            if compare(version, record.threshold_version) is not Comparison.GREATER:
                if matching is None or compare(
                    record.threshold_version, matching.threshold_version
                ) is Comparison.GREATER:
                    matching = record
        return matching

    def is_vulnerable(self, name: str, version: str) -> bool:
        return self.vulnerability_for(name, version) is not None

    def last_vulnerable_version(self, name: str) -> Optional[str]:
        """Highest threshold across the records of ``name``; None if unaffected."""
        thresholds = [r.threshold_version for r in self.records_for(name) if r.threshold_version]
        if not thresholds:
            return None
        return highest(*thresholds)

    def last_secure_version(self, name: str) -> Optional[str]:
        """Oldest release newer than every known-vulnerable version of ``name``.

        Returns None when ``name`` has no records, meaning the caller's own
        version (or latest) stands.

        Raises:
            NotFound: Every version is flagged, or no fixed release is published.
        """
        records = self.records_for(name)
        if not records:
            return None
        if any(r.affects_all_versions for r in records):
            raise NotFound(
                f"all versions of '{name}' are vulnerable; no secure version exists", name=name
            )
        threshold = self.last_vulnerable_version(name)
        try:
            return self.catalog.next_version(name, threshold)
        except NotFound:
            # Threshold not published as-is; fall back to a numeric search.
            return self.catalog.first_newer_than(name, threshold)
