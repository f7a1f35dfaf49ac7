"""Published-version catalog backed by the update site's download directory listings."""
from __future__ import annotations

import logging
import re
from typing import List, Optional

from constants import Constants
from common.errors import DownloadError, NotFound, ParseError
from common.http_client import FetchSettings, robust_get
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from versioning.codec import is_greater, sort_key, version_key
from versioning.models import PluginRef

logger = logging.getLogger(__name__)

_HREF_RE = re.compile(r"""href=['"]([^'"]+)['"]""")


def parse_listing(html: str) -> List[str]:
    """Extract version strings from a download directory listing.

    Each link of the form ``/download/<kind>/[<name>/]<version>/<file>``
    contributes its second-to-last path segment. Order of first appearance
    is kept; duplicates are dropped.
    """
    versions: List[str] = []
    seen = set()
    for href in _HREF_RE.findall(html or ""):
        if not href.startswith(Constants.LISTING_PREFIX):
            continue
        segments = [s for s in href.split("/") if s]
        if len(segments) < 3:
            continue
        candidate = segments[-2]
        if candidate not in seen:
            seen.add(candidate)
            versions.append(candidate)
    return versions


def order_versions(versions: List[str]) -> List[str]:
    """Sort versions newest first, dropping entries that do not start with a number."""
    valid = []
    for v in versions:
        try:
            version_key(v)
        except ParseError as exc:
            logger.warning("Ignoring malformed version in listing: %s", exc)
            continue
        valid.append(v)
    return sorted(valid, key=sort_key, reverse=True)


class VersionCatalog:
    """Lists and navigates the published versions of plugins and core."""

    def __init__(
        self,
        settings: Optional[FetchSettings] = None,
        plugins_url: str = Constants.PLUGINS_URL,
        war_url: str = Constants.WAR_URL,
    ):
        self.settings = settings
        self.plugins_url = plugins_url.rstrip("/")
        self.war_url = war_url.rstrip("/")

    def base_url(self, name: str) -> str:
        """Directory URL listing every version of ``name``."""
        if name == Constants.CORE_NAME:
            return f"{self.war_url}/"
        return f"{self.plugins_url}/{name}/"

    def list_versions(self, name: str) -> List[str]:
        """Return every published version of ``name``, newest first.

        Raises:
            NotFound: Unknown artifact or empty listing.
            DownloadError: The listing could not be fetched.
        """
        url = self.base_url(name)
        status, _, text = robust_get(url, settings=self.settings)
        if status == 404:
            raise NotFound(f"could not find plugin '{name}'", name=name)
        if status != 200:
            raise DownloadError(url, text if status == 0 else f"HTTP {status}")

        versions = order_versions(parse_listing(text))
        if is_debug_enabled(logger):
            logger.debug(
                "Parsed version listing",
                extra=extra_context(
                    event="parse",
                    component="catalog",
                    action="list_versions",
                    outcome="empty" if not versions else "non_empty",
                    target=safe_url(url),
                    plugin=name
                )
            )
        if not versions:
            raise NotFound(f"could not find plugin '{name}'", name=name)
        return versions

    def latest(self, name: str) -> str:
        return self.list_versions(name)[0]

    def next_version(self, name: str, version: str) -> str:
        """Return the release that followed ``version`` (one step newer)."""
        versions = self.list_versions(name)
        index = self._index_of(name, version, versions)
        if index == 0:
            raise NotFound(f"no version of '{name}' newer than {version}", name=name, version=version)
        return versions[index - 1]

    def prev_version(self, name: str, version: str) -> str:
        """Return the release that preceded ``version`` (one step older)."""
        versions = self.list_versions(name)
        index = self._index_of(name, version, versions)
        if index == len(versions) - 1:
            raise NotFound(f"no version of '{name}' older than {version}", name=name, version=version)
        return versions[index + 1]

    def first_newer_than(self, name: str, version: str) -> str:
        """Return the oldest published version strictly newer than ``version``.

        Unlike :meth:`next_version`, ``version`` need not be published itself.
        """
        newer = [v for v in self.list_versions(name) if is_greater(v, version)]
        if not newer:
            raise NotFound(f"no version of '{name}' newer than {version}", name=name, version=version)
        return newer[-1]

    def resolve(self, ref: PluginRef) -> PluginRef:
        """Pin an unversioned reference to the latest release."""
        if ref.version is not None:
            return ref
        return ref.with_version(self.latest(ref.name))

    @staticmethod
    def _index_of(name: str, version: str, versions: List[str]) -> int:
        try:
            return versions.index(version)
        except ValueError:
            raise NotFound(f"version {version} of '{name}' is not published", name=name, version=version) from None
