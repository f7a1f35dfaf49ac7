"""Local download cache for plugin (.hpi) and core (.war) packages."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from constants import Constants
from common.http_client import FetchSettings, download_file
from common.logging_utils import safe_url

logger = logging.getLogger(__name__)


class ArtifactCache:
    """Content-addressed cache keyed by artifact name and version.

    An entry that exists is returned as-is with no network access; content
    under a fixed name:version is assumed never to change.
    """

    def __init__(
        self,
        cache_dir: Union[str, Path],
        settings: Optional[FetchSettings] = None,
        plugins_url: str = Constants.PLUGINS_URL,
        war_url: str = Constants.WAR_URL,
    ):
        self.cache_dir = Path(cache_dir).expanduser()
        self.settings = settings
        self.plugins_url = plugins_url.rstrip("/")
        self.war_url = war_url.rstrip("/")

    def path_for(self, name: str, version: str) -> Path:
        ext = Constants.WAR_EXTENSION if name == Constants.CORE_NAME else Constants.PLUGIN_EXTENSION
        return self.cache_dir / f"{name}:{version}.{ext}"

    def url_for(self, name: str, version: str) -> str:
        # e.g. https://updates.jenkins.io/download/plugins/active-directory/2.20/active-directory.hpi
        if name == Constants.CORE_NAME:
            return f"{self.war_url}/{version}/{Constants.WAR_FILE_NAME}.{Constants.WAR_EXTENSION}"
        return f"{self.plugins_url}/{name}/{version}/{name}.{Constants.PLUGIN_EXTENSION}"

    def fetch(self, name: str, version: str, url: Optional[str] = None) -> Path:
        """Return the local path of ``name@version``, downloading it if absent.

        Raises:
            DownloadError: The download exhausted its retry budget.
        """
        path = self.path_for(name, version)
        if path.is_file():
            logger.debug("Cache hit for %s:%s at %s", name, version, path)
            return path
        url = url or self.url_for(name, version)
        logger.info("Downloading plugin %s ...", safe_url(url))
        return download_file(url, path, settings=self.settings)
