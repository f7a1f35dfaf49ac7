"""Delegation to the Jenkins plugin installation manager tool.

``run`` executes the tool's jar with a local Java runtime, optionally
downloading the jar first; ``run-in-docker`` executes ``jenkins-plugin-cli``
inside the official Jenkins image. Arguments are passed through verbatim and
the tool's exit status becomes ours.
"""

from __future__ import annotations

import logging
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

from constants import Constants, ExitCodes
from common.http_client import FetchSettings, download_file

logger = logging.getLogger(__name__)


def _execute(cmd: List[str]) -> int:
    logger.debug("Executing: %s", " ".join(cmd))
    try:
        completed = subprocess.run(cmd, check=False)
    except FileNotFoundError:
        logger.error("Command not found: %s", cmd[0])
        return ExitCodes.FAILURE.value
    return completed.returncode


def run_tool(
    tool_args: List[str],
    download: bool = False,
    settings: Optional[FetchSettings] = None,
    jar_path: Optional[Path] = None,
) -> int:
    """Run ``java -jar <tool>.jar ARGS``.

    Args:
        tool_args: Arguments for the tool.
        download: Download the jar (to ``jar_path``) before running.
        settings: Network tuning for the download.
        jar_path: Jar location; defaults to ``<tool name>.jar`` in the working directory.

    Raises:
        DownloadError: The jar could not be downloaded.
    """
    jar = Path(jar_path) if jar_path else Path(f"{Constants.TOOL_NAME}.jar")
    if download:
        logger.info("Downloading %s ...", Constants.TOOL_URL)
        download_file(Constants.TOOL_URL, jar, settings=settings)
    if not tool_args:
        if download:
            return ExitCodes.SUCCESS.value
        sys.stderr.write(
            "Error: No arguments provided.\n"
            "Usage: plugdeps run [--download] ARGS [..]\n"
        )
        return ExitCodes.USAGE_ERROR.value
    if not jar.is_file():
        logger.error("%s not found; use 'run --download' to fetch it", jar)
        return ExitCodes.FAILURE.value
    return _execute(["java", "-jar", str(jar), *tool_args])


def run_in_docker(tool_args: List[str], image: str = Constants.DOCKER_IMAGE) -> int:
    """Run ``jenkins-plugin-cli ARGS`` in a throwaway container of ``image``."""
    return _execute(["docker", "run", "--rm", image, Constants.DOCKER_TOOL_COMMAND, *tool_args])
