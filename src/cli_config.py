"""Runtime configuration: defaults, config file, environment and CLI overrides.

Precedence, highest first: CLI flags, ``PLUGDEPS_*`` environment variables,
the YAML (or JSON) config file, then the defaults in ``constants.Constants``.
Invalid values are logged and the lower-precedence value is kept.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional

import yaml

from constants import Constants
from common.http_client import FetchSettings

logger = logging.getLogger(__name__)


@dataclass
class RuntimeConfig:
    """Everything the command layer needs to build catalogs, caches and resolvers."""

    cache_dir: Optional[str] = None
    fetch: FetchSettings = field(default_factory=FetchSettings)
    workers: int = Constants.MAX_WORKERS
    plugins_url: str = Constants.PLUGINS_URL
    war_url: str = Constants.WAR_URL
    update_center_url: str = Constants.UPDATE_CENTER_URL
    docker_image: str = Constants.DOCKER_IMAGE
    force: bool = False


# config key -> coercion; fetch keys land on FetchSettings, the rest on RuntimeConfig
_FETCH_KEYS: Dict[str, Callable[[Any], Any]] = {
    "connect_timeout": float,
    "read_timeout": float,
    "retries": int,
    "retry_delay": float,
    "retry_max_time": float,
}
_CONFIG_KEYS: Dict[str, Callable[[Any], Any]] = {
    "cache_dir": str,
    "workers": int,
    "plugins_url": str,
    "war_url": str,
    "update_center_url": str,
    "docker_image": str,
}


def _default_config_paths() -> list:
    paths = [Path.cwd() / name for name in Constants.CONFIG_FILE_NAMES]
    paths.append(Path(Constants.USER_CONFIG_PATH).expanduser())
    return paths


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load the configuration mapping from ``config_path`` or the default locations.

    Returns an empty dict when no file is found or the file cannot be parsed.
    """
    if config_path:
        candidates = [Path(config_path).expanduser()]
        if not candidates[0].is_file():
            logger.warning("Config file not found: %s", config_path)
            return {}
    else:
        candidates = [p for p in _default_config_paths() if p.is_file()]
        if not candidates:
            return {}

    path = candidates[0]
    try:
        with open(path, "r", encoding="utf-8") as fh:
            if path.suffix.lower() == ".json":
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logger.error("Failed to load config %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level is not a mapping", path)
        return {}
    logger.debug("Loaded configuration from %s", path)
    return data


def _apply(target: Any, key: str, raw: Any, coerce: Callable[[Any], Any], source: str) -> None:
    try:
        value = coerce(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid %s value for '%s': %r", source, key, raw)
        return
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value < 0:
        logger.warning("Ignoring negative %s value for '%s': %r", source, key, raw)
        return
    setattr(target, key, value)


def _apply_mapping(config: RuntimeConfig, values: Dict[str, Any], source: str) -> None:
    for key, raw in values.items():
        if raw is None:
            continue
        if key in _FETCH_KEYS:
            _apply(config.fetch, key, raw, _FETCH_KEYS[key], source)
        elif key in _CONFIG_KEYS:
            _apply(config, key, raw, _CONFIG_KEYS[key], source)
        else:
            logger.debug("Unknown %s key ignored: %s", source, key)


def _environment_values(environ: Dict[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key in list(_FETCH_KEYS) + list(_CONFIG_KEYS):
        env_name = Constants.ENV_PREFIX + key.upper()
        if environ.get(env_name):
            values[key] = environ[env_name]
    if environ.get(Constants.ENV_DOCKER_IMAGE):
        values["docker_image"] = environ[Constants.ENV_DOCKER_IMAGE]
    return values


def _cli_values(args: Any) -> Dict[str, Any]:
    return {
        "cache_dir": getattr(args, "PLUGIN_DIR", None),
        "connect_timeout": getattr(args, "CONNECT_TIMEOUT", None),
        "read_timeout": getattr(args, "READ_TIMEOUT", None),
        "retries": getattr(args, "RETRIES", None),
        "retry_delay": getattr(args, "RETRY_DELAY", None),
        "retry_max_time": getattr(args, "RETRY_MAX_TIME", None),
        "workers": getattr(args, "WORKERS", None),
    }


def build_config(args: Any, environ: Optional[Dict[str, str]] = None) -> RuntimeConfig:
    """Merge every configuration source into a RuntimeConfig."""
    environ = os.environ if environ is None else environ
    config = RuntimeConfig()
    _apply_mapping(config, load_config_file(getattr(args, "CONFIG", None)), "config file")
    _apply_mapping(config, _environment_values(environ), "environment")
    _apply_mapping(config, _cli_values(args), "command-line")
    config.force = bool(getattr(args, "FORCE", False))
    config.workers = max(1, config.workers)
    return config


@contextmanager
def cache_directory(configured: Optional[str]) -> Iterator[Path]:
    """Yield the plugin download directory.

    Without a configured directory a temporary one is used and removed when
    the block exits.
    """
    if configured:
        yield Path(configured).expanduser()
        return
    with tempfile.TemporaryDirectory(prefix="plugdeps-") as tmpdir:
        logger.debug("Using temporary plugin directory %s", tmpdir)
        yield Path(tmpdir)
