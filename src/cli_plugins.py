"""Command handlers for plugin-versions, is-vulnerable and resolve-deps.

Handlers print results to ``out`` (stdout by default) and diagnostics to the
log or ``err``; they raise ``PluginManagerError`` subclasses for fatal
conditions. In force mode, per-plugin errors are logged as warnings and the
handler moves on to the next plugin.
"""

import logging
import sys
from typing import Callable, Iterable, List, Optional, TextIO

from constants import ExitCodes
from common.errors import PluginManagerError
from registry.jenkins.catalog import VersionCatalog
from registry.jenkins.warnings import VulnerabilityIndex
from versioning.codec import is_greater
from versioning.models import PluginRef
from versioning.parser import parse_plugin_tokens
from versioning.resolver import DependencyResolver

logger = logging.getLogger(__name__)


def _each(refs: Iterable[PluginRef], force: bool, handler: Callable[[PluginRef], None]) -> None:
    for ref in refs:
        try:
            handler(ref)
        except PluginManagerError as exc:
            if not force:
                raise
            logger.warning("Skipping '%s': %s", ref, exc)


def _emit(out: TextIO, name: str, version: str) -> None:
    out.write(f"{name}:{version}\n")


def plugin_versions(
    tokens: List[str],
    mode: Optional[str],
    catalog: VersionCatalog,
    index: Optional[VulnerabilityIndex] = None,
    force: bool = False,
    out: Optional[TextIO] = None,
) -> int:
    """List versions of each plugin according to ``mode``.

    Modes: ``None`` (all versions), ``latest``, ``next``, ``prev``,
    ``last_secure``. ``next``/``prev`` navigate from the given version, or
    from the latest one for a bare name.
    """
    out = out or sys.stdout
    refs = parse_plugin_tokens(tokens)

    def last_secure(ref: PluginRef) -> None:
        secure = index.last_secure_version(ref.name)
        if secure is None:
            logger.info("No known vulnerabilities for plugin '%s'", ref.name)
            out.write(f"{ref}\n")
        elif ref.version is not None and is_greater(ref.version, secure):
            # The caller's own version is already past every advisory.
            out.write(f"{ref}\n")
        else:
            _emit(out, ref.name, secure)

    def listing(ref: PluginRef) -> None:
        versions = catalog.list_versions(ref.name)
        version = ref.version or versions[0]
        if mode == "latest":
            _emit(out, ref.name, versions[0])
        elif mode == "next":
            _emit(out, ref.name, catalog.next_version(ref.name, version))
        elif mode == "prev":
            _emit(out, ref.name, catalog.prev_version(ref.name, version))
        else:
            for v in versions:
                _emit(out, ref.name, v)

    if mode == "last_secure":
        if index is None:
            raise ValueError("last_secure mode requires a VulnerabilityIndex")
        _each(refs, force, last_secure)
    else:
        _each(refs, force, listing)
    return ExitCodes.SUCCESS.value


def is_vulnerable(
    tokens: List[str],
    index: VulnerabilityIndex,
    force: bool = False,
    err: Optional[TextIO] = None,
) -> int:
    """Report vulnerable references on ``err``.

    Returns:
        int: SUCCESS if at least one reference is vulnerable, FAILURE otherwise.
    """
    err = err or sys.stderr
    found = []

    def check(ref: PluginRef) -> None:
        if ref.version is None:
            # A bare name means "latest", which is presumed to have no known vulnerability.
            logger.warning(
                "No version pinned for plugin '%s', cannot determine if vulnerable", ref.name
            )
            return
        record = index.vulnerability_for(ref.name, ref.version)
        if record is None:
            return
        found.append(ref)
        advisory = f", {record.warning_id}" if record.warning_id else ""
        if record.affects_all_versions:
            err.write(
                f"{ref} is vulnerable (all versions are vulnerable! abandon this plugin!!{advisory})\n"
            )
        else:
            err.write(f"{ref} is vulnerable (up to version {record.threshold_version}{advisory})\n")

    _each(parse_plugin_tokens(tokens), force, check)
    return ExitCodes.SUCCESS.value if found else ExitCodes.FAILURE.value


def resolve_deps(
    tokens: List[str],
    resolver: DependencyResolver,
    fix: bool = False,
    out: Optional[TextIO] = None,
) -> int:
    """Print the sorted dependency closure, one ``name:version`` per line."""
    out = out or sys.stdout
    for ref in resolver.resolve(parse_plugin_tokens(tokens), fix=fix):
        out.write(f"{ref}\n")
    return ExitCodes.SUCCESS.value
