"""Token parsing utilities for plugin references."""

from typing import Iterable, List, Optional, Tuple

from .models import PinSet, PluginRef


def tokenize_leftmost_colon(s: str) -> Tuple[str, Optional[str]]:
    """Return (name, version or None) split on the first colon.

    Plugin names never contain colons, while the version field may carry a
    distribution-line marker such as ``LTS 2.300``.
    """
    s = s.strip()
    if ':' not in s:
        return s, None
    name, version = s.split(':', 1)
    version = strip_line_marker(version)
    return name.strip(), (version if version else None)


def strip_line_marker(version: str) -> str:
    """Drop a leading distribution-line marker (``"LTS 2.300"`` -> ``"2.300"``)."""
    version = version.strip()
    if ' ' in version:
        version = version.rsplit(' ', 1)[1]
    return version


def parse_plugin_token(token: str) -> PluginRef:
    """Parse one ``name[:version]`` CLI token into a PluginRef.

    Raises:
        ValueError: If the token has no name.
    """
    name, version = tokenize_leftmost_colon(token)
    if not name:
        raise ValueError(f"invalid plugin reference '{token}'")
    return PluginRef(name=name, version=version)


def parse_plugin_tokens(tokens: Iterable[str]) -> List[PluginRef]:
    """Parse CLI tokens, skipping blank entries (e.g. empty lines of a plugins.txt)."""
    return [parse_plugin_token(t) for t in tokens if t and t.strip()]


def build_pin_set(refs: Iterable[PluginRef]) -> PinSet:
    """Every versioned reference pins its artifact; bare names do not."""
    return {ref.name: ref.version for ref in refs if ref.version is not None}
