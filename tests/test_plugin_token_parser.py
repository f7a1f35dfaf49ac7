"""Tests for plugin token parsing and pin sets."""

import pytest

from versioning.models import PluginRef
from versioning.parser import (
    build_pin_set,
    parse_plugin_token,
    parse_plugin_tokens,
    strip_line_marker,
    tokenize_leftmost_colon,
)


def test_bare_name_has_no_version():
    assert parse_plugin_token("git") == PluginRef("git", None)


def test_name_and_version():
    ref = parse_plugin_token(" active-directory:2.20 ")
    assert ref == PluginRef("active-directory", "2.20")
    assert str(ref) == "active-directory:2.20"


def test_lts_marker_is_stripped():
    assert parse_plugin_token("core:LTS 2.300") == PluginRef("core", "2.300")
    assert strip_line_marker("LTS 2.300") == "2.300"
    assert strip_line_marker("2.300") == "2.300"


def test_empty_version_means_unversioned():
    assert tokenize_leftmost_colon("git:") == ("git", None)


def test_missing_name_is_rejected():
    with pytest.raises(ValueError):
        parse_plugin_token(":1.0")


def test_blank_tokens_are_skipped():
    refs = parse_plugin_tokens(["git:4.0", "", "  ", "credentials"])
    assert refs == [PluginRef("git", "4.0"), PluginRef("credentials")]


def test_pin_set_only_contains_versioned_refs():
    pins = build_pin_set([PluginRef("git", "4.0"), PluginRef("credentials"), PluginRef("core", "2.300")])
    assert pins == {"git": "4.0", "core": "2.300"}


def test_core_ref_is_flagged():
    assert PluginRef("core", "2.300").is_core
    assert not PluginRef("git").is_core
