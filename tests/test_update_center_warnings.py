"""Tests for the update-center vulnerability index."""

import json
from unittest.mock import MagicMock, patch

import pytest

from common.errors import DownloadError, NotFound, ParseError
from registry.jenkins.warnings import VulnerabilityIndex, parse_warnings, unwrap_feed

FEED = {
    "connectionCheckUrl": "https://www.google.com/",
    "warnings": [
        {
            "id": "SECURITY-100",
            "name": "git",
            "type": "plugin",
            "url": "https://www.jenkins.io/security/advisory/2020-01-01/",
            "message": "CSRF vulnerability",
            "versions": [{"lastVersion": "4.8.2", "pattern": "4[.][0-8]([.].*)?"}],
        },
        {
            "id": "SECURITY-200",
            "name": "git",
            "type": "plugin",
            "url": "https://www.jenkins.io/security/advisory/2021-01-01/",
            "message": "Stored XSS",
            "versions": [{"lastVersion": "4.9.0", "pattern": "4[.]9[.]0"}],
        },
        {
            "id": "SECURITY-300",
            "name": "abandoned",
            "type": "plugin",
            "url": "https://www.jenkins.io/security/advisory/2022-01-01/",
            "message": "No fix available",
            "versions": [{"pattern": ".*"}],
        },
        {
            "id": "SECURITY-400",
            "name": "core",
            "type": "core",
            "url": "https://www.jenkins.io/security/advisory/2021-06-01/",
            "message": "Core issue",
            "versions": [{"lastVersion": "2.299", "pattern": "2[.]([0-9]|[12][0-9]{2})(|[.].*)"}],
        },
    ],
}


def wrapped(document):
    return "updateCenter.post(\n" + json.dumps(document) + "\n);"


@pytest.fixture
def catalog():
    catalog = MagicMock()
    catalog.list_versions.return_value = ["4.11.0", "4.10.0", "4.9.0", "4.8.3"]
    return catalog


@pytest.fixture
def index(catalog):
    with patch("registry.jenkins.warnings.robust_get") as mock_get:
        mock_get.return_value = (200, {}, wrapped(FEED))
        idx = VulnerabilityIndex(catalog)
        idx.fetch_all()
    return idx


class TestFeedParsing:
    """Payload unwrapping and record extraction."""

    def test_unwrap_strips_call_expression(self):
        assert json.loads(unwrap_feed(wrapped({"a": 1}))) == {"a": 1}
        assert unwrap_feed('{"a": 1}') == '{"a": 1}'

    def test_one_record_per_range(self):
        records = parse_warnings(FEED)
        assert [(r.name, r.threshold_version) for r in records] == [
            ("git", "4.8.2"),
            ("git", "4.9.0"),
            ("abandoned", None),
            ("core", "2.299"),
        ]
        assert records[0].warning_id == "SECURITY-100"

    def test_warning_without_ranges_flags_all_versions(self):
        records = parse_warnings({"warnings": [{"name": "x", "versions": []}]})
        assert records[0].affects_all_versions

    def test_malformed_warning_raises(self):
        with pytest.raises(ParseError):
            parse_warnings({"warnings": [{"versions": []}]})


class TestVulnerabilityIndex:
    """Queries against a stubbed feed."""

    def test_feed_is_fetched_once_per_instance(self, catalog):
        with patch("registry.jenkins.warnings.robust_get") as mock_get:
            mock_get.return_value = (200, {}, wrapped(FEED))
            idx = VulnerabilityIndex(catalog)
            idx.fetch_all()
            idx.is_vulnerable("git", "4.0")
            idx.records_for("core")
        assert mock_get.call_count == 1

    def test_feed_errors(self, catalog):
        with patch("registry.jenkins.warnings.robust_get") as mock_get:
            mock_get.return_value = (0, {}, "timeout")
            with pytest.raises(DownloadError):
                VulnerabilityIndex(catalog).fetch_all()
            mock_get.return_value = (200, {}, "updateCenter.post(not json);")
            with pytest.raises(ParseError):
                VulnerabilityIndex(catalog).fetch_all()

    def test_versions_up_to_threshold_are_vulnerable(self, index):
        assert index.is_vulnerable("git", "4.9.0")
        assert index.is_vulnerable("git", "4.8.3")
        assert index.is_vulnerable("git", "3.0")
        assert not index.is_vulnerable("git", "4.10.0")

    def test_vulnerability_for_reports_highest_matching_threshold(self, index):
        record = index.vulnerability_for("git", "4.0")
        assert record.threshold_version == "4.9.0"
        assert record.warning_id == "SECURITY-200"
        assert index.vulnerability_for("git", "4.10.0") is None

    def test_all_versions_record(self, index):
        assert index.is_vulnerable("abandoned", "99.0")
        assert index.vulnerability_for("abandoned", "1.0").affects_all_versions

    def test_lts_marker_is_stripped_for_core(self, index):
        assert index.is_vulnerable("core", "LTS 2.299")
        assert not index.is_vulnerable("core", "LTS 2.300")

    def test_unknown_plugin_is_not_vulnerable(self, index):
        assert not index.is_vulnerable("credentials", "1.0")

    def test_last_vulnerable_version_is_max_threshold(self, index):
        assert index.last_vulnerable_version("git") == "4.9.0"
        assert index.last_vulnerable_version("credentials") is None

    def test_last_secure_version_is_release_after_threshold(self, index, catalog):
        catalog.next_version.return_value = "4.10.0"
        assert index.last_secure_version("git") == "4.10.0"
        catalog.next_version.assert_called_once_with("git", "4.9.0")

    def test_last_secure_version_falls_back_when_threshold_unpublished(self, index, catalog):
        catalog.next_version.side_effect = NotFound("not published")
        catalog.first_newer_than.return_value = "4.10.0"
        assert index.last_secure_version("git") == "4.10.0"
        catalog.first_newer_than.assert_called_once_with("git", "4.9.0")

    def test_last_secure_version_without_records_is_none(self, index):
        assert index.last_secure_version("credentials") is None

    def test_last_secure_version_when_every_version_is_vulnerable(self, index):
        with pytest.raises(NotFound):
            index.last_secure_version("abandoned")


def test_hash_suffixed_versions_against_thresholds():
    feed = {
        "warnings": [
            {
                "id": "SECURITY-3000",
                "name": "workflow-cps",
                "type": "plugin",
                "versions": [{"lastVersion": "3641.vf58904a_b_b_5d5", "pattern": ".*"}],
            }
        ]
    }
    catalog = MagicMock()
    catalog.next_version.return_value = "3653.v07ea_433c90b_4"
    with patch("registry.jenkins.warnings.robust_get") as mock_get:
        mock_get.return_value = (200, {}, wrapped(feed))
        idx = VulnerabilityIndex(catalog)
        assert idx.is_vulnerable("workflow-cps", "2.94")
        assert idx.is_vulnerable("workflow-cps", "3641.vf58904a_b_b_5d5")
        assert not idx.is_vulnerable("workflow-cps", "3653.v07ea_433c90b_4")
        assert idx.last_secure_version("workflow-cps") == "3653.v07ea_433c90b_4"
