"""Tests for the plugin-versions, is-vulnerable and resolve-deps commands."""

import io
from unittest.mock import MagicMock, patch

import pytest

import plugdeps
from cli_plugins import is_vulnerable, plugin_versions, resolve_deps
from common.errors import DownloadError, NotFound, PinConflict
from constants import ExitCodes
from versioning.models import PluginRef, VulnerabilityRecord

VERSIONS = ["4.11.0", "4.10.0", "4.9.0", "4.8.3"]


@pytest.fixture
def catalog():
    catalog = MagicMock()
    catalog.list_versions.return_value = VERSIONS
    catalog.next_version.return_value = "4.11.0"
    catalog.prev_version.return_value = "4.9.0"
    return catalog


@pytest.fixture
def index():
    records = {
        ("git", "4.9.0"): VulnerabilityRecord("git", "4.9.0", "SECURITY-200"),
        ("abandoned", "1.0"): VulnerabilityRecord("abandoned", None, "SECURITY-300"),
    }
    index = MagicMock()
    index.vulnerability_for.side_effect = lambda name, version: records.get((name, version))
    return index


class TestPluginVersions:
    """plugin-versions modes."""

    def test_lists_all_versions_newest_first(self, catalog):
        out = io.StringIO()
        assert plugin_versions(["git"], None, catalog, out=out) == ExitCodes.SUCCESS.value
        assert out.getvalue().splitlines() == [f"git:{v}" for v in VERSIONS]

    def test_latest(self, catalog):
        out = io.StringIO()
        plugin_versions(["git:4.9.0"], "latest", catalog, out=out)
        assert out.getvalue() == "git:4.11.0\n"

    def test_next_and_prev_navigate_from_given_version(self, catalog):
        out = io.StringIO()
        plugin_versions(["git:4.10.0"], "next", catalog, out=out)
        plugin_versions(["git:4.10.0"], "prev", catalog, out=out)
        assert out.getvalue().splitlines() == ["git:4.11.0", "git:4.9.0"]
        catalog.next_version.assert_called_once_with("git", "4.10.0")
        catalog.prev_version.assert_called_once_with("git", "4.10.0")

    def test_bare_name_navigates_from_latest(self, catalog):
        plugin_versions(["git"], "prev", catalog, out=io.StringIO())
        catalog.prev_version.assert_called_once_with("git", "4.11.0")

    def test_last_secure(self, catalog):
        idx = MagicMock()
        idx.last_secure_version.side_effect = lambda name: {"git": "4.10.0"}.get(name)
        out = io.StringIO()
        plugin_versions(["git:4.0", "git:4.11.0", "credentials:2.6"], "last_secure", catalog, index=idx, out=out)
        assert out.getvalue().splitlines() == ["git:4.10.0", "git:4.11.0", "credentials:2.6"]

    def test_unknown_plugin_is_fatal(self, catalog):
        catalog.list_versions.side_effect = NotFound("could not find plugin 'nope'", name="nope")
        with pytest.raises(NotFound):
            plugin_versions(["nope", "git"], "latest", catalog, out=io.StringIO())

    def test_force_skips_failing_plugins(self, catalog):
        catalog.list_versions.side_effect = [NotFound("could not find plugin 'nope'"), VERSIONS]
        out = io.StringIO()
        plugin_versions(["nope", "git"], "latest", catalog, force=True, out=out)
        assert out.getvalue() == "git:4.11.0\n"


class TestIsVulnerable:
    """is-vulnerable reporting and exit status."""

    def test_vulnerable_reference_succeeds_and_is_reported(self, index):
        err = io.StringIO()
        assert is_vulnerable(["credentials:2.6", "git:4.9.0"], index, err=err) == ExitCodes.SUCCESS.value
        assert err.getvalue() == "git:4.9.0 is vulnerable (up to version 4.9.0, SECURITY-200)\n"

    def test_nothing_vulnerable_fails(self, index):
        err = io.StringIO()
        assert is_vulnerable(["git:4.11.0"], index, err=err) == ExitCodes.FAILURE.value
        assert err.getvalue() == ""

    def test_all_versions_message(self, index):
        err = io.StringIO()
        is_vulnerable(["abandoned:1.0"], index, err=err)
        assert "all versions are vulnerable" in err.getvalue()

    def test_bare_name_is_presumed_secure(self, index):
        assert is_vulnerable(["git"], index, err=io.StringIO()) == ExitCodes.FAILURE.value
        index.vulnerability_for.assert_not_called()


class TestResolveDeps:
    """resolve-deps output."""

    def test_prints_closure_one_per_line(self):
        resolver = MagicMock()
        resolver.resolve.return_value = [PluginRef("P", "3.0"), PluginRef("R", "2.0")]
        out = io.StringIO()
        assert resolve_deps(["P", "", "R:2.0"], resolver, fix=True, out=out) == ExitCodes.SUCCESS.value
        assert out.getvalue() == "P:3.0\nR:2.0\n"
        resolver.resolve.assert_called_once_with([PluginRef("P"), PluginRef("R", "2.0")], fix=True)


class TestMain:
    """End-to-end exit codes through plugdeps.main."""

    @pytest.fixture(autouse=True)
    def _quiet(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        with patch("plugdeps.configure_logging"):
            yield

    def _exit_code(self, argv):
        with pytest.raises(SystemExit) as excinfo:
            plugdeps.main(argv)
        return excinfo.value.code

    @patch("plugdeps.build_index")
    def test_is_vulnerable_exit_codes(self, mock_build_index, index, capsys):
        mock_build_index.return_value = index
        assert self._exit_code(["is-vulnerable", "git:4.9.0"]) == 0
        assert "is vulnerable" in capsys.readouterr().err
        assert self._exit_code(["is-vulnerable", "git:4.11.0"]) == 1

    @patch("plugdeps.build_catalog")
    def test_fatal_error_exits_one(self, mock_build_catalog):
        mock_build_catalog.return_value.list_versions.side_effect = DownloadError("https://x", "HTTP 503")
        assert self._exit_code(["plugin-versions", "--latest", "git"]) == 1

    @patch("plugdeps.build_catalog")
    def test_force_turns_fatal_errors_into_success(self, mock_build_catalog):
        mock_build_catalog.return_value.list_versions.side_effect = DownloadError("https://x", "HTTP 503")
        assert self._exit_code(["-f", "plugin-versions", "--latest", "git"]) == 0

    @patch("plugdeps.DependencyResolver")
    def test_pin_conflict_exits_one(self, mock_resolver_cls, tmp_path):
        mock_resolver_cls.return_value.resolve.side_effect = PinConflict("X", "2.0", "1.0", parent="A:1.0")
        assert self._exit_code(["-p", str(tmp_path), "resolve-deps", "A:1.0", "X:1.0"]) == 1

    @patch("plugdeps.DependencyResolver")
    def test_resolve_deps_prints_closure(self, mock_resolver_cls, tmp_path, capsys):
        mock_resolver_cls.return_value.resolve.return_value = [PluginRef("P", "3.0"), PluginRef("R", "2.0")]
        assert self._exit_code(["-p", str(tmp_path), "resolve-deps", "--fix", "P"]) == 0
        assert capsys.readouterr().out == "P:3.0\nR:2.0\n"
        assert mock_resolver_cls.return_value.resolve.call_args.kwargs["fix"] is True

    def test_invalid_token_is_a_usage_error(self):
        assert self._exit_code(["resolve-deps", ":1.0"]) == 2

    def test_missing_command_is_a_usage_error(self):
        assert self._exit_code([]) == 2

    @patch("plugdeps.cli_run.run_in_docker", return_value=0)
    def test_run_in_docker_uses_configured_image(self, mock_docker, monkeypatch):
        monkeypatch.setenv("JENKINS_DOCKER_IMG", "jenkins/jenkins:lts")
        assert self._exit_code(["run-in-docker", "--plugins", "git"]) == 0
        mock_docker.assert_called_once_with(["--plugins", "git"], image="jenkins/jenkins:lts")
