"""Tests for the maintenance CLI, with the registry factory patched out."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from GemVault.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("GemVault.cli.setup_logging"):
        yield


@pytest.fixture
def fake_registry():
    registry = MagicMock()
    with patch("GemVault.cli.build_registry", return_value=registry) as factory:
        registry.factory = factory
        yield registry


def test_sync_reports_refresh(fake_registry):
    fake_registry.access_metadata.return_value = True

    result = runner.invoke(app, ["sync"])

    assert result.exit_code == 0
    assert "metadata refreshed" in result.output
    assert fake_registry.factory.call_args.kwargs["sync_on_start"] is False


def test_check_reports_current(fake_registry):
    fake_registry.check_remote_changed.return_value = False

    result = runner.invoke(app, ["check"])

    assert result.exit_code == 0
    assert "local metadata is current" in result.output


def test_push_metadata(fake_registry):
    result = runner.invoke(app, ["push-metadata"])

    assert result.exit_code == 0
    fake_registry.push_metadata.assert_called_once_with()


def test_reindex_prints_progress(fake_registry):
    def reindex(callback):
        callback(1, 1, "rack-3.0.0.gem")
        return ["/gems/rack-3.0.0.gem"]

    fake_registry.reindex.side_effect = reindex

    result = runner.invoke(app, ["reindex"])

    assert result.exit_code == 0
    assert "[1/1] rack-3.0.0.gem" in result.output
    assert "downloaded 1 gem(s)" in result.output


def test_fetch_missing_gem_exits_nonzero(fake_registry, tmp_path):
    fake_registry.local_store.local_path.return_value = tmp_path / "absent.gem"

    result = runner.invoke(app, ["fetch", "/gems/absent.gem"])

    assert result.exit_code == 1
    fake_registry.update_local_file.assert_called_once_with("/gems/absent.gem")


def test_errors_exit_with_message(fake_registry):
    fake_registry.access_metadata.side_effect = RuntimeError("bucket unreachable")

    result = runner.invoke(app, ["sync"])

    assert result.exit_code == 1
    assert "bucket unreachable" in result.output


def test_cache_pull_uses_remote_cache(tmp_path):
    cache = MagicMock()
    with patch("GemVault.cli.build_cache", return_value=cache):
        result = runner.invoke(app, ["cache-pull", str(tmp_path / "entry.rz")])

    assert result.exit_code == 0
    cache.pre_read.assert_called_once_with(tmp_path / "entry.rz")


def test_show_config_masks_secrets(tmp_path):
    path = tmp_path / "gemvault.json"
    path.write_text(json.dumps({"object_store": {"secret_access_key": "hunter2"}}), encoding="utf-8")

    result = runner.invoke(app, ["show-config", "--config", str(path)])

    assert result.exit_code == 0
    assert "hunter2" not in result.output
    assert json.loads(result.output)["object_store"]["secret_access_key"] == "***masked***"
