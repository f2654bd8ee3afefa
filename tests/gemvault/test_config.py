"""Tests for configuration models and file/env/CLI precedence."""

from __future__ import annotations

import json

import pytest

from GemVault.config import GemVaultConfig, LockConfig, export_config_schema, load_config, validate_config_file


def test_defaults():
    config = GemVaultConfig()
    assert config.lock.backend == "file"
    assert config.lock.name == "gemvault-upload"
    assert config.object_store.read_chunk_size == 1 << 20
    assert config.sync_on_start is True


def test_unknown_keys_are_rejected():
    with pytest.raises(ValueError):
        GemVaultConfig.model_validate({"object_store": {"bukket": "typo"}})


def test_redis_backend_requires_url():
    with pytest.raises(ValueError, match="redis_url"):
        LockConfig(backend="redis")
    assert LockConfig(backend="redis", redis_url="redis://localhost:6379/0").backend == "redis"


@pytest.mark.parametrize(
    "section,values",
    [
        ("object_store", {"read_chunk_size": 0}),
        ("lock", {"timeout_s": -1}),
        ("lock", {"poll_interval_s": 0}),
        ("logging", {"level": "LOUD"}),
    ],
)
def test_invalid_values(section, values):
    with pytest.raises(ValueError):
        GemVaultConfig.model_validate({section: values})


def test_yaml_file(tmp_path):
    path = tmp_path / "gemvault.yaml"
    path.write_text(
        "object_store:\n  bucket: gems-prod\n  region: eu-west-1\nlocal_store:\n  data_dir: /srv/gems\n",
        encoding="utf-8",
    )
    config = load_config(path=str(path), env_prefix="GEMVAULT_TEST_")
    assert config.object_store.bucket == "gems-prod"
    assert config.local_store.data_dir == "/srv/gems"


def test_precedence_file_env_cli(tmp_path, monkeypatch):
    path = tmp_path / "gemvault.json"
    path.write_text(json.dumps({"lock": {"timeout_s": 5, "name": "from-file"}}), encoding="utf-8")
    monkeypatch.setenv("GEMVAULT_TEST_LOCK__TIMEOUT_S", "30")
    monkeypatch.setenv("GEMVAULT_TEST_LOCK__NAME", "from-env")
    monkeypatch.setenv("GEMVAULT_TEST_SYNC_ON_START", "false")

    config = load_config(
        path=str(path),
        env_prefix="GEMVAULT_TEST_",
        cli_overrides={"lock": {"name": "from-cli"}},
    )

    assert config.lock.timeout_s == 30
    assert config.lock.name == "from-cli"
    assert config.sync_on_start is False


def test_missing_and_unsupported_files(tmp_path):
    with pytest.raises(ValueError, match="not found"):
        load_config(path=str(tmp_path / "nope.yaml"))
    other = tmp_path / "gemvault.toml"
    other.write_text("x = 1", encoding="utf-8")
    with pytest.raises(ValueError, match="Unsupported"):
        load_config(path=str(other))


def test_validate_config_file(tmp_path):
    good = tmp_path / "good.json"
    good.write_text("{}", encoding="utf-8")
    assert validate_config_file(str(good)) is True


def test_masked_dump_hides_secrets():
    config = GemVaultConfig.model_validate(
        {"object_store": {"access_key_id": "AKIA", "secret_access_key": "very-secret"}}
    )
    dumped = config.masked_dump()
    assert dumped["object_store"]["secret_access_key"] == "***masked***"
    assert dumped["object_store"]["access_key_id"] == "AKIA"


def test_config_hash_is_stable():
    assert GemVaultConfig().config_hash() == GemVaultConfig().config_hash()
    assert GemVaultConfig().config_hash() != GemVaultConfig(sync_on_start=False).config_hash()


def test_schema_export():
    schema = export_config_schema()
    assert "object_store" in schema["properties"]
