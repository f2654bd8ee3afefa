"""Maintenance commands for a GemVault instance.

Provides commands for operators:
  - sync: Refresh local index files if the remote copy is newer
  - check: Report whether the remote index files are newer
  - push-metadata: Republish local index files under the upload lock
  - reindex: Download missing/resized gems and rebuild local indexes
  - fetch: Lazily fetch one gem from the remote store
  - cache-pull / cache-push: Move a cache entry in or out of the remote store
  - show-config: Print the effective configuration (secrets masked)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer

from GemVault.bootstrap import build_cache, build_registry
from GemVault.config import GemVaultConfig, load_config
from GemVault.logging_config import setup_logging

logger = logging.getLogger(__name__)
app = typer.Typer(help="GemVault remote sync maintenance commands")

_CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Config file path (YAML/JSON)")


def _load(config_path: Optional[str]) -> GemVaultConfig:
    config = load_config(path=config_path)
    setup_logging(config.logging)
    return config


@app.command()
def sync(config_path: Optional[str] = _CONFIG_OPTION) -> None:
    """Refresh local index files from the remote store if they are stale."""
    try:
        registry = build_registry(_load(config_path), sync_on_start=False)
        refreshed = registry.access_metadata()
        typer.echo("✓ metadata refreshed" if refreshed else "✓ metadata already current")
    except Exception as e:
        typer.echo(f"✗ Error: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def check(config_path: Optional[str] = _CONFIG_OPTION) -> None:
    """Report whether remote index files are newer than the local ones."""
    try:
        registry = build_registry(_load(config_path), sync_on_start=False)
        if registry.check_remote_changed():
            typer.echo("remote metadata is newer; run `gemvault sync`")
        else:
            typer.echo("local metadata is current")
    except Exception as e:
        typer.echo(f"✗ Error: {e}", err=True)
        raise typer.Exit(1)


@app.command("push-metadata")
def push_metadata(config_path: Optional[str] = _CONFIG_OPTION) -> None:
    """Upload local index files under the distributed upload lock."""
    try:
        registry = build_registry(_load(config_path), sync_on_start=False)
        registry.push_metadata()
        typer.echo("✓ metadata pushed")
    except Exception as e:
        typer.echo(f"✗ Error: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def reindex(config_path: Optional[str] = _CONFIG_OPTION) -> None:
    """Reconcile local gems with the remote store and rebuild indexes."""

    def _progress(done: int, total: int, name: str) -> None:
        typer.echo(f"  [{done}/{total}] {name}")

    try:
        registry = build_registry(_load(config_path))
        fetched = registry.reindex(_progress)
        typer.echo(f"✓ reindexed; downloaded {len(fetched)} gem(s)")
    except Exception as e:
        typer.echo(f"✗ Error: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def fetch(
    path_ref: str = typer.Argument(..., help="Gem path reference, e.g. /gems/rack-3.0.0.gem"),
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Fetch one gem from the remote store if it is missing locally."""
    try:
        registry = build_registry(_load(config_path), sync_on_start=False)
        registry.update_local_file(path_ref)
        local_file = registry.local_store.local_path(path_ref)
        if local_file.exists():
            typer.echo(f"✓ {local_file}")
        else:
            typer.echo(f"{path_ref} not found locally or remotely")
            raise typer.Exit(1)
    except typer.Exit:
        raise
    except Exception as e:
        typer.echo(f"✗ Error: {e}", err=True)
        raise typer.Exit(1)


@app.command("cache-pull")
def cache_pull(
    file_name: Path = typer.Argument(..., help="Local cache file to materialize"),
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Materialize a cache entry from the remote store if it is missing locally."""
    try:
        build_cache(_load(config_path)).pre_read(file_name)
    except Exception as e:
        typer.echo(f"✗ Error: {e}", err=True)
        raise typer.Exit(1)


@app.command("cache-push")
def cache_push(
    file_name: Path = typer.Argument(..., help="Local cache file to upload"),
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Upload a local cache entry, overwriting the remote copy."""
    try:
        build_cache(_load(config_path)).post_write(file_name)
    except Exception as e:
        typer.echo(f"✗ Error: {e}", err=True)
        raise typer.Exit(1)


@app.command("show-config")
def show_config(config_path: Optional[str] = _CONFIG_OPTION) -> None:
    """Print the effective configuration with credentials masked."""
    try:
        config = load_config(path=config_path)
        typer.echo(json.dumps(config.masked_dump(), indent=2, sort_keys=True))
    except Exception as e:
        typer.echo(f"✗ Error: {e}", err=True)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
