"""CLI entry point for git-glance.

Commands:
  notes  — generate release notes for a commit range (the main command)
  check  — diagnose provider keys and GitHub CLI setup
  cache  — inspect or clear the reconciliation cache
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from glance_cli.commands.cache import cache_cmd
from glance_cli.commands.check import check_cmd
from glance_cli.commands.notes import notes_cmd

console = Console(stderr=True)


def _build_store(config: dict, repository):
    """Instantiate the configured cache backend from .glance.yml settings.

    Store selection hierarchy:
      store: file   → FileStore   (store_path or <git-dir>/glance)
      store: sqlite → SQLiteStore (store_path or <git-dir>/glance/cache.db)
      store: memory → MemoryStore (nothing persisted)

    This factory lives in cli.py so neither glance_core nor glance_store
    know about the CLI config format.
    """
    store_type = config.get("store", "file")
    default_root = repository.git_dir / "glance"

    if store_type == "file":
        from glance_store.file import FileStore

        return FileStore(root=config.get("store_path") or default_root)

    if store_type == "sqlite":
        from glance_store.sqlite import SQLiteStore

        db_path = config.get("store_path")
        if not db_path:
            default_root.mkdir(parents=True, exist_ok=True)
            db_path = default_root / "cache.db"
        return SQLiteStore(db_path=str(db_path))

    if store_type == "memory":
        from glance_store.memory import MemoryStore

        return MemoryStore()

    raise click.UsageError(f"Unknown store {store_type!r} in config. Choose 'file', 'sqlite' or 'memory'.")


def _open_repository():
    """Return the GitRepository for the current directory, or None outside a repository."""
    from glance_core.errors import RepositoryNotFoundError
    from glance_core.git.repository import GitRepository

    try:
        return GitRepository(".")
    except RepositoryNotFoundError as e:
        logging.getLogger(__name__).debug("%s", e)
        return None


@click.group()
@click.version_option(
    version=importlib.metadata.version("git-glance"),
    prog_name="glance",
)
@click.option(
    "--config",
    "config_path",
    default=".glance.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="GLANCE_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Release notes from a commit range, grouped by pull request and summarized by AI."""
    from glance_core.config import load_config

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    ctx.ensure_object(dict)

    repository = _open_repository()
    try:
        config = load_config(config_path, git_config=repository.config_value if repository else None)
    except ValueError as e:
        raise click.UsageError(str(e))

    ctx.obj["config_path"] = config_path
    ctx.obj["config"] = config
    ctx.obj["repository"] = repository


main.add_command(notes_cmd)
main.add_command(check_cmd)
main.add_command(cache_cmd)
