"""cache commands: inspect or clear the reconciliation cache."""

from __future__ import annotations

import json

import click
from rich.console import Console

console = Console()


def _store_from_ctx(ctx):
    from glance_cli.cli import _build_store

    repository = ctx.obj.get("repository") if ctx.obj else None
    if repository is None:
        raise click.ClickException("Not inside a git repository.")
    store = _build_store(ctx.obj["config"], repository)
    ctx.call_on_close(store.close)
    return store, repository


@click.group("cache")
def cache_cmd():
    """Inspect or clear cached commit and pull request records."""


@cache_cmd.command("show")
@click.argument("ref")
@click.pass_context
def show_cmd(ctx, ref: str):
    """Print the cached record for REF and the pull request it belongs to."""
    from glance_core.errors import UnresolvableReferenceError

    store, repository = _store_from_ctx(ctx)
    try:
        commit_id = repository.resolve(ref)
    except UnresolvableReferenceError as e:
        raise click.ClickException(str(e))

    record = store.get_commit(commit_id)
    if record is None:
        console.print(f"[yellow]{commit_id} has not been examined yet.[/yellow]")
        return

    click.echo(json.dumps(record.to_dict(), indent=2))
    if record.pr is None:
        console.print("[dim]Standalone commit (no merged pull request).[/dim]")
        return

    pr = store.get_pr(record.pr)
    if pr is None:
        raise click.ClickException(f"Cache is corrupted: PR #{record.pr} has no record.")
    click.echo(json.dumps(pr.to_dict(), indent=2))


@cache_cmd.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def clear_cmd(ctx, yes: bool):
    """Delete every cached record so the next run looks everything up again."""
    store, _ = _store_from_ctx(ctx)
    if not yes:
        click.confirm("Delete all cached commit and PR records?", abort=True)
    removed = store.clear()
    console.print(f"[green]Removed {removed} cached record(s).[/green]")
