"""notes command: generate release notes for a commit range."""

from __future__ import annotations

import click
from rich.console import Console

from glance_core.errors import GlanceError
from glance_core.notes import generate_release_notes, get_lookup, get_summarizer

console = Console(stderr=True)


@click.command("notes")
@click.option("--release", "-r", default=None, help="Release reference (tag, branch or sha). Defaults to HEAD.")
@click.option("--last", "-l", default=None, help="Previous release reference. Defaults to the most recent tag.")
@click.option(
    "--model",
    type=click.Choice(["openai", "anthropic"]),
    default=None,
    help="AI model provider. Overrides config file.",
)
@click.option(
    "--lookup",
    type=click.Choice(["gh", "api"]),
    default=None,
    help="PR lookup backend: GitHub CLI or REST API. Overrides config file.",
)
@click.option("--workers", type=click.IntRange(min=1), default=None, help="Concurrent lookups and summaries.")
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True), default=None, help="Write markdown here.")
@click.option("--no-progress", is_flag=True, help="Hide progress bars.")
@click.pass_context
def notes_cmd(
    ctx,
    release: str | None,
    last: str | None,
    model: str | None,
    lookup: str | None,
    workers: int | None,
    output: str | None,
    no_progress: bool,
):
    """Generate markdown release notes for LAST..RELEASE.

    Commits are grouped by the merged pull request they came from; each PR is
    tagged and summarized in one line by the configured AI provider. Commits
    that belong to no PR are listed under "Other".

    \b
    Required environment variables:
      OPENAI_API_KEY       Required when using --model openai (or git config glance.openai.key)
      ANTHROPIC_API_KEY    Required when using --model anthropic (or git config glance.anthropic.key)
      GITHUB_TOKEN         Required when using --lookup api (or use gh CLI)
    """
    from glance_cli.auth import resolve_github_token
    from glance_cli.cli import _build_store
    from glance_core.config import load_config

    repository = ctx.obj.get("repository") if ctx.obj else None
    if repository is None:
        raise click.ClickException("Not inside a git repository.")

    try:
        config = load_config(
            ctx.obj["config_path"],
            cli_overrides={"model": model, "lookup": lookup, "workers": workers},
            git_config=repository.config_value,
        )
    except ValueError as e:
        raise click.UsageError(str(e))

    if config["model"] == "openai" and not config.get("openai_api_key"):
        raise click.UsageError("OPENAI_API_KEY environment variable is not set (or git config glance.openai.key).")
    if config["model"] == "anthropic" and not config.get("anthropic_api_key"):
        raise click.UsageError(
            "ANTHROPIC_API_KEY environment variable is not set (or git config glance.anthropic.key)."
        )
    if config["lookup"] == "api" and not config.get("github_token"):
        config["github_token"] = resolve_github_token()

    try:
        summarizer = get_summarizer(config)
        pr_lookup = get_lookup(config, repository)
    except ValueError as e:
        raise click.UsageError(str(e))

    store = _build_store(config, repository)
    try:
        result = generate_release_notes(
            repository,
            store,
            pr_lookup,
            summarizer,
            release=release,
            last=last,
            workers=config["workers"],
            out=console,
            show_progress=not no_progress,
        )
    except GlanceError as e:
        raise click.ClickException(str(e))
    finally:
        store.close()

    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(result.markdown)
        console.print(f"[green]Release notes written to {output}[/green]")
    else:
        console.print("\n[green]Changelog[/green]")
        click.echo(result.markdown, nl=False)

    skipped = len(result.lookup_failures) + len(result.summary_failures)
    if skipped:
        console.print(
            f"[yellow]{skipped} item(s) skipped this run; they are not cached and will be retried next time.[/yellow]"
        )
