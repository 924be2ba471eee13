"""check command: diagnose provider keys and GitHub CLI setup without running the pipeline."""

from __future__ import annotations

import click
from rich.console import Console

console = Console()

_KEY_SOURCES = {
    "openai": ("openai_api_key", "OPENAI_API_KEY", "glance.openai.key"),
    "anthropic": ("anthropic_api_key", "ANTHROPIC_API_KEY", "glance.anthropic.key"),
}


@click.command("check")
@click.pass_context
def check_cmd(ctx):
    """Check that an AI key is configured and that gh is installed and logged in.

    Always exits 0; the output is the diagnosis.
    """
    from glance_cli.auth import gh_auth_status, resolve_github_token

    config = ctx.obj.get("config", {}) if ctx.obj else {}
    repository = ctx.obj.get("repository") if ctx.obj else None

    if repository is None:
        console.print("[red]* Not inside a git repository[/red]")
    else:
        console.print(f"[green]* Git repository found[/green] ({repository.git_dir})")

    model = config.get("model", "openai")
    key_field, env_var, git_key = _KEY_SOURCES.get(model, _KEY_SOURCES["openai"])
    if config.get(key_field):
        console.print(f"[green]* {model} key found[/green]")
    else:
        console.print(f"[red]* {model} key not found[/red]")
        console.print(f"[blue]  - set {env_var} or run `git config --add {git_key} <key>`[/blue]")

    status = gh_auth_status()
    if not status.installed:
        console.print("[red]* gh not found[/red]")
        console.print("[blue]  - please install gh from https://cli.github.com/[/blue]")
    elif status.authenticated:
        console.print("[green]* gh auth status good[/green]")
        console.print(status.output, markup=False)
    else:
        console.print("[red]* Failed to run gh auth status[/red]")
        console.print(status.output, markup=False)

    if resolve_github_token():
        console.print("[green]* GitHub token available[/green]")
    else:
        console.print("[yellow]* No GitHub token (only needed for lookup: api)[/yellow]")
