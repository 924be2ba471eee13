"""Core release-notes orchestration."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from glance_core.errors import SummarizationError
from glance_core.gh.pull_request import GhCliLookup, GithubApiLookup, repo_name_from_remote
from glance_core.providers.anthropic import AnthropicSummarizer
from glance_core.providers.openai import OpenAISummarizer
from glance_core.reconciler import Reconciler
from glance_core.render import build_header, render_release_notes

if TYPE_CHECKING:
    from glance_core.gh.pull_request import BaseLookup
    from glance_core.git.repository import GitRepository
    from glance_core.providers.base import BaseSummarizer, TaggedSummary
    from glance_store.base import BaseStore
    from glance_store.models import CommitRecord, PullRequestRecord

console = Console(stderr=True)
logger = logging.getLogger(__name__)


@dataclass
class ReleaseNotes:
    """Result of one pipeline run: the markdown plus everything it was built from."""

    markdown: str
    tip: str
    base: str
    summaries: list[TaggedSummary] = field(default_factory=list)
    standalone: list[CommitRecord] = field(default_factory=list)
    lookup_failures: dict[str, str] = field(default_factory=dict)
    summary_failures: dict[str, str] = field(default_factory=dict)


def get_summarizer(config: dict) -> BaseSummarizer:
    model = config["model"]
    if model == "openai":
        return OpenAISummarizer(api_key=config["openai_api_key"])
    if model == "anthropic":
        return AnthropicSummarizer(api_key=config["anthropic_api_key"])
    raise ValueError(f"Unknown model provider: {model!r}. Choose 'openai' or 'anthropic'.")


def get_lookup(config: dict, repository: GitRepository) -> BaseLookup:
    lookup = config["lookup"]
    if lookup == "gh":
        return GhCliLookup()
    if lookup == "api":
        repo_name = config.get("github_repo") or repo_name_from_remote(repository.remote_url())
        if not repo_name:
            raise ValueError("lookup: api needs github_repo in .glance.yml or a GitHub 'origin' remote.")
        if not config.get("github_token"):
            raise ValueError("lookup: api needs a GitHub token. Set GITHUB_TOKEN or run `gh auth login`.")
        return GithubApiLookup(repo_name, token=config["github_token"])
    raise ValueError(f"Unknown lookup backend: {lookup!r}. Choose 'gh' or 'api'.")


def _progress(out: Console, enabled: bool) -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(bar_width=40),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=out,
        transient=True,
        disable=not enabled,
    )


def summarize_all(
    summarizer: BaseSummarizer,
    prs: dict[str, PullRequestRecord],
    workers: int = 1,
    on_progress=None,
) -> tuple[list[TaggedSummary], dict[str, str]]:
    """Summarize every PR; a failure drops that PR from the output for this run only."""
    summaries: list[TaggedSummary] = []
    failures: dict[str, str] = {}

    def one(pr: PullRequestRecord):
        try:
            return pr.id, summarizer.summarize(pr), None
        except SummarizationError as e:
            logger.warning("Could not summarize PR #%s: %s", pr.id, e)
            return pr.id, None, str(e)
        finally:
            if on_progress is not None:
                on_progress(pr.id)

    ordered = [prs[k] for k in sorted(prs)]
    if workers <= 1:
        outcomes = [one(pr) for pr in ordered]
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(one, ordered))

    for pr_id, summary, error in outcomes:
        if summary is not None:
            summaries.append(summary)
        else:
            failures[pr_id] = error
    return summaries, failures


def generate_release_notes(
    repository: GitRepository,
    store: BaseStore,
    lookup: BaseLookup,
    summarizer: BaseSummarizer,
    release: str | None = None,
    last: str | None = None,
    workers: int = 4,
    out: Console | None = None,
    show_progress: bool = True,
) -> ReleaseNotes:
    """Run the full pipeline: range → reconcile → summarize → render.

    Fatal repository errors propagate. Lookup and summarization failures are
    reported per item and collected on the returned ReleaseNotes.
    """
    out = out or console

    commit_range = repository.resolve_range(release=release, last=last)
    out.print("[green]Here is what I'm working with:[/green]")
    out.print(f"Tip commit:  [blue]{commit_range.tip}[/blue]")
    out.print(f"Last commit: [blue]{commit_range.base}[/blue]")
    out.print(f"Number of commits in release: [green]{len(commit_range.commits)}[/green]")

    reconciler = Reconciler(store, lookup, repository.commit_record, workers=workers)
    with _progress(out, show_progress) as progress:
        task = progress.add_task("Getting PR information for commits", total=len(commit_range.commits))
        reconciled = reconciler.reconcile(commit_range.commits, on_progress=lambda _: progress.advance(task))
    out.print(
        f"Found [green]{len(reconciled.prs)}[/green] pull request(s) and "
        f"[green]{len(reconciled.standalone)}[/green] standalone commit(s)."
    )
    for commit_id, error in sorted(reconciled.failed.items()):
        out.print(f"[red]Error: {commit_id[:7]}: {error}[/red]")

    with _progress(out, show_progress) as progress:
        task = progress.add_task("Summarizing", total=len(reconciled.prs))
        summaries, summary_failures = summarize_all(
            summarizer, reconciled.prs, workers=workers, on_progress=lambda _: progress.advance(task)
        )
    for pr_id, error in sorted(summary_failures.items()):
        out.print(f"[red]Error: PR #{pr_id}: {error}[/red]")

    header = None
    if release:
        header = build_header(release, repository.authored_at(release))

    standalone = list(reconciled.standalone.values())
    return ReleaseNotes(
        markdown=render_release_notes(summaries, standalone, header=header),
        tip=commit_range.tip,
        base=commit_range.base,
        summaries=summaries,
        standalone=standalone,
        lookup_failures=dict(reconciled.failed),
        summary_failures=summary_failures,
    )
