"""Find the merged pull request that contains a commit.

Two interchangeable backends:
  GhCliLookup      — shells out to the GitHub CLI (`gh pr list --search <sha>`);
                     needs no token handling of its own, `gh` is already logged in.
  GithubApiLookup  — calls the REST API through PyGithub; needs a token and the
                     owner/name of the repository.

Both return a PullRequestRecord or None and raise PRLookupError on failure.
Responses cross a typed pydantic boundary so a missing field surfaces as
MalformedResponseError instead of a KeyError deep in the pipeline.
"""

from __future__ import annotations

import json
import logging
import re
import subprocess
from abc import ABC, abstractmethod
from typing import Callable

import requests
from github import Github, GithubException
from pydantic import BaseModel, ValidationError

from glance_core.errors import MalformedResponseError, PRLookupError
from glance_store.models import CommitRecord, PullRequestRecord

logger = logging.getLogger(__name__)

_GH_FIELDS = "number,title,author,body,comments,commits,url,updatedAt,mergedAt"
_GITHUB_REMOTE_RE = re.compile(r"github\.com[:/](?P<slug>[^/\s]+/[^/\s]+?)(?:\.git)?/?$")

# (args) -> CompletedProcess; swapped out in tests.
CommandRunner = Callable[[list[str]], "subprocess.CompletedProcess[str]"]


# ---------------------------------------------------------------------------
# `gh --json` response schema
# ---------------------------------------------------------------------------


class GhAuthor(BaseModel):
    login: str


class GhComment(BaseModel):
    body: str = ""


class GhCommit(BaseModel):
    oid: str
    messageHeadline: str
    messageBody: str


class GhPullRequest(BaseModel):
    number: int
    title: str
    body: str
    author: GhAuthor
    comments: list[GhComment] = []
    commits: list[GhCommit]
    url: str
    updatedAt: str
    mergedAt: str

    def to_record(self) -> PullRequestRecord:
        pr_id = str(self.number)
        return PullRequestRecord(
            id=pr_id,
            title=self.title,
            body=self.body,
            author=self.author.login,
            comments=[c.body for c in self.comments],
            commits=[CommitRecord(id=c.oid, headline=c.messageHeadline, body=c.messageBody, pr=pr_id) for c in self.commits],
            url=self.url,
            updated_at=self.updatedAt,
            merged_at=self.mergedAt,
        )


def parse_gh_response(raw: str) -> PullRequestRecord | None:
    """Turn the stdout of `gh pr list --json ...` into a record, or None if empty."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"gh returned non-JSON output: {raw[:200]!r}") from e
    if not isinstance(data, list):
        raise MalformedResponseError(f"Expected a JSON array from gh, got {type(data).__name__}")
    if not data or data[0] is None:
        return None
    try:
        return GhPullRequest.model_validate(data[0]).to_record()
    except ValidationError as e:
        raise MalformedResponseError(f"Pull request response is missing required fields: {e}") from e


def _run(args: list[str]) -> subprocess.CompletedProcess[str]:
    # gh may print bytes that are not UTF-8; decode them lossily.
    return subprocess.run(args, capture_output=True, text=True, errors="replace", stdin=subprocess.DEVNULL)


# ---------------------------------------------------------------------------
# Lookup clients
# ---------------------------------------------------------------------------


class BaseLookup(ABC):
    @abstractmethod
    def lookup(self, commit_id: str) -> PullRequestRecord | None:
        """Return the merged PR whose history contains ``commit_id``, or None."""


class GhCliLookup(BaseLookup):
    """Search merged PRs with the GitHub CLI, run from inside the repository."""

    def __init__(self, runner: CommandRunner | None = None, gh_path: str = "gh"):
        self._run = runner or _run
        self._gh = gh_path

    def command(self, commit_id: str) -> list[str]:
        return [self._gh, "pr", "list", "--json", _GH_FIELDS, "--search", commit_id, "--state", "merged"]

    def lookup(self, commit_id: str) -> PullRequestRecord | None:
        try:
            result = self._run(self.command(commit_id))
        except OSError as e:
            raise PRLookupError(f"Failed to run {self._gh}: {e}") from e
        if result.returncode != 0:
            raise PRLookupError(f"Failed to run gh: {result.stdout} {result.stderr}".strip())
        return parse_gh_response(result.stdout)


class GithubApiLookup(BaseLookup):
    """Ask the REST API which pull requests a commit is associated with."""

    def __init__(self, repo_name: str, token: str):
        self._repo_name = repo_name
        self._gh = Github(token)
        self._repo = None

    def _get_repo(self):
        if self._repo is None:
            self._repo = self._gh.get_repo(self._repo_name)
        return self._repo

    def lookup(self, commit_id: str) -> PullRequestRecord | None:
        try:
            pulls = self._get_repo().get_commit(commit_id).get_pulls()
            merged = next((p for p in pulls if p.merged_at is not None), None)
            if merged is None:
                return None
            return self._to_record(merged)
        except (GithubException, requests.exceptions.RequestException) as e:
            raise PRLookupError(f"GitHub API error for {commit_id}: {e}") from e

    @staticmethod
    def _to_record(pr) -> PullRequestRecord:
        # Reuse the gh schema so both backends validate the same fields.
        payload = {
            "number": pr.number,
            "title": pr.title,
            "body": pr.body or "",
            "author": {"login": pr.user.login if pr.user else None},
            "comments": [{"body": c.body or ""} for c in pr.get_issue_comments()],
            "commits": [
                {
                    "oid": c.sha,
                    "messageHeadline": c.commit.message.split("\n", 1)[0],
                    "messageBody": c.commit.message.split("\n", 1)[1].strip() if "\n" in c.commit.message else "",
                }
                for c in pr.get_commits()
            ],
            "url": pr.html_url,
            "updatedAt": pr.updated_at.isoformat() if pr.updated_at else None,
            "mergedAt": pr.merged_at.isoformat() if pr.merged_at else None,
        }
        try:
            return GhPullRequest.model_validate(payload).to_record()
        except ValidationError as e:
            raise MalformedResponseError(f"Pull request #{pr.number} is missing required fields: {e}") from e


def repo_name_from_remote(url: str | None) -> str | None:
    """Extract ``owner/name`` from a GitHub remote URL (https or ssh)."""
    if not url:
        return None
    match = _GITHUB_REMOTE_RE.search(url.strip())
    return match.group("slug") if match else None
