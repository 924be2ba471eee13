"""Cached reconciliation data models.

Decoupled from glance_core so the store layer can be used independently
and glance_core has no knowledge of persistence concerns.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace


@dataclass
class CommitRecord:
    """A single commit and the pull request it belongs to, if any.

    ``pr`` is None both for standalone commits and for commits built from
    repository metadata before their association is known. Once persisted,
    None means "looked up, no merged PR contains this commit".
    """

    id: str
    headline: str
    body: str
    pr: str | None = None

    def to_dict(self) -> dict:
        return {"id": self.id, "headline": self.headline, "body": self.body, "pr": self.pr}

    @classmethod
    def from_dict(cls, d: dict) -> CommitRecord:
        return cls(
            id=d["id"],
            headline=d.get("headline", ""),
            body=d.get("body", ""),
            pr=d.get("pr"),
        )


@dataclass
class PullRequestRecord:
    """A merged pull request with the full set of commits it contains.

    The embedded commit list holds copies; mutating a record from the
    per-commit cache never changes the PR's list, and vice versa.
    """

    id: str
    title: str
    body: str
    author: str
    url: str
    updated_at: str  # ISO-8601 timestamp as reported by GitHub
    merged_at: str
    comments: list[str] = field(default_factory=list)
    commits: list[CommitRecord] = field(default_factory=list)

    def commit_records(self) -> list[CommitRecord]:
        """Return independent copies of the embedded commits, each pointing at this PR."""
        return [replace(c, pr=self.id) for c in self.commits]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "author": self.author,
            "comments": list(self.comments),
            "commits": [c.to_dict() for c in self.commits],
            "url": self.url,
            "updated_at": self.updated_at,
            "merged_at": self.merged_at,
        }

    @classmethod
    def from_dict(cls, d: dict) -> PullRequestRecord:
        return cls(
            id=d["id"],
            title=d.get("title", ""),
            body=d.get("body", ""),
            author=d.get("author", ""),
            comments=list(d.get("comments", [])),
            commits=[CommitRecord.from_dict(c) for c in d.get("commits", [])],
            url=d.get("url", ""),
            updated_at=d.get("updated_at", ""),
            merged_at=d.get("merged_at", ""),
        )
