"""Local repository access: reference resolution, commit ranges and metadata."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import git

from glance_core.errors import NoBaselineError, RepositoryNotFoundError, UnresolvableReferenceError
from glance_store.models import CommitRecord

logger = logging.getLogger(__name__)


@dataclass
class CommitRange:
    """The commits reachable from ``tip`` but not from ``base`` (``base..tip``)."""

    tip: str
    base: str
    commits: list[str] = field(default_factory=list)


class GitRepository:
    """Thin wrapper around a GitPython ``Repo``.

    Everything the pipeline needs from the local clone goes through here, so
    the rest of the code never touches GitPython objects directly.
    """

    def __init__(self, path: str = "."):
        try:
            self._repo = git.Repo(path, search_parent_directories=True)
        except (git.InvalidGitRepositoryError, git.NoSuchPathError) as e:
            raise RepositoryNotFoundError(f"Not a git repository: {path} ({e})") from e

    @property
    def git_dir(self) -> Path:
        return Path(self._repo.git_dir)

    def resolve(self, ref: str) -> str:
        """Return the full commit id ``ref`` points at, peeling tags."""
        try:
            return self._repo.commit(ref).hexsha
        except (git.BadName, git.BadObject, ValueError) as e:
            raise UnresolvableReferenceError(ref, str(e)) from e

    def latest_tag(self) -> str | None:
        """Return the name of the most recently created tag, or None if there are none.

        Annotated tags are dated by their tagger date; lightweight tags by the
        committer date of the commit they point at. Ties go to the
        lexicographically greatest name so the choice is stable.
        """
        dated = []
        for tag in self._repo.tags:
            try:
                created = tag.tag.tagged_date if tag.tag is not None else tag.commit.committed_date
            except ValueError:
                # Tag pointing at a tree or blob.
                logger.debug("Skipping non-commit tag %s", tag.name)
                continue
            dated.append((created, tag.name))
        if not dated:
            return None
        return max(dated)[1]

    def commit_range(self, base: str, tip: str) -> list[str]:
        """Return ids of commits reachable from ``tip`` and not from ``base``.

        Order is whatever ``git rev-list`` yields; callers must not rely on it.
        """
        base_id = self.resolve(base)
        tip_id = self.resolve(tip)
        if base_id == tip_id:
            return []
        return [c.hexsha for c in self._repo.iter_commits(f"{base_id}..{tip_id}")]

    def resolve_range(self, release: str | None = None, last: str | None = None) -> CommitRange:
        """Work out the release range from optional explicit references.

        ``tip`` is ``release`` or HEAD; ``base`` is ``last`` or the latest tag.
        """
        tip = self.resolve(release or "HEAD")
        if last is None:
            last = self.latest_tag()
            if last is None:
                raise NoBaselineError()
            logger.debug("Using latest tag %s as range base", last)
        base = self.resolve(last)
        return CommitRange(tip=tip, base=base, commits=self.commit_range(base, tip))

    def commit_record(self, commit_id: str) -> CommitRecord:
        """Build an unassociated CommitRecord from the commit's own metadata."""
        commit = self._commit(commit_id)
        return CommitRecord(id=commit.hexsha, headline=_text(commit.summary), body=_text(commit.message))

    def authored_at(self, ref: str) -> datetime:
        """Return the author date of the commit ``ref`` points at, in UTC."""
        commit = self._commit(ref)
        return datetime.fromtimestamp(commit.authored_date, tz=timezone.utc)

    def config_value(self, key: str) -> str | None:
        """Read a git config value such as ``glance.openai.key``; None if unset."""
        section, _, option = key.rpartition(".")
        if "." in section:
            name, _, subsection = section.partition(".")
            section = f'{name} "{subsection}"'
        reader = self._repo.config_reader()
        if not reader.has_option(section, option):
            return None
        return str(reader.get_value(section, option))

    def remote_url(self, name: str = "origin") -> str | None:
        try:
            return self._repo.remote(name).url
        except ValueError:
            return None

    def _commit(self, ref: str):
        try:
            return self._repo.commit(ref)
        except (git.BadName, git.BadObject, ValueError) as e:
            raise UnresolvableReferenceError(ref, str(e)) from e


def _text(value: str | bytes) -> str:
    # GitPython hands back bytes for messages in undecodable encodings.
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
