"""Shared fixtures: throwaway git repositories built with GitPython."""

from __future__ import annotations

import git
import pytest

from glance_core.git.repository import GitRepository

# 2024-06-03 12:00:00 UTC
BASE_TIME = 1717416000

_ACTOR = git.Actor("Test Author", "author@example.com")


class RepoBuilder:
    """Creates commits and tags with fixed, increasing timestamps."""

    def __init__(self, path):
        self.path = path
        self.repo = git.Repo.init(path)
        with self.repo.config_writer() as cw:
            cw.set_value("user", "name", _ACTOR.name)
            cw.set_value("user", "email", _ACTOR.email)
        self._clock = BASE_TIME
        self._count = 0

    def commit(self, message: str, when: int | None = None) -> str:
        if when is None:
            when = self._clock
            self._clock += 3600
        self._count += 1
        (self.path / "changes.txt").write_text(f"change {self._count}\n")
        self.repo.index.add(["changes.txt"])
        date = f"{when} +0000"
        commit = self.repo.index.commit(
            message,
            author=_ACTOR,
            committer=_ACTOR,
            author_date=date,
            commit_date=date,
        )
        return commit.hexsha

    def tag(self, name: str, ref: str = "HEAD", message: str | None = None) -> None:
        if message is None:
            self.repo.create_tag(name, ref=ref)
        else:
            self.repo.create_tag(name, ref=ref, message=message)

    def open(self) -> GitRepository:
        return GitRepository(str(self.path))


@pytest.fixture
def repo_builder(tmp_path):
    return RepoBuilder(tmp_path / "repo")
