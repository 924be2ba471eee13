"""Abstract store interface.

Any cache backend (files under .git, SQLite, in-memory) implements this
interface. The reconciler depends on BaseStore, not on a concrete backend,
so backends are swappable without touching pipeline code.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from glance_store.models import CommitRecord, PullRequestRecord


class BaseStore(ABC):
    """Durable key-value mapping for commit and pull request records.

    Keys are the commit id string and the PR id string. Writes are idempotent
    overwrites (last write wins). Entries never expire; a refresh requires
    deleting entries out of band (``clear()`` or removing the files).

    Safe for concurrent use by threads of one process. Two processes sharing
    the same cache location are not guaranteed a consistent view.
    """

    def __init__(self) -> None:
        self._write_lock = threading.RLock()

    @abstractmethod
    def get_commit(self, commit_id: str) -> CommitRecord | None:
        """Return the cached commit record, or None if it was never examined."""

    @abstractmethod
    def get_pr(self, pr_id: str) -> PullRequestRecord | None:
        """Return the cached PR record, or None.

        None for a PR id referenced by a cached commit means the cache is
        corrupted; callers treat it as an error, not a miss.
        """

    @abstractmethod
    def put_commit(self, record: CommitRecord) -> None:
        """Persist a commit record, overwriting any previous entry."""

    @abstractmethod
    def put_pr(self, record: PullRequestRecord) -> None:
        """Persist a PR record, overwriting any previous entry."""

    @abstractmethod
    def clear(self) -> int:
        """Delete every cached entry and return how many were removed."""

    def put_pr_batch(self, pr: PullRequestRecord, commits: list[CommitRecord]) -> None:
        """Write a PR and every commit that points at it as one unit.

        The PR record goes first so that no reader can observe a commit
        pointing at a PR id that has no record yet.
        """
        with self._write_lock:
            self.put_pr(pr)
            for commit in commits:
                self.put_commit(commit)

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Optional. Subclasses that need cleanup should override this.
        Default is a no-op so callers can always call close() safely.
        """
