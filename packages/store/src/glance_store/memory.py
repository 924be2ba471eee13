"""In-memory store: nothing survives the process.

Useful for dry runs (``store: memory``) and as the fake backend in tests.
Records are copied on the way in and out so callers never alias cache state.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING

from glance_store.base import BaseStore

if TYPE_CHECKING:
    from glance_store.models import CommitRecord, PullRequestRecord


class MemoryStore(BaseStore):
    def __init__(self) -> None:
        super().__init__()
        self.commits: dict[str, CommitRecord] = {}
        self.prs: dict[str, PullRequestRecord] = {}

    def get_commit(self, commit_id: str) -> CommitRecord | None:
        record = self.commits.get(commit_id)
        return copy.deepcopy(record) if record is not None else None

    def get_pr(self, pr_id: str) -> PullRequestRecord | None:
        record = self.prs.get(pr_id)
        return copy.deepcopy(record) if record is not None else None

    def put_commit(self, record: CommitRecord) -> None:
        with self._write_lock:
            self.commits[record.id] = copy.deepcopy(record)

    def put_pr(self, record: PullRequestRecord) -> None:
        with self._write_lock:
            self.prs[record.id] = copy.deepcopy(record)

    def clear(self) -> int:
        with self._write_lock:
            removed = len(self.commits) + len(self.prs)
            self.commits.clear()
            self.prs.clear()
        return removed
