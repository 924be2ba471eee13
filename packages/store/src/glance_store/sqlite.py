"""SQLiteStore: single-file cache for CI jobs and shared build directories.

Why SQLite as the alternative backend:
- Batteries included: ships with Python, no extra dependencies.
- One file instead of thousands: easier to persist between CI runs with a
  cache action than a directory tree of tiny JSON files.
- Keyed lookups on the primary key are microseconds.

Schema:
  commits  — one row per examined commit, record stored as JSON
  prs      — one row per merged pull request, record stored as JSON
"""

from __future__ import annotations

import json
import sqlite3
import threading

from glance_store.base import BaseStore
from glance_store.models import CommitRecord, PullRequestRecord

_SCHEMA = """
CREATE TABLE IF NOT EXISTS commits (
    id      TEXT PRIMARY KEY,
    pr      TEXT,
    record  TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS prs (
    id      TEXT PRIMARY KEY,
    record  TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_commits_pr ON commits (pr);
"""


class SQLiteStore(BaseStore):
    """Stores reconciliation records in a local SQLite database file.

    The database file path defaults to ``<git-dir>/glance/cache.db``.
    Configure via .glance.yml: ``store: sqlite`` and ``store_path: ...``.
    """

    def __init__(self, db_path: str = ".glance.db"):
        super().__init__()
        # Worker threads share one connection; every access goes through _lock.
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def get_commit(self, commit_id: str) -> CommitRecord | None:
        with self._lock:
            row = self._conn.execute("SELECT record FROM commits WHERE id=?", (commit_id,)).fetchone()
        return CommitRecord.from_dict(json.loads(row["record"])) if row else None

    def get_pr(self, pr_id: str) -> PullRequestRecord | None:
        with self._lock:
            row = self._conn.execute("SELECT record FROM prs WHERE id=?", (pr_id,)).fetchone()
        return PullRequestRecord.from_dict(json.loads(row["record"])) if row else None

    def put_commit(self, record: CommitRecord) -> None:
        with self._lock:
            self._upsert_commit(record)
            self._conn.commit()

    def put_pr(self, record: PullRequestRecord) -> None:
        with self._lock:
            self._upsert_pr(record)
            self._conn.commit()

    def put_pr_batch(self, pr: PullRequestRecord, commits: list[CommitRecord]) -> None:
        # One transaction: either the whole PR and its commits land, or none do.
        with self._write_lock, self._lock:
            try:
                self._upsert_pr(pr)
                for commit in commits:
                    self._upsert_commit(commit)
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise

    def clear(self) -> int:
        with self._lock:
            removed = self._conn.execute("DELETE FROM commits").rowcount
            removed += self._conn.execute("DELETE FROM prs").rowcount
            self._conn.commit()
        return removed

    def close(self) -> None:
        self._conn.close()

    def _upsert_commit(self, record: CommitRecord) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO commits (id, pr, record) VALUES (?, ?, ?)",
            (record.id, record.pr, json.dumps(record.to_dict())),
        )

    def _upsert_pr(self, record: PullRequestRecord) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO prs (id, record) VALUES (?, ?)",
            (record.id, json.dumps(record.to_dict())),
        )
