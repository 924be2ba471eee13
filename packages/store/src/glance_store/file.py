"""FileStore: one JSON file per key inside the repository's metadata directory.

Why files under .git:
- Zero setup: the cache lives next to the objects it describes and disappears
  with the clone.
- Inspectable: every entry is a small JSON document that can be read, edited
  or deleted by hand to force a refresh of a single commit or PR.
- Never committed: nothing under .git is part of the working tree.

Layout:
  <root>/commits/<commit-id>.json  — one CommitRecord per examined commit
  <root>/prs/<pr-id>.json          — one PullRequestRecord per merged PR
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from glance_store.base import BaseStore
from glance_store.models import CommitRecord, PullRequestRecord

logger = logging.getLogger(__name__)

_COMMITS_DIR = "commits"
_PRS_DIR = "prs"


class FileStore(BaseStore):
    """Stores reconciliation records as individual JSON files.

    The root defaults to ``<git-dir>/glance``; the CLI passes it in so this
    class knows nothing about git. Configure via .glance.yml:
    ``store_path: /path/to/cache``.
    """

    def __init__(self, root: str | os.PathLike):
        super().__init__()
        self.root = Path(root)
        self._commits = self.root / _COMMITS_DIR
        self._prs = self.root / _PRS_DIR
        self._commits.mkdir(parents=True, exist_ok=True)
        self._prs.mkdir(parents=True, exist_ok=True)

    def get_commit(self, commit_id: str) -> CommitRecord | None:
        return self._load(self._path(self._commits, commit_id), CommitRecord.from_dict)

    def get_pr(self, pr_id: str) -> PullRequestRecord | None:
        return self._load(self._path(self._prs, pr_id), PullRequestRecord.from_dict)

    def put_commit(self, record: CommitRecord) -> None:
        self._write(self._path(self._commits, record.id), record.to_dict())

    def put_pr(self, record: PullRequestRecord) -> None:
        self._write(self._path(self._prs, record.id), record.to_dict())

    def clear(self) -> int:
        removed = 0
        with self._write_lock:
            for directory in (self._commits, self._prs):
                for entry in directory.glob("*.json"):
                    entry.unlink()
                    removed += 1
        return removed

    @staticmethod
    def _path(directory: Path, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid cache key: {key!r}")
        return directory / f"{key}.json"

    @staticmethod
    def _load(path: Path, from_dict):
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return from_dict(json.load(f))
        except (ValueError, KeyError, TypeError) as e:
            # An unreadable entry is treated as absent so the next lookup
            # rewrites it. UnicodeDecodeError and JSONDecodeError are ValueErrors.
            logger.warning("Ignoring unreadable cache entry %s: %s", path, e)
            return None

    def _write(self, path: Path, data: dict) -> None:
        # Write to a sibling temp file and rename so readers never see a
        # half-written entry.
        with self._write_lock:
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f)
                os.replace(tmp, path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
