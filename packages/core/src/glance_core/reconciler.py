"""Associate each commit in a release with the merged pull request it came from.

The cache is consulted first; only commits never seen before reach the
lookup backend. One successful lookup caches every commit of the returned
PR, so the remaining commits of that PR are cache hits. A PR with twenty
commits costs one external call, not twenty.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterable

from glance_core.errors import CacheCorruptionError, PRLookupError
from glance_store.models import CommitRecord, PullRequestRecord

if TYPE_CHECKING:
    from glance_core.gh.pull_request import BaseLookup
    from glance_store.base import BaseStore

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Partition of a commit set into PR-grouped and standalone commits.

    Commits whose lookup failed appear in neither mapping; they are listed in
    ``failed`` with the error message and will be retried next run.
    """

    prs: dict[str, PullRequestRecord] = field(default_factory=dict)
    standalone: dict[str, CommitRecord] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)


class Reconciler:
    def __init__(
        self,
        store: BaseStore,
        lookup: BaseLookup,
        commit_info: Callable[[str], CommitRecord],
        workers: int = 1,
    ):
        """
        Args:
            store: Cache holding commit and PR records.
            lookup: Backend that finds the merged PR for a commit.
            commit_info: Builds a CommitRecord from local repository metadata.
            workers: Maximum number of concurrent lookups.
        """
        self.store = store
        self.lookup = lookup
        self.commit_info = commit_info
        self.workers = max(1, workers)
        # Serialises "check cache, then write a PR batch" so two workers never
        # interleave batches for overlapping commit sets.
        self._batch_lock = threading.Lock()

    def reconcile(
        self,
        commit_ids: Iterable[str],
        on_progress: Callable[[str], None] | None = None,
    ) -> ReconcileResult:
        """Classify every commit id as belonging to a PR or standalone."""
        ids = sorted(set(commit_ids))
        result = ReconcileResult()
        result_lock = threading.Lock()

        def visit(commit_id: str) -> None:
            try:
                outcome = self.classify(commit_id)
            except (PRLookupError, CacheCorruptionError) as e:
                logger.warning("Skipping commit %s: %s", commit_id[:7], e)
                with result_lock:
                    result.failed[commit_id] = str(e)
            else:
                with result_lock:
                    if isinstance(outcome, PullRequestRecord):
                        result.prs[outcome.id] = outcome
                    else:
                        result.standalone[commit_id] = outcome
            if on_progress is not None:
                on_progress(commit_id)

        if self.workers == 1:
            for commit_id in ids:
                visit(commit_id)
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                list(pool.map(visit, ids))

        return result

    def classify(self, commit_id: str) -> PullRequestRecord | CommitRecord:
        """Return the PR containing ``commit_id``, or its standalone CommitRecord.

        Raises PRLookupError when the backend fails (nothing is cached) and
        CacheCorruptionError when a cached commit points at a missing PR.
        """
        cached = self._from_cache(commit_id)
        if cached is not None:
            return cached

        logger.debug("Cache miss for %s, looking up PR", commit_id[:7])
        pr = self.lookup.lookup(commit_id)

        with self._batch_lock:
            # Another worker may have cached this commit while we waited on
            # the backend; its batch wins so the commit keeps a single owner.
            cached = self._from_cache(commit_id)
            if cached is not None:
                return cached

            if pr is None:
                record = self.commit_info(commit_id)
                record.pr = None
                self.store.put_commit(record)
                return record

            commits = pr.commit_records()
            if commit_id not in {c.id for c in commits}:
                # Squash and rebase merges: the commit on the branch is not one
                # of the PR's own commits, but it still belongs to the PR.
                queried = self.commit_info(commit_id)
                queried.pr = pr.id
                commits.append(queried)
            self.store.put_pr_batch(pr, commits)
            logger.debug("Cached PR #%s with %d commit(s)", pr.id, len(commits))
            return pr

    def _from_cache(self, commit_id: str) -> PullRequestRecord | CommitRecord | None:
        record = self.store.get_commit(commit_id)
        if record is None:
            return None
        if record.pr is None:
            return record
        pr = self.store.get_pr(record.pr)
        if pr is None:
            raise CacheCorruptionError(commit_id, record.pr)
        return pr
