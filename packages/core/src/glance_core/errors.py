"""Exception hierarchy for the release-notes pipeline.

Fatal errors (RepositoryError subclasses) propagate to the CLI and end the
run. Everything else is scoped to one commit or one pull request: the
pipeline catches it, reports it, and moves on to the next item.
"""

from __future__ import annotations


class GlanceError(Exception):
    """Base class for all git-glance errors."""


# ---------------------------------------------------------------------------
# Fatal
# ---------------------------------------------------------------------------


class RepositoryError(GlanceError):
    """The repository or one of the requested references is unusable."""


class RepositoryNotFoundError(RepositoryError):
    pass


class UnresolvableReferenceError(RepositoryError):
    def __init__(self, ref: str, reason: str = ""):
        self.ref = ref
        message = f"Could not resolve reference {ref!r}"
        super().__init__(f"{message}: {reason}" if reason else message)


class NoBaselineError(RepositoryError):
    def __init__(self):
        super().__init__("No tags found and no last release specified. Pass --last <ref> to set the range start.")


# ---------------------------------------------------------------------------
# Per-item
# ---------------------------------------------------------------------------


class PRLookupError(GlanceError):
    """The pull request lookup for one commit failed; the commit is retried next run."""


class MalformedResponseError(PRLookupError):
    """The lookup backend answered, but without a required field."""


class SummarizationError(GlanceError):
    """No summary could be produced for one pull request."""


class SummaryParseError(SummarizationError):
    """The provider's reply was not a JSON object with string ``tag`` and ``summary``."""


# ---------------------------------------------------------------------------
# Data integrity
# ---------------------------------------------------------------------------


class CacheCorruptionError(GlanceError):
    """A cached commit points at a pull request that has no cached record."""

    def __init__(self, commit_id: str, pr_id: str):
        self.commit_id = commit_id
        self.pr_id = pr_id
        super().__init__(
            f"Cached commit {commit_id} references PR #{pr_id}, but no record for that PR exists. "
            "Delete the commit's cache entry (or run `glance cache clear`) to rebuild it."
        )
