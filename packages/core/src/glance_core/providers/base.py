"""Base summarizer implementing the Template Method pattern.

All providers share the same summarization algorithm:
    summarize() → build_prompt()
                → _call_with_retry() → _call_api()   ← only this differs per provider
                → parse_reply()

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response

Prompt construction, JSON parsing and the retry loop live here
so it is defined once and inherited consistently by every provider.
"""

from __future__ import annotations

import json
import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated

from pydantic import BaseModel, StrictStr, StringConstraints, ValidationError

from glance_core.errors import SummarizationError, SummaryParseError

if TYPE_CHECKING:
    from glance_store.models import PullRequestRecord

logger = logging.getLogger(__name__)

# Shared defaults; subclasses may override as class attributes if needed.
_MAX_RETRIES = 3
_MAX_TOKENS = 512

KNOWN_TAGS = ("feature", "bugfix", "documentation", "test", "misc")

_LEADING_FENCE_RE = re.compile(r"^\s*```[\w+-]*[ \t]*\n?")


@dataclass
class TaggedSummary:
    """One-line description of a pull request plus its change category.

    Derived from a PullRequestRecord on every run; never cached.
    """

    pr_id: str
    tag: str
    summary: str
    url: str


class _Reply(BaseModel):
    # A blank tag would render as an empty "## " heading.
    tag: Annotated[str, StringConstraints(strict=True, strip_whitespace=True, min_length=1)]
    summary: StrictStr


def build_prompt(pr: PullRequestRecord) -> str:
    """Build the single user prompt sent to the provider for one pull request.

    Commit headlines are listed in the PR's own commit order so the same
    record always yields the same prompt.
    """
    commits = "\n".join(f"* {c.headline}" for c in pr.commits)
    tags = ", ".join(KNOWN_TAGS)
    return f"""You are a senior software developer writing a one line summary and tag for a pull request.
I will give you a Pull Request title, body and a list of the commit messages.
Write me a tag and one line summary for that pull request in the following json format:

```
{{
    "tag": "feature",
    "summary": "updated the css to remove all tailwind references"
}}
```

The tag should be one of: {tags}.

Here is the pull request information:

Title: {pr.title}
Body:
{pr.body}

Commit Summaries:
{commits}

Please respond with only the json data of tag and summary"""


def parse_reply(raw: str, pr: PullRequestRecord) -> TaggedSummary:
    """Parse the provider's text into a TaggedSummary.

    Accepts the object bare or wrapped in a fenced code block, with or without
    a language tag. The tag is kept verbatim even when it is not one of
    KNOWN_TAGS, so new categories show up as their own section instead of
    being dropped.
    """
    cleaned = _LEADING_FENCE_RE.sub("", raw.strip(), count=1).replace("```", "").strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise SummaryParseError(f"PR #{pr.id}: reply is not valid JSON: {raw[:200]!r}") from e
    try:
        reply = _Reply.model_validate(data)
    except ValidationError as e:
        raise SummaryParseError(
            f"PR #{pr.id}: reply must carry a non-empty string 'tag' and a string 'summary': {raw[:200]!r}"
        ) from e
    return TaggedSummary(pr_id=pr.id, tag=reply.tag.strip(), summary=reply.summary.strip(), url=pr.url)


class BaseSummarizer(ABC):
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def summarize(self, pr: PullRequestRecord) -> TaggedSummary:
        """Return the tag and one-line summary for a pull request.

        Raises SummarizationError if the provider never answers and
        SummaryParseError if it answers with something unparseable.
        """
        raw = self._call_with_retry(build_prompt(pr))
        if raw is None:
            raise SummarizationError(f"PR #{pr.id}: {self.__class__.__name__} gave no response")
        return parse_reply(raw, pr)

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, prompt: str) -> str:
        """Make a single API call and return the raw text response.

        This is the only method subclasses must implement. It should raise
        on failure; _call_with_retry handles retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _call_with_retry(self, prompt: str) -> str | None:
        """Retry _call_api up to MAX_RETRIES times with exponential backoff."""
        for attempt in range(self.MAX_RETRIES):
            try:
                return self._call_api(prompt)
            except Exception as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s API failed after %d attempts: %s",
                        self.__class__.__name__,
                        self.MAX_RETRIES,
                        e,
                    )
                    return None
                delay = 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                time.sleep(delay)
        return None
