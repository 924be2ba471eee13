"""Tests for AI provider implementations.

Shared behaviour (build_prompt, parse_reply, _call_with_retry) lives in the
base module and is tested once via a lightweight stub, not duplicated per
provider. Provider-specific tests cover only what differs between
implementations: the SDK client setup and _call_api.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from glance_core.errors import SummarizationError, SummaryParseError
from glance_core.providers.anthropic import AnthropicSummarizer
from glance_core.providers.base import BaseSummarizer, build_prompt, parse_reply
from glance_core.providers.openai import OpenAISummarizer
from glance_store.models import CommitRecord, PullRequestRecord

VALID_JSON = json.dumps({"tag": "feature", "summary": "add retry logic for flaky network calls"})


def _pr():
    return PullRequestRecord(
        id="42",
        title="Add retry logic",
        body="Network calls to the registry fail intermittently.",
        author="octocat",
        url="https://github.com/acme/widgets/pull/42",
        updated_at="2024-06-01T10:00:00Z",
        merged_at="2024-06-01T11:00:00Z",
        commits=[
            CommitRecord(id="b" * 40, headline="Add retry helper", body="", pr="42"),
            CommitRecord(id="c" * 40, headline="Use retry in client", body="", pr="42"),
        ],
    )


class _StubSummarizer(BaseSummarizer):
    """Minimal concrete subclass used to test BaseSummarizer shared methods."""

    def __init__(self, reply=VALID_JSON):
        self.reply = reply
        self.prompts = []

    def _call_api(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply


# ---------------------------------------------------------------------------
# Shared behaviour, tested once through the stub, not per provider
# ---------------------------------------------------------------------------


class TestParseReply:
    def test_parses_valid_json(self):
        summary = parse_reply(VALID_JSON, _pr())
        assert summary.tag == "feature"
        assert summary.summary == "add retry logic for flaky network calls"
        assert summary.pr_id == "42"
        assert summary.url == "https://github.com/acme/widgets/pull/42"

    @pytest.mark.parametrize(
        "wrapped",
        [
            f"```json\n{VALID_JSON}\n```",
            f"```\n{VALID_JSON}\n```",
            f"```JSON\n{VALID_JSON}```",
            f"  ```json\n{VALID_JSON}\n```  \n",
        ],
    )
    def test_fenced_reply_parses_like_bare_reply(self, wrapped):
        assert parse_reply(wrapped, _pr()) == parse_reply(VALID_JSON, _pr())

    def test_unknown_tag_kept_verbatim(self):
        raw = json.dumps({"tag": "performance", "summary": "faster startup"})
        assert parse_reply(raw, _pr()).tag == "performance"

    def test_missing_summary_raises(self):
        with pytest.raises(SummaryParseError):
            parse_reply(json.dumps({"tag": "feature"}), _pr())

    def test_missing_tag_raises(self):
        with pytest.raises(SummaryParseError):
            parse_reply(json.dumps({"summary": "something"}), _pr())

    def test_non_string_field_raises(self):
        with pytest.raises(SummaryParseError):
            parse_reply(json.dumps({"tag": 3, "summary": "x"}), _pr())

    @pytest.mark.parametrize("tag", ["", "   ", "\n"])
    def test_blank_tag_raises(self, tag):
        with pytest.raises(SummaryParseError):
            parse_reply(json.dumps({"tag": tag, "summary": "something"}), _pr())

    def test_not_json_raises(self):
        with pytest.raises(SummaryParseError):
            parse_reply("Sure! Here is your summary: it adds retries.", _pr())

    def test_json_array_raises(self):
        with pytest.raises(SummaryParseError):
            parse_reply(json.dumps([{"tag": "feature", "summary": "x"}]), _pr())

    def test_parse_error_is_a_summarization_error(self):
        assert issubclass(SummaryParseError, SummarizationError)


class TestBuildPrompt:
    def test_contains_title_and_body(self):
        prompt = build_prompt(_pr())
        assert "Title: Add retry logic" in prompt
        assert "Network calls to the registry fail intermittently." in prompt

    def test_commit_headlines_in_pr_order(self):
        prompt = build_prompt(_pr())
        assert "* Add retry helper\n* Use retry in client" in prompt

    def test_lists_all_known_tags(self):
        prompt = build_prompt(_pr())
        assert "feature, bugfix, documentation, test, misc" in prompt

    def test_deterministic(self):
        assert build_prompt(_pr()) == build_prompt(_pr())


class TestSummarize:
    def test_sends_prompt_and_parses_reply(self):
        stub = _StubSummarizer()
        summary = stub.summarize(_pr())
        assert summary.tag == "feature"
        assert stub.prompts == [build_prompt(_pr())]

    def test_unparseable_reply_raises(self):
        with pytest.raises(SummaryParseError):
            _StubSummarizer(reply="no idea").summarize(_pr())


class TestBaseSummarizerRetry:
    def test_raises_after_max_retries(self):
        """When _call_api raises on every attempt, summarize() raises SummarizationError."""

        class _AlwaysFail(BaseSummarizer):
            def _call_api(self, prompt: str) -> str:
                raise RuntimeError("network error")

        # Patch time.sleep so the test doesn't actually wait.
        with patch("glance_core.providers.base.time.sleep"):
            with pytest.raises(SummarizationError):
                _AlwaysFail().summarize(_pr())

    def test_retries_on_transient_failure(self):
        call_count = 0

        class _FailOnceThenSucceed(BaseSummarizer):
            def _call_api(self, prompt: str) -> str:
                nonlocal call_count
                call_count += 1
                if call_count == 1:
                    raise RuntimeError("transient")
                return VALID_JSON

        with patch("glance_core.providers.base.time.sleep"):
            summary = _FailOnceThenSucceed().summarize(_pr())
        assert summary.tag == "feature"
        assert call_count == 2


# ---------------------------------------------------------------------------
# Provider-specific: only what differs between Anthropic and OpenAI
# ---------------------------------------------------------------------------


class TestAnthropicSummarizer:
    def test_raises_import_error_without_sdk(self):
        with patch.dict("sys.modules", {"anthropic": None}):
            with pytest.raises(ImportError):
                AnthropicSummarizer(api_key="key")

    def test_model_is_claude(self):
        assert "claude" in AnthropicSummarizer.MODEL


class TestOpenAISummarizer:
    def test_raises_import_error_without_sdk(self):
        import glance_core.providers.openai as openai_mod

        real_openai = openai_mod._OpenAI
        openai_mod._OpenAI = None
        try:
            with pytest.raises(ImportError):
                OpenAISummarizer(api_key="key")
        finally:
            openai_mod._OpenAI = real_openai

    def test_model_is_gpt(self):
        assert "gpt" in OpenAISummarizer.MODEL

    def test_call_api_sends_single_user_message(self):
        summarizer = OpenAISummarizer.__new__(OpenAISummarizer)
        summarizer.client = MagicMock()
        response = summarizer.client.chat.completions.create.return_value
        response.choices = [MagicMock()]
        response.choices[0].message.content = VALID_JSON

        assert summarizer._call_api("prompt text") == VALID_JSON
        kwargs = summarizer.client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == OpenAISummarizer.MODEL
        assert kwargs["messages"] == [{"role": "user", "content": "prompt text"}]
