"""Tests for the LLM client and response parsing."""

from unittest.mock import MagicMock, patch

import pytest

from content_enhancer.llm_client import (
    PROMPTS,
    LLMClient,
    LLMClientError,
    create_llm_client,
    parse_faq_response,
    parse_json_response,
    render_prompt,
)
from content_enhancer.models import ContentItem


def _response(text):
    response = MagicMock()
    response.content = [MagicMock(text=text)]
    return response


@pytest.fixture
def mock_anthropic():
    """Patch the Anthropic SDK and HTTP client used by LLMClient."""
    with patch("content_enhancer.llm_client.httpx.Client"), \
            patch("content_enhancer.llm_client.anthropic.Anthropic") as anthropic_cls:
        yield anthropic_cls.return_value


class TestLLMClient:
    """Tests for LLMClient.call."""

    def test_requires_api_key(self, monkeypatch):
        """Test that a missing key raises."""
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        with pytest.raises(LLMClientError, match="No API key"):
            LLMClient()

    def test_generate_content_returns_dict(self, mock_anthropic):
        """Test that JSON prompts are parsed into a dict."""
        mock_anthropic.messages.create.return_value = _response(
            '```json\n{"title": "T", "content": "<p>x</p>"}\n```'
        )
        client = create_llm_client(api_key="test-key", model="default-model")
        item = ContentItem(id="a", title="Cycling In The Rain", primary_keyword="cycling")

        result = client.call("generate_content", [item])

        assert result == {"title": "T", "content": "<p>x</p>"}
        kwargs = mock_anthropic.messages.create.call_args.kwargs
        assert kwargs["model"] == "default-model"
        assert kwargs["max_tokens"] == PROMPTS["generate_content"].max_tokens
        assert "Cycling In The Rain" in kwargs["messages"][0]["content"]

    def test_model_override(self, mock_anthropic):
        """Test that a per-call model wins over the client default."""
        mock_anthropic.messages.create.return_value = _response("SUMMARY: x")
        client = LLMClient(api_key="test-key", model="default-model")

        result = client("analyze", ["Some text"], "other-model")

        assert result == "SUMMARY: x"
        assert mock_anthropic.messages.create.call_args.kwargs["model"] == "other-model"

    def test_unknown_prompt(self, mock_anthropic):
        """Test that unregistered prompt keys raise."""
        client = LLMClient(api_key="test-key")
        with pytest.raises(LLMClientError, match="Unknown prompt key"):
            client.call("translate", ["x"])

    def test_api_failure_wrapped(self, mock_anthropic):
        """Test that SDK errors surface as LLMClientError."""
        mock_anthropic.messages.create.side_effect = RuntimeError("overloaded")
        client = LLMClient(api_key="test-key")

        with pytest.raises(LLMClientError, match="overloaded"):
            client.call("optimize", ["<p>x</p>"])

    def test_bad_json_raises(self, mock_anthropic):
        """Test that a non-JSON reply to a JSON prompt raises."""
        mock_anthropic.messages.create.return_value = _response("Sorry, I cannot help.")
        client = LLMClient(api_key="test-key")

        with pytest.raises(LLMClientError):
            client.call("generate_content", ["Cycling"])


class TestRenderPrompt:
    """Tests for render_prompt."""

    def test_content_item_subject(self):
        """Test title and keyword from a ContentItem."""
        item = ContentItem(id="a", title="Cycling In The Rain", primary_keyword="wet cycling")
        prompt = render_prompt(PROMPTS["generate_content"], [item])

        assert "topic: Cycling In The Rain" in prompt
        assert "first paragraph): wet cycling" in prompt

    def test_dict_subject_keyword_fallback(self):
        """Test that a dict without keyword uses its title."""
        prompt = render_prompt(PROMPTS["generate_content"], [{"title": "Road Bikes"}])
        assert "first paragraph): Road Bikes" in prompt

    def test_extra_context_lines(self):
        """Test that additional string args become context lines."""
        prompt = render_prompt(PROMPTS["generate_content"], ["Road Bikes", "Audience: commuters"])
        assert "Context: Audience: commuters" in prompt

    def test_missing_subject(self):
        """Test that empty args or titles raise."""
        with pytest.raises(LLMClientError):
            render_prompt(PROMPTS["analyze"], [])
        with pytest.raises(LLMClientError):
            render_prompt(PROMPTS["analyze"], [{"title": ""}])


class TestParseJsonResponse:
    """Tests for parse_json_response."""

    def test_plain_json(self):
        """Test a bare JSON object."""
        assert parse_json_response('{"a": 1}') == {"a": 1}

    def test_surrounding_prose(self):
        """Test that leading and trailing text is ignored."""
        assert parse_json_response('Here it is: {"a": 1} Enjoy!') == {"a": 1}

    def test_non_object_rejected(self):
        """Test that JSON arrays are rejected."""
        with pytest.raises(LLMClientError, match="Expected a JSON object"):
            parse_json_response("[1, 2]")

    def test_broken_json(self):
        """Test that malformed JSON raises."""
        with pytest.raises(LLMClientError):
            parse_json_response('{"a": }')


class TestParseFaqResponse:
    """Tests for parse_faq_response."""

    def test_pairs_parsed(self):
        """Test Q:/A: blocks."""
        text = """Q: What is HIIT?
A: Short intense intervals.

Q: How often?
A: Twice a week."""
        assert parse_faq_response(text) == [
            {"question": "What is HIIT?", "answer": "Short intense intervals."},
            {"question": "How often?", "answer": "Twice a week."},
        ]

    def test_unanswered_question_dropped(self):
        """Test that a question without answer is skipped."""
        assert parse_faq_response("Q: Lonely?\nQ: Paired?\nA: Yes.") == [
            {"question": "Paired?", "answer": "Yes."},
        ]
