"""
LLM client abstraction for content generation.

This module provides the generative call used by the scheduler: a prompt
key, its argument list and a model selection go in, text or parsed JSON
comes out. Any failure is raised as LLMClientError.
"""

import json
import os
import re
from dataclasses import dataclass
from typing import Any, Optional

import anthropic
import httpx

from .config import DEFAULT_MODEL


class LLMClientError(Exception):
    """Raised when LLM operations fail."""
    pass


@dataclass(frozen=True)
class PromptSpec:
    """A registered prompt: system text, user template and output format."""
    system: str
    template: str
    expects_json: bool = False
    max_tokens: int = 4096


GENERATE_SYSTEM_PROMPT = """You are an expert SEO content writer.

Write complete, accurate, well-structured articles in HTML.

CRITICAL RULES - MUST FOLLOW:
1. Use <p>, <h2>, <h3>, <ul>/<ol> and <table> elements only - no inline styles
2. Open the article with a short paragraph that directly answers the topic
3. Do not invent statistics, prices or quotes
4. Keep the primary keyword natural - avoid keyword stuffing

OUTPUT FORMAT:
Return ONLY a JSON object, no commentary, with these keys:
title, content, primary_keyword, meta_description, semantic_keywords (list),
faq_section (list of {"question", "answer"}), references (list),
key_takeaways (list), image_details (list of {"alt", "description"})"""

GENERATE_TEMPLATE = """Write an article for the topic: {title}

Primary keyword (use in the first paragraph): {keyword}
{extra}
Return the JSON object now."""

ANALYZE_SYSTEM_PROMPT = """You are an SEO content analyst. Be concise and factual."""

ANALYZE_TEMPLATE = """Analyze the following content and summarize its topic, intent and the
questions it answers.

CONTENT:
{title}

Respond in this exact format:
SUMMARY: [one sentence]
INTENT: [informational or transactional]
RECOMMENDED: [comma-separated keywords]"""

OPTIMIZE_SYSTEM_PROMPT = """You are an expert SEO content optimizer.

CRITICAL RULES - MUST FOLLOW:
1. Keep all original facts and the original tone
2. Never delete significant original content - only add or modify
3. Keep the HTML structure intact

OUTPUT FORMAT:
Return ONLY the optimized HTML. No explanation or commentary."""

OPTIMIZE_TEMPLATE = """Optimize this content for search and answer engines.

Primary keyword: {keyword}

CONTENT:
{title}"""

PROMPTS: dict[str, PromptSpec] = {
    "generate_content": PromptSpec(
        system=GENERATE_SYSTEM_PROMPT,
        template=GENERATE_TEMPLATE,
        expects_json=True,
        max_tokens=8000,
    ),
    "analyze": PromptSpec(
        system=ANALYZE_SYSTEM_PROMPT,
        template=ANALYZE_TEMPLATE,
        max_tokens=500,
    ),
    "optimize": PromptSpec(
        system=OPTIMIZE_SYSTEM_PROMPT,
        template=OPTIMIZE_TEMPLATE,
    ),
}

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class LLMClient:
    """
    Client for LLM-based content generation.

    Supports Anthropic Claude API.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
    ):
        """
        Initialize the LLM client.

        Args:
            api_key: API key for the LLM provider. If None, reads from ANTHROPIC_API_KEY env var.
            model: Model identifier used when a call does not select one.
        """
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.model = model

        if not self.api_key:
            raise LLMClientError(
                "No API key provided. Set ANTHROPIC_API_KEY environment variable "
                "or pass api_key parameter."
            )

        http_client = httpx.Client(
            timeout=httpx.Timeout(60.0, connect=30.0),
            follow_redirects=True,
        )
        self.client = anthropic.Anthropic(
            api_key=self.api_key,
            http_client=http_client,
        )

    def __call__(self, prompt_key: str, args: list, model: Optional[str] = None) -> Any:
        return self.call(prompt_key, args, model)

    def call(self, prompt_key: str, args: list, model: Optional[str] = None) -> Any:
        """
        Run a registered prompt.

        Args:
            prompt_key: Key into PROMPTS.
            args: Prompt arguments; the first is the content item (or a
                plain title string).
            model: Model override for this call.

        Returns:
            Response text, or a dict for prompts that expect JSON.

        Raises:
            LLMClientError: Unknown prompt, API failure or unparseable response.
        """
        prompt_spec = PROMPTS.get(prompt_key)
        if prompt_spec is None:
            raise LLMClientError(f"Unknown prompt key: {prompt_key}")

        user_prompt = render_prompt(prompt_spec, args)

        try:
            response = self.client.messages.create(
                model=model or self.model,
                max_tokens=prompt_spec.max_tokens,
                system=prompt_spec.system,
                messages=[{"role": "user", "content": user_prompt}],
            )
            text = response.content[0].text
        except Exception as e:
            raise LLMClientError(f"LLM API call failed: {e}")

        if prompt_spec.expects_json:
            return parse_json_response(text)
        return text


def render_prompt(prompt_spec: PromptSpec, args: list) -> str:
    """Fill a prompt template from the call arguments."""
    if not args:
        raise LLMClientError("Prompt requires at least one argument")

    subject = args[0]
    if isinstance(subject, dict):
        title = subject.get("title") or ""
        keyword = subject.get("primary_keyword") or title
    elif isinstance(subject, str):
        title = keyword = subject
    else:
        title = getattr(subject, "title", "") or ""
        keyword = getattr(subject, "primary_keyword", None) or title

    if not title:
        raise LLMClientError("Prompt subject has no title")

    extra = "\n".join(f"Context: {a}" for a in args[1:] if isinstance(a, str) and a)
    return prompt_spec.template.format(title=title, keyword=keyword, extra=extra)


def parse_json_response(response: str) -> dict:
    """
    Parse a JSON object out of an LLM response.

    Tolerates surrounding code fences and leading/trailing prose.

    Raises:
        LLMClientError: If no JSON object can be parsed.
    """
    text = _CODE_FENCE.sub("", response.strip())

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            raise LLMClientError("Response did not contain a JSON object")
        try:
            data = json.loads(text[start:end + 1])
        except json.JSONDecodeError as e:
            raise LLMClientError(f"Invalid JSON in response: {e}")

    if not isinstance(data, dict):
        raise LLMClientError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def parse_faq_response(response: str) -> list[dict[str, str]]:
    """Parse Q:/A: formatted FAQ text into question/answer dicts."""
    faqs = []
    current_q = None
    current_a = None

    for line in response.strip().split("\n"):
        line = line.strip()
        if line.startswith("Q:"):
            if current_q and current_a:
                faqs.append({"question": current_q, "answer": current_a})
            current_q = line[2:].strip()
            current_a = None
        elif line.startswith("A:"):
            current_a = line[2:].strip()

    # Add last item
    if current_q and current_a:
        faqs.append({"question": current_q, "answer": current_a})

    return faqs


def create_llm_client(
    api_key: Optional[str] = None,
    model: str = DEFAULT_MODEL,
) -> LLMClient:
    """
    Factory function to create an LLM client.

    Args:
        api_key: Optional API key. If None, uses environment variable.
        model: Model to use.

    Returns:
        Configured LLMClient instance.
    """
    return LLMClient(api_key=api_key, model=model)
