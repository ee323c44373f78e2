# -*- coding: utf-8 -*-
"""
Answer-engine optimization (AEO) module.

Restructures content so answer engines can lift it directly:
- Direct answer: a short definitional paragraph surfaced in an answer box
- List and table snippets: existing structured blocks scored for capture
- FAQ: question/answer pairs with schema.org markup

The optimizer only adds markup. Surrounding content is never replaced or
reflowed.
"""

import re
from typing import Optional, Sequence, Union

from .models import AEOOptimizationResult, AEOSnippet, FAQItem, SnippetType

# Paragraph length window for direct answers
MIN_ANSWER_LENGTH = 40
MAX_ANSWER_LENGTH = 300
CONCISE_ANSWER_LENGTH = 160
DIRECT_ANSWER_THRESHOLD = 70

LIST_ITEM_RANGE = (3, 10)
TABLE_ROW_RANGE = (3, 8)
MAX_FAQ_SNIPPET_ENTRIES = 5

LIST_SNIPPET_SCORE = 85
TABLE_SNIPPET_SCORE = 90
FAQ_SNIPPET_SCORE = 95

SNIPPET_BONUS = {
    SnippetType.PARAGRAPH: 10,
    SnippetType.LIST: 10,
    SnippetType.TABLE: 10,
    SnippetType.FAQ: 15,
}

MISSING_SNIPPET_RECOMMENDATIONS = {
    SnippetType.PARAGRAPH: (
        "Add a concise direct answer (40-160 characters) at the beginning of the content"
    ),
    SnippetType.LIST: "Include a bulleted or numbered list for better snippet capture",
    SnippetType.TABLE: "Consider adding a comparison table for structured data presentation",
    SnippetType.FAQ: "Add FAQ section with schema markup for voice search optimization",
}
STRUCTURE_RECOMMENDATION = (
    "Improve content structure with clear headers and direct answers to common questions"
)
STRUCTURE_THRESHOLD = 70

TAG_PATTERN = re.compile(r"<[^>]+>")
DEFINITION_PATTERN = re.compile(
    r"^[^.,;:!?]*?\b(is|are|means|refers to|can be defined as)\b",
    re.IGNORECASE,
)
DIGIT_PATTERN = re.compile(r"\d")
LIST_PATTERN = re.compile(r"<(ul|ol)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
LIST_ITEM_PATTERN = re.compile(r"<li\b[^>]*>.*?</li\s*>", re.IGNORECASE | re.DOTALL)
TABLE_PATTERN = re.compile(r"<table\b[^>]*>.*?</table\s*>", re.IGNORECASE | re.DOTALL)
TABLE_ROW_PATTERN = re.compile(r"<tr\b[^>]*>", re.IGNORECASE)
PARAGRAPH_PATTERN = re.compile(r"<p\b[^>]*>.*?</p\s*>", re.IGNORECASE | re.DOTALL)

FAQEntry = Union[FAQItem, dict]


class AEOOptimizer:
    """Find and inject answer-engine snippets in HTML content."""

    def optimize(
        self,
        content: str,
        primary_keyword: str,
        faq_entries: Optional[Sequence[FAQEntry]] = None,
    ) -> AEOOptimizationResult:
        """
        Optimize content for answer engines.

        Args:
            content: HTML content.
            primary_keyword: Keyword the direct answer must mention.
            faq_entries: Optional FAQ entries (FAQItem or question/answer dicts).

        Returns:
            AEOOptimizationResult with snippets, score, recommendations and
            the content with the answer box and FAQ block injected.
        """
        if not isinstance(content, str):
            content = ""
        primary_keyword = primary_keyword.strip() if isinstance(primary_keyword, str) else ""
        faqs = _coerce_faqs(faq_entries)

        snippets: list[AEOSnippet] = []
        optimized = content

        direct_answer = self.create_direct_answer(content, primary_keyword)
        if direct_answer:
            snippets.append(direct_answer)
            optimized = inject_direct_answer(optimized, direct_answer)

        list_snippet = self.create_list_snippet(content)
        if list_snippet:
            snippets.append(list_snippet)

        table_snippet = self.create_table_snippet(content)
        if table_snippet:
            snippets.append(table_snippet)

        if faqs:
            snippets.append(self.create_faq_snippet(faqs))
            optimized = optimized + render_faq_block(faqs)

        overall_score = calculate_overall_score(snippets)
        return AEOOptimizationResult(
            snippets=snippets,
            overall_score=overall_score,
            recommendations=generate_recommendations(snippets, overall_score),
            optimized_content=optimized,
        )

    def create_direct_answer(self, content: str, keyword: str) -> Optional[AEOSnippet]:
        """Return the first paragraph that qualifies as a direct answer."""
        if not content or not keyword:
            return None

        keyword_lower = keyword.lower()
        paragraphs = [p.strip() for p in content.split("</p>") if p.strip()]

        for para in paragraphs:
            clean = strip_tags(para).strip()
            if not MIN_ANSWER_LENGTH <= len(clean) <= MAX_ANSWER_LENGTH:
                continue
            if keyword_lower not in clean.lower():
                continue

            score = score_paragraph(clean, keyword)
            if score >= DIRECT_ANSWER_THRESHOLD:
                return AEOSnippet(
                    type=SnippetType.PARAGRAPH,
                    content=clean,
                    score=score,
                    optimization="Direct answer optimized for AI Overview",
                )

        return None

    def create_list_snippet(self, content: str) -> Optional[AEOSnippet]:
        """Score the first list block if its item count is in range."""
        match = LIST_PATTERN.search(content or "")
        if not match:
            return None

        first_list = match.group(0)
        items = len(LIST_ITEM_PATTERN.findall(first_list))
        low, high = LIST_ITEM_RANGE
        if not low <= items <= high:
            return None

        return AEOSnippet(
            type=SnippetType.LIST,
            content=first_list,
            score=LIST_SNIPPET_SCORE,
            optimization="List format optimized for featured snippet",
        )

    def create_table_snippet(self, content: str) -> Optional[AEOSnippet]:
        """Score the first table block if its row count is in range."""
        match = TABLE_PATTERN.search(content or "")
        if not match:
            return None

        first_table = match.group(0)
        rows = len(TABLE_ROW_PATTERN.findall(first_table))
        low, high = TABLE_ROW_RANGE
        if not low <= rows <= high:
            return None

        return AEOSnippet(
            type=SnippetType.TABLE,
            content=first_table,
            score=TABLE_SNIPPET_SCORE,
            optimization="Table format optimized for comparison snippet",
        )

    def create_faq_snippet(self, faqs: Sequence[FAQItem]) -> AEOSnippet:
        """Build the FAQ snippet from the first few entries."""
        markup = "".join(
            _render_question(faq) for faq in faqs[:MAX_FAQ_SNIPPET_ENTRIES]
        )
        return AEOSnippet(
            type=SnippetType.FAQ,
            content=markup,
            score=FAQ_SNIPPET_SCORE,
            optimization="FAQ schema markup for voice search and AI overviews",
        )


def strip_tags(text: str) -> str:
    """Remove all markup tags from text."""
    return TAG_PATTERN.sub("", text)


def score_paragraph(paragraph: str, keyword: str) -> float:
    """
    Score a clean paragraph as a direct-answer candidate (0-100).

    Base 50; +20 for 40-160 chars or +10 for 161-300; +15 keyword present;
    +10 starts with keyword; +15 definitional opening; +5 contains a digit.
    """
    score = 50
    length = len(paragraph)
    paragraph_lower = paragraph.lower()
    keyword_lower = keyword.lower()

    if MIN_ANSWER_LENGTH <= length <= CONCISE_ANSWER_LENGTH:
        score += 20
    elif CONCISE_ANSWER_LENGTH < length <= MAX_ANSWER_LENGTH:
        score += 10

    if keyword_lower and keyword_lower in paragraph_lower:
        score += 15
    if keyword_lower and paragraph_lower.startswith(keyword_lower):
        score += 10
    if DEFINITION_PATTERN.search(paragraph):
        score += 15
    if DIGIT_PATTERN.search(paragraph):
        score += 5

    return float(min(score, 100))


def inject_direct_answer(content: str, answer: AEOSnippet) -> str:
    """Insert an answer box right before the first paragraph element."""
    match = PARAGRAPH_PATTERN.search(content)
    if not match:
        return content

    box = (
        '<div class="direct-answer">'
        '<h3 class="direct-answer-title">Quick Answer</h3>'
        f"<p>{answer.content}</p>"
        "</div>"
    )
    first_paragraph = match.group(0)
    return content.replace(first_paragraph, box + first_paragraph, 1)


def render_faq_block(faqs: Sequence[FAQItem]) -> str:
    """Render the FAQPage block appended to the end of the content."""
    questions = "".join(_render_question(faq) for faq in faqs)
    return (
        '<div class="faq-section" itemscope itemtype="https://schema.org/FAQPage">'
        "<h2>Frequently Asked Questions</h2>"
        f"{questions}"
        "</div>"
    )


def build_faq_schema(faq_entries: Optional[Sequence[FAQEntry]]) -> Optional[dict]:
    """
    Build a schema.org FAQPage JSON-LD object.

    Returns:
        The JSON-LD dict, or None when there are no usable entries.
    """
    faqs = _coerce_faqs(faq_entries)
    if not faqs:
        return None

    return {
        "@context": "https://schema.org",
        "@type": "FAQPage",
        "mainEntity": [
            {
                "@type": "Question",
                "name": faq.question,
                "acceptedAnswer": {"@type": "Answer", "text": faq.answer},
            }
            for faq in faqs
        ],
    }


def calculate_overall_score(snippets: Sequence[AEOSnippet]) -> float:
    """Mean snippet score plus a bonus per snippet kind, capped at 100."""
    if not snippets:
        return 0.0

    average = sum(s.score for s in snippets) / len(snippets)
    kinds = {s.type for s in snippets}
    bonus = sum(SNIPPET_BONUS[kind] for kind in kinds)
    return float(min(average + bonus, 100))


def generate_recommendations(snippets: Sequence[AEOSnippet], score: float) -> list[str]:
    """One suggestion per missing snippet kind, plus a structural one below 70."""
    present = {s.type for s in snippets}
    recommendations = [
        text for kind, text in MISSING_SNIPPET_RECOMMENDATIONS.items()
        if kind not in present
    ]
    if score < STRUCTURE_THRESHOLD:
        recommendations.append(STRUCTURE_RECOMMENDATION)
    return recommendations


def _render_question(faq: FAQItem) -> str:
    return (
        '<div itemscope itemprop="mainEntity" itemtype="https://schema.org/Question">'
        f'<h3 itemprop="name">{faq.question}</h3>'
        '<div itemscope itemprop="acceptedAnswer" itemtype="https://schema.org/Answer">'
        f'<div itemprop="text">{faq.answer}</div>'
        "</div>"
        "</div>"
    )


def _coerce_faqs(entries: Optional[Sequence[FAQEntry]]) -> list[FAQItem]:
    if not entries:
        return []
    faqs = [FAQItem.coerce(entry) for entry in entries]
    return [faq for faq in faqs if faq is not None]
