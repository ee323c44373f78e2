"""
Content scoring for the performance tracker.

Each score is a simple additive checklist over a GeneratedContent and is
clamped to 0-100.
"""

import re
from typing import Sequence

from .models import GeneratedContent, SitemapPage

HREF_PATTERN = re.compile(r"""href=["']([^"']+)["']""", re.IGNORECASE)


def _clamp(score: float) -> float:
    return float(max(0, min(score, 100)))


def calculate_content_quality_score(content: GeneratedContent) -> float:
    """
    Score overall completeness of a generated article.

    +10 title over 20 chars, +10 meta description of 120+ chars, +15 five or
    more semantic keywords, +20 body over 1000 chars, +10 two or more images,
    +10 three or more FAQs, +10 JSON-LD schema, +15 three or more references.
    """
    score = 0
    if len(content.title) > 20:
        score += 10
    if len(content.meta_description) >= 120:
        score += 10
    if len(content.semantic_keywords) >= 5:
        score += 15
    if len(content.content) > 1000:
        score += 20
    if len(content.image_details) >= 2:
        score += 10
    if len(content.faq_section) >= 3:
        score += 10
    if content.json_ld_schema:
        score += 10
    if len(content.references) >= 3:
        score += 15
    return _clamp(score)


def calculate_internal_link_density(html: str, pages: Sequence[SitemapPage]) -> float:
    """
    Internal links per 100 words, scaled by 10.

    A link is internal when its href contains the slug of a corpus page.
    """
    if not html or not pages:
        return 0.0

    hrefs = HREF_PATTERN.findall(html)
    slugs = [page.slug for page in pages if page.slug]
    internal = [href for href in hrefs if any(slug in href for slug in slugs)]

    word_count = len(html.split())
    if word_count == 0:
        return 0.0

    links_per_hundred = len(internal) / word_count * 100
    return _clamp(links_per_hundred * 10)


def calculate_semantic_richness(content: GeneratedContent) -> float:
    """
    Score topical depth.

    5 per semantic keyword (max 30), +20 strategy, +20 three or more FAQs,
    +15 three or more references, +15 three or more key takeaways.
    """
    score = min(len(content.semantic_keywords) * 5, 30)
    if content.strategy:
        score += 20
    if len(content.faq_section) >= 3:
        score += 20
    if len(content.references) >= 3:
        score += 15
    if len(content.key_takeaways) >= 3:
        score += 15
    return _clamp(score)


def calculate_aeo_score(content: GeneratedContent) -> float:
    """
    Score answer-engine readiness of the final markup.

    +20 concise first paragraph, +15 list, +15 table, +25 three or more FAQs,
    +25 non-empty JSON-LD schema.
    """
    body = content.content or ""
    score = 0

    first_close = body.find("</p>")
    if "<p>" in body and 0 <= first_close < 300:
        score += 20
    if "<ul>" in body or "<ol>" in body:
        score += 15
    if "<table>" in body:
        score += 15
    if len(content.faq_section) >= 3:
        score += 25
    if content.json_ld_schema:
        score += 25
    return _clamp(score)
