"""Tests for content scoring."""

import pytest

from content_enhancer.models import FAQItem, GeneratedContent, SitemapPage
from content_enhancer.scoring import (
    calculate_aeo_score,
    calculate_content_quality_score,
    calculate_internal_link_density,
    calculate_semantic_richness,
)


@pytest.fixture
def complete_content() -> GeneratedContent:
    """Generated content that satisfies every checklist item."""
    return GeneratedContent(
        title="Interval Training For Beginners",
        content="<p>Interval training is short.</p><ul><li>a</li></ul><table></table>" + "x" * 1000,
        primary_keyword="interval training",
        meta_description="m" * 130,
        semantic_keywords=["hiit", "sprints", "recovery", "vo2 max", "cadence", "zones"],
        faq_section=[FAQItem(f"Q{i}?", f"A{i}.") for i in range(3)],
        image_details=[{"alt": "a"}, {"alt": "b"}],
        references=["r1", "r2", "r3"],
        key_takeaways=["k1", "k2", "k3"],
        strategy={"audience": "beginners"},
        json_ld_schema={"@type": "FAQPage"},
    )


class TestContentQuality:
    """Tests for calculate_content_quality_score."""

    def test_complete_content(self, complete_content):
        """Test that every checklist item adds up to 100."""
        assert calculate_content_quality_score(complete_content) == 100.0

    def test_empty_content(self):
        """Test that empty content scores zero."""
        assert calculate_content_quality_score(GeneratedContent()) == 0.0

    def test_partial_content(self):
        """Test title and body bonuses only."""
        content = GeneratedContent(title="A title longer than twenty", content="x" * 1001)
        assert calculate_content_quality_score(content) == 30.0


class TestSemanticRichness:
    """Tests for calculate_semantic_richness."""

    def test_complete_content(self, complete_content):
        """Test maximum richness."""
        assert calculate_semantic_richness(complete_content) == 100.0

    def test_keyword_contribution_capped(self):
        """Test that semantic keywords add at most 30."""
        content = GeneratedContent(semantic_keywords=[str(i) for i in range(20)])
        assert calculate_semantic_richness(content) == 30.0


class TestAEOScore:
    """Tests for calculate_aeo_score."""

    def test_complete_content(self, complete_content):
        """Test that all structures score 100."""
        assert calculate_aeo_score(complete_content) == 100.0

    def test_late_first_paragraph(self):
        """Test that a long first paragraph earns no concise-opening bonus."""
        content = GeneratedContent(content="<p>" + "x" * 400 + "</p>")
        assert calculate_aeo_score(content) == 0.0


class TestLinkDensity:
    """Tests for calculate_internal_link_density."""

    def test_internal_links_counted(self):
        """Test density for links pointing at corpus slugs."""
        pages = [SitemapPage(id="1", title="T", slug="cycling-tips")]
        html = (
            '<p>one two <a href="/cycling-tips" class="internal-link">three</a> '
            '<a href="https://other.example/x">four</a> five six seven eight nine ten</p>'
        )
        words = len(html.split())

        expected = min(1 / words * 100 * 10, 100)
        assert calculate_internal_link_density(html, pages) == pytest.approx(expected)

    def test_no_pages_or_content(self):
        """Test that missing inputs score zero."""
        assert calculate_internal_link_density("", [SitemapPage("1", "T", "s")]) == 0.0
        assert calculate_internal_link_density("<p>x</p>", []) == 0.0

    def test_clamped(self):
        """Test that dense linking is clamped to 100."""
        pages = [SitemapPage(id="1", title="T", slug="s")]
        assert calculate_internal_link_density('<a href="/s">x</a>', pages) == 100.0
