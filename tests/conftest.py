"""
Pytest fixtures and configuration for Content Enhancer tests.
"""

import threading
from pathlib import Path

import pytest

from content_enhancer.models import ContentItem, SitemapPage


class RecordingCall:
    """Generative call stub that records every call it receives."""

    def __init__(self, responses=None, failures=None):
        self.responses = responses or {}
        self.failures = failures or {}
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, prompt_key, args, model):
        subject = args[0] if args else None
        key = getattr(subject, "id", subject)
        with self._lock:
            self.calls.append((prompt_key, key, model))

        if key in self.failures:
            raise self.failures[key]
        return self.responses.get(key, f"<p>Generated article for {key}.</p>")

    @property
    def subjects(self):
        return [key for _, key, _ in self.calls]


@pytest.fixture
def recording_call():
    """Factory for RecordingCall stubs."""
    return RecordingCall


@pytest.fixture
def sample_pages() -> list[SitemapPage]:
    """A small page corpus with two obvious topic clusters."""
    return [
        SitemapPage(id="1", title="Best Smartwatches For Cycling", slug="best-smartwatches-cycling", word_count=1800),
        SitemapPage(id="2", title="Cycling Training Plans", slug="cycling-training-plans", word_count=1200),
        SitemapPage(id="3", title="Cycling Nutrition Basics", slug="cycling-nutrition", word_count=900),
        SitemapPage(id="4", title="Smartwatches Battery Comparison", slug="smartwatch-battery", word_count=1500),
        SitemapPage(id="5", title="Sourdough Bread Recipe", slug="sourdough-bread", word_count=700),
    ]


@pytest.fixture
def sample_items() -> list[ContentItem]:
    """Content items for a batch run."""
    return [
        ContentItem(id="a", title="What Is Interval Training", primary_keyword="interval training"),
        ContentItem(id="b", title="Choosing A Road Bike", primary_keyword="road bike"),
        ContentItem(id="c", title="Cycling In The Rain", primary_keyword="cycling"),
    ]


@pytest.fixture
def sample_article_html() -> str:
    """Generated article body with a list, a table and a definitional opening."""
    return (
        "<p>Interval training is a workout alternating hard efforts with recovery.</p>"
        "<h2>Why cycling benefits</h2>"
        "<p>Read our guide to learn how cycling intervals build fitness over 8 weeks.</p>"
        "<ul><li>Warm up</li><li>Sprint</li><li>Recover</li><li>Repeat</li></ul>"
        "<table><tr><th>Week</th><th>Sets</th></tr>"
        "<tr><td>1</td><td>4</td></tr>"
        "<tr><td>2</td><td>6</td></tr></table>"
    )


@pytest.fixture
def sample_pages_csv(tmp_path: Path) -> Path:
    """Create a sample sitemap CSV file."""
    csv_path = tmp_path / "pages.csv"
    csv_content = """Page ID,Title,URL,Word Count
1,Best Smartwatches For Cycling,https://example.com/best-smartwatches-cycling/,1800
2,Cycling Training Plans,https://example.com/cycling-training-plans/,1200
3,Cycling Nutrition Basics,,900
"""
    csv_path.write_text(csv_content)
    return csv_path


@pytest.fixture
def sample_items_csv(tmp_path: Path) -> Path:
    """Create a sample content items CSV file."""
    csv_path = tmp_path / "items.csv"
    csv_content = """id,topic,keyword
a,What Is Interval Training,interval training
b,Choosing A Road Bike,
"""
    csv_path.write_text(csv_content)
    return csv_path
