"""
Page corpus and content item loading from CSV, Excel and JSON files.

This module handles ingestion of:
- Sitemap page lists (the link corpus)
- Content item batches (the generation requests)
"""

import re
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from .models import ContentItem, SitemapPage


class CorpusLoadError(Exception):
    """Raised when corpus or item loading fails."""
    pass


# Common column name variations
ID_COLUMN_VARIANTS = ["id", "page_id", "item_id", "post_id"]
TITLE_COLUMN_VARIANTS = ["title", "page_title", "name", "headline", "topic"]
SLUG_COLUMN_VARIANTS = ["slug", "path", "url", "permalink", "link"]
WORD_COUNT_COLUMN_VARIANTS = ["word_count", "wordcount", "words", "length"]
KEYWORD_COLUMN_VARIANTS = ["primary_keyword", "keyword", "focus_keyword", "main_keyword"]
URL_COLUMN_VARIANTS = ["url", "page_url", "target_url"]

SUPPORTED_SUFFIXES = (".csv", ".xlsx", ".xls", ".json")


def _normalize_column_name(name: str) -> str:
    """Normalize column name for matching."""
    return str(name).lower().strip().replace(" ", "_").replace("-", "_")


def _find_column(df: pd.DataFrame, variants: list[str]) -> Optional[str]:
    """
    Find a column in the DataFrame matching one of the variant names.

    Args:
        df: The DataFrame to search.
        variants: List of possible column name variants.

    Returns:
        The actual column name if found, None otherwise.
    """
    normalized_columns = {_normalize_column_name(col): col for col in df.columns}

    for variant in variants:
        normalized = _normalize_column_name(variant)
        if normalized in normalized_columns:
            return normalized_columns[normalized]

    return None


def _cell(row: pd.Series, column: Optional[str]) -> Optional[str]:
    """Return a cell as stripped text, None when empty or missing."""
    if column is None:
        return None
    value = row[column]
    if pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def slugify(text: str) -> str:
    """Turn a title or URL into a slug."""
    text = re.sub(r"^https?://[^/]+", "", text.strip().lower())
    text = text.strip("/")
    return re.sub(r"[^a-z0-9/]+", "-", text).strip("-")


def read_table(file_path: Union[str, Path]) -> pd.DataFrame:
    """
    Read a CSV, Excel or JSON file into a DataFrame.

    Raises:
        CorpusLoadError: If the file is missing, unsupported or unreadable.
    """
    path = Path(file_path)

    if not path.exists():
        raise CorpusLoadError(f"File not found: {file_path}")

    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise CorpusLoadError(
            f"Unsupported file type: {suffix}. Supported: {', '.join(SUPPORTED_SUFFIXES)}"
        )

    try:
        if suffix == ".csv":
            try:
                df = pd.read_csv(path, encoding="utf-8")
            except UnicodeDecodeError:
                df = pd.read_csv(path, encoding="latin-1")
        elif suffix == ".json":
            df = pd.read_json(path, orient="records", dtype=False)
        else:
            df = pd.read_excel(path)
    except pd.errors.EmptyDataError:
        raise CorpusLoadError(f"File is empty: {file_path}")
    except Exception as e:
        raise CorpusLoadError(f"Failed to read {path.name}: {e}")

    if df.empty:
        raise CorpusLoadError(f"File is empty: {file_path}")

    return df


def parse_pages_dataframe(df: pd.DataFrame) -> list[SitemapPage]:
    """
    Parse a DataFrame into SitemapPage objects.

    Rows without a title are skipped. A missing slug is derived from the
    title, a missing id from the slug, and a missing word count is 0.

    Raises:
        CorpusLoadError: If no title column exists.
    """
    title_col = _find_column(df, TITLE_COLUMN_VARIANTS)
    if title_col is None:
        raise CorpusLoadError(
            f"No title column found. Expected one of: {', '.join(TITLE_COLUMN_VARIANTS)}. "
            f"Found columns: {', '.join(str(c) for c in df.columns)}"
        )

    id_col = _find_column(df, ID_COLUMN_VARIANTS)
    slug_col = _find_column(df, SLUG_COLUMN_VARIANTS)
    words_col = _find_column(df, WORD_COUNT_COLUMN_VARIANTS)
    url_col = _find_column(df, URL_COLUMN_VARIANTS)

    pages = []
    seen_ids = set()
    for _, row in df.iterrows():
        title = _cell(row, title_col)
        if not title:
            continue

        raw_slug = _cell(row, slug_col)
        slug = slugify(raw_slug) if raw_slug else slugify(title)
        page_id = _cell(row, id_col) or slug

        if page_id in seen_ids:
            continue
        seen_ids.add(page_id)
        url = _cell(row, url_col)

        word_count = 0
        words = _cell(row, words_col)
        if words:
            try:
                word_count = max(int(float(words)), 0)
            except ValueError:
                word_count = 0

        pages.append(SitemapPage(
            id=page_id,
            title=title,
            slug=slug,
            word_count=word_count,
            url=url if url and url.startswith("http") else None,
        ))

    return pages


def parse_items_dataframe(df: pd.DataFrame) -> list[ContentItem]:
    """
    Parse a DataFrame into ContentItem objects.

    Rows without a title are skipped; a missing id becomes the row position.

    Raises:
        CorpusLoadError: If no title column exists.
    """
    title_col = _find_column(df, TITLE_COLUMN_VARIANTS)
    if title_col is None:
        raise CorpusLoadError(
            f"No title column found. Expected one of: {', '.join(TITLE_COLUMN_VARIANTS)}. "
            f"Found columns: {', '.join(str(c) for c in df.columns)}"
        )

    id_col = _find_column(df, ID_COLUMN_VARIANTS)
    keyword_col = _find_column(df, KEYWORD_COLUMN_VARIANTS)
    url_col = _find_column(df, URL_COLUMN_VARIANTS)

    items = []
    for position, (_, row) in enumerate(df.iterrows()):
        title = _cell(row, title_col)
        if not title:
            continue
        items.append(ContentItem(
            id=_cell(row, id_col) or str(position),
            title=title,
            primary_keyword=_cell(row, keyword_col),
            url=_cell(row, url_col),
        ))

    return items


def load_pages(file_path: Union[str, Path]) -> list[SitemapPage]:
    """
    Load the page corpus from a file.

    Args:
        file_path: Path to a CSV, Excel or JSON (list of records) file.

    Returns:
        List of SitemapPage objects in file order.

    Raises:
        CorpusLoadError: If the file cannot be loaded.
    """
    pages = parse_pages_dataframe(read_table(file_path))
    if not pages:
        raise CorpusLoadError(f"No pages with a title found in {file_path}")
    return pages


def load_items(file_path: Union[str, Path]) -> list[ContentItem]:
    """
    Load content items from a file.

    Args:
        file_path: Path to a CSV, Excel or JSON (list of records) file.

    Returns:
        List of ContentItem objects in file order.

    Raises:
        CorpusLoadError: If the file cannot be loaded.
    """
    items = parse_items_dataframe(read_table(file_path))
    if not items:
        raise CorpusLoadError(f"No items with a title found in {file_path}")
    return items
