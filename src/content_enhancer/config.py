# -*- coding: utf-8 -*-
"""
Centralized configuration for the content enhancement pipeline.

This module provides the configuration dataclasses that control batch
dispatch, link recommendation and performance tracking, plus the fixed
word lists the link engine works from.
"""

import os
from dataclasses import dataclass, field


DEFAULT_MODEL = "claude-sonnet-4-20250514"

# Words never used as link keywords, regardless of length
STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on",
    "at", "to", "for", "of", "with", "by",
})

# Sentences containing these read as instructional and make better link hosts
INSTRUCTIONAL_VERBS = frozenset({"learn", "read", "guide"})


@dataclass
class EnhancementConfig:
    """
    Central configuration for a pipeline run.

    Attributes:
        concurrency_limit: Width of each dispatch window (tasks run at once).
        max_links: Maximum link opportunities considered per content item.
        max_history: Capacity of each rolling window in the tracker.
        high_priority_count: The first N items of a batch are dispatched at
            high priority, the rest at medium.
        baseline_score: "Before" score recorded in every optimization log.
        prompt_key: Prompt used for content generation.
        model: Model selector passed to the generative backend.
        trend_window: Number of samples compared by the trend check.
        trend_threshold: Minimum difference in mean quality score that counts
            as improving/declining.
    """

    concurrency_limit: int = 5
    max_links: int = 15
    max_history: int = 100
    high_priority_count: int = 3
    baseline_score: float = 70.0
    prompt_key: str = "generate_content"
    model: str = DEFAULT_MODEL
    trend_window: int = 5
    trend_threshold: float = 2.0

    def __post_init__(self):
        """Validate configuration values."""
        if self.concurrency_limit < 1:
            raise ValueError(f"concurrency_limit must be >= 1, got {self.concurrency_limit}")
        if self.max_links < 1:
            raise ValueError(f"max_links must be >= 1, got {self.max_links}")
        if self.max_history < 1:
            raise ValueError(f"max_history must be >= 1, got {self.max_history}")
        if self.high_priority_count < 0:
            raise ValueError(
                f"high_priority_count must be >= 0, got {self.high_priority_count}"
            )
        if not 0 <= self.baseline_score <= 100:
            raise ValueError(
                f"baseline_score must be between 0 and 100, got {self.baseline_score}"
            )
        if not self.prompt_key:
            raise ValueError("prompt_key must not be empty")
        if self.trend_window < 1:
            raise ValueError(f"trend_window must be >= 1, got {self.trend_window}")
        if self.trend_threshold < 0:
            raise ValueError(f"trend_threshold must be >= 0, got {self.trend_threshold}")

    @classmethod
    def from_env(cls, **overrides) -> "EnhancementConfig":
        """Create config from CONTENT_ENHANCER_* environment variables.

        Recognized variables: CONTENT_ENHANCER_CONCURRENCY,
        CONTENT_ENHANCER_MAX_LINKS, CONTENT_ENHANCER_MAX_HISTORY and
        CONTENT_ENHANCER_MODEL. Explicit overrides win over the environment.

        Raises:
            ValueError: If a numeric variable is not an integer.
        """
        values = {}
        int_vars = {
            "CONTENT_ENHANCER_CONCURRENCY": "concurrency_limit",
            "CONTENT_ENHANCER_MAX_LINKS": "max_links",
            "CONTENT_ENHANCER_MAX_HISTORY": "max_history",
        }
        for env_name, attr in int_vars.items():
            raw = os.environ.get(env_name)
            if raw:
                try:
                    values[attr] = int(raw)
                except ValueError:
                    raise ValueError(f"{env_name} must be an integer, got '{raw}'")

        model = os.environ.get("CONTENT_ENHANCER_MODEL")
        if model:
            values["model"] = model

        values.update(overrides)
        return cls(**values)

    @classmethod
    def fast(cls, **overrides) -> "EnhancementConfig":
        """Create config tuned for throughput (wide windows, fewer links)."""
        defaults = {
            "concurrency_limit": 10,
            "max_links": 8,
        }
        defaults.update(overrides)
        return cls(**defaults)

    @classmethod
    def conservative(cls, **overrides) -> "EnhancementConfig":
        """Create config that keeps backend load low.

        Every task runs on its own and only the first item is high priority.
        """
        defaults = {
            "concurrency_limit": 1,
            "high_priority_count": 1,
        }
        defaults.update(overrides)
        return cls(**defaults)


@dataclass
class LinkingConfig:
    """
    Tunables for the internal linking engine.

    Attributes:
        stop_words: Title words never used as keywords.
        instructional_verbs: Words that earn a sentence the instructional bonus.
        min_keyword_length: Words of this length or shorter are dropped.
        nearby_link_range: Characters checked on each side of a mention for an
            existing anchor tag.
        relocation_window: Characters searched from a recorded offset when
            re-locating anchor text during injection.
        max_related_pages: Related pages kept per cluster candidate.
        max_suggested_links: Length cap of the suggested links list.
        snippet_length: Length of the context snippet stored per opportunity.
    """

    stop_words: frozenset = field(default_factory=lambda: STOP_WORDS)
    instructional_verbs: frozenset = field(default_factory=lambda: INSTRUCTIONAL_VERBS)
    min_keyword_length: int = 3
    nearby_link_range: int = 100
    relocation_window: int = 200
    max_related_pages: int = 8
    max_suggested_links: int = 50
    snippet_length: int = 100

    def __post_init__(self):
        """Validate configuration values."""
        self.stop_words = frozenset(w.lower() for w in self.stop_words)
        self.instructional_verbs = frozenset(w.lower() for w in self.instructional_verbs)
        if self.min_keyword_length < 0:
            raise ValueError(
                f"min_keyword_length must be >= 0, got {self.min_keyword_length}"
            )
        for name in ("nearby_link_range", "relocation_window", "max_related_pages",
                     "max_suggested_links", "snippet_length"):
            value = getattr(self, name)
            if value < 1:
                raise ValueError(f"{name} must be >= 1, got {value}")

    def with_stop_words(self, *words: str) -> "LinkingConfig":
        """Return a copy whose stop-word set is extended with ``words``."""
        return LinkingConfig(
            stop_words=self.stop_words | {w.lower() for w in words},
            instructional_verbs=self.instructional_verbs,
            min_keyword_length=self.min_keyword_length,
            nearby_link_range=self.nearby_link_range,
            relocation_window=self.relocation_window,
            max_related_pages=self.max_related_pages,
            max_suggested_links=self.max_suggested_links,
            snippet_length=self.snippet_length,
        )
