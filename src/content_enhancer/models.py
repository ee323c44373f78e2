"""
Data models for the content enhancement pipeline.

This module defines all the core data structures used throughout the application.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Optional


class Priority(Enum):
    """Dispatch priority of a generation task."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def dispatch_order(cls) -> list["Priority"]:
        """Priorities in the order their groups are dispatched."""
        return [cls.HIGH, cls.MEDIUM, cls.LOW]


class Trend(Enum):
    """Direction of content quality over recent samples."""
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class SnippetType(Enum):
    """Kinds of answer-engine snippets."""
    PARAGRAPH = "paragraph"
    LIST = "list"
    TABLE = "table"
    FAQ = "faq"


@dataclass(frozen=True)
class Task:
    """A single content-generation request for the scheduler."""
    id: str
    prompt_key: str
    args: tuple = ()
    model: str = ""
    priority: Priority = Priority.MEDIUM

    def __post_init__(self) -> None:
        """Freeze the argument list and coerce string priorities."""
        object.__setattr__(self, "args", tuple(self.args))
        if not isinstance(self.priority, Priority):
            object.__setattr__(self, "priority", Priority(self.priority))


@dataclass
class TaskResult:
    """Outcome of one dispatched task."""
    id: str
    success: bool
    payload: Any = None
    error: Optional[str] = None
    duration: float = 0.0  # milliseconds


@dataclass
class SchedulerStats:
    """Aggregate figures over every result a scheduler has produced."""
    total_processed: int = 0
    avg_duration: float = 0.0
    success_rate: float = 0.0  # percent


@dataclass(frozen=True)
class SitemapPage:
    """A known page of the site that content can link to."""
    id: str
    title: str
    slug: str
    word_count: int = 0
    url: Optional[str] = None


@dataclass
class LinkOpportunity:
    """A place in a piece of content where a link to a corpus page fits."""
    from_page: str
    to_page: str  # target slug
    anchor_text: str
    relevance_score: float
    context_snippet: str
    position: int
    reason: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class TopicCluster:
    """A pillar page and the pages that share its topic."""
    pillar_page: SitemapPage
    cluster_pages: list[SitemapPage] = field(default_factory=list)
    link_density: float = 0.0
    topic_relevance: float = 0.0

    @property
    def size(self) -> int:
        """Number of related pages (pillar excluded)."""
        return len(self.cluster_pages)


@dataclass
class SuggestedLink:
    """A link that should exist between two corpus pages."""
    from_slug: str
    to_slug: str
    priority: int


@dataclass
class LinkingStrategy:
    """Hub recommendations and prioritized missing links for a set of clusters."""
    recommendations: list[str] = field(default_factory=list)
    missing_links: list[SuggestedLink] = field(default_factory=list)


@dataclass
class FAQItem:
    """A single FAQ question/answer pair."""
    question: str
    answer: str

    @classmethod
    def coerce(cls, value: Any) -> Optional["FAQItem"]:
        """Build an FAQItem from a dict or FAQItem, None if it has no question."""
        if isinstance(value, FAQItem):
            return value
        if isinstance(value, dict):
            question = str(value.get("question") or "").strip()
            answer = str(value.get("answer") or "").strip()
            if question:
                return cls(question=question, answer=answer)
        return None


@dataclass
class AEOSnippet:
    """A structured excerpt scored for answer-engine suitability."""
    type: SnippetType
    content: str
    score: float
    optimization: str


@dataclass
class AEOOptimizationResult:
    """Snippets found in a piece of content and the rewritten content."""
    snippets: list[AEOSnippet] = field(default_factory=list)
    overall_score: float = 0.0
    recommendations: list[str] = field(default_factory=list)
    optimized_content: str = ""

    def has_snippet(self, snippet_type: SnippetType) -> bool:
        """Check if a snippet of the given kind was produced."""
        return any(s.type == snippet_type for s in self.snippets)


@dataclass
class PerformanceMetrics:
    """One sample of the rolling metrics window."""
    optimization_speed: float  # ms
    content_quality_score: float
    internal_link_density: float
    semantic_richness: float
    aeo_score: float
    timestamp: Optional[float] = None  # epoch ms

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "PerformanceMetrics":
        return cls(
            optimization_speed=float(data["optimization_speed"]),
            content_quality_score=float(data["content_quality_score"]),
            internal_link_density=float(data["internal_link_density"]),
            semantic_richness=float(data["semantic_richness"]),
            aeo_score=float(data["aeo_score"]),
            timestamp=data.get("timestamp"),
        )


@dataclass
class OptimizationLog:
    """One entry of the rolling optimization log."""
    id: str
    url: str
    title: str
    timestamp: float  # epoch ms
    before_score: float
    after_score: float
    improvements: list[str] = field(default_factory=list)
    duration: float = 0.0  # ms

    @property
    def improvement(self) -> float:
        return self.after_score - self.before_score

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "OptimizationLog":
        return cls(
            id=str(data["id"]),
            url=str(data.get("url", "")),
            title=str(data.get("title", "")),
            timestamp=float(data.get("timestamp", 0)),
            before_score=float(data["before_score"]),
            after_score=float(data["after_score"]),
            improvements=list(data.get("improvements", [])),
            duration=float(data.get("duration", 0)),
        )


@dataclass
class ContentItem:
    """A content-generation request as supplied by the caller."""
    id: str
    title: str
    primary_keyword: Optional[str] = None
    url: Optional[str] = None

    def __post_init__(self) -> None:
        """Normalize the title."""
        self.title = self.title.strip()

    @property
    def keyword(self) -> str:
        """Primary keyword, falling back to the title."""
        return self.primary_keyword or self.title


@dataclass
class GenerationContext:
    """
    Shared context for a batch: model selection and the page corpus.

    ``model`` and ``max_links`` left as None take the pipeline's
    EnhancementConfig values.
    """
    model: Optional[str] = None
    corpus: list[SitemapPage] = field(default_factory=list)
    max_links: Optional[int] = None


@dataclass
class GeneratedContent:
    """Structured content returned by the generative backend."""
    title: str = ""
    content: str = ""
    primary_keyword: str = ""
    meta_description: str = ""
    semantic_keywords: list[str] = field(default_factory=list)
    faq_section: list[FAQItem] = field(default_factory=list)
    image_details: list[dict] = field(default_factory=list)
    references: list[str] = field(default_factory=list)
    key_takeaways: list[str] = field(default_factory=list)
    strategy: Optional[dict] = None
    json_ld_schema: Optional[dict] = None

    @classmethod
    def from_payload(cls, payload: Any, fallback_title: str = "") -> "GeneratedContent":
        """
        Build GeneratedContent from whatever the backend returned.

        Args:
            payload: A dict of fields, a plain string (used as the body) or
                an existing GeneratedContent.
            fallback_title: Title used when the payload has none.

        Returns:
            GeneratedContent instance.

        Raises:
            TypeError: If the payload is of an unsupported type.
        """
        if isinstance(payload, GeneratedContent):
            return payload
        if isinstance(payload, str):
            return cls(title=fallback_title, content=payload)
        if not isinstance(payload, dict):
            raise TypeError(f"Unsupported payload type: {type(payload).__name__}")

        faqs = [FAQItem.coerce(f) for f in payload.get("faq_section") or []]
        return cls(
            title=str(payload.get("title") or fallback_title),
            content=str(payload.get("content") or ""),
            primary_keyword=str(payload.get("primary_keyword") or ""),
            meta_description=str(payload.get("meta_description") or ""),
            semantic_keywords=list(payload.get("semantic_keywords") or []),
            faq_section=[f for f in faqs if f is not None],
            image_details=list(payload.get("image_details") or []),
            references=list(payload.get("references") or []),
            key_takeaways=list(payload.get("key_takeaways") or []),
            strategy=payload.get("strategy") or None,
            json_ld_schema=payload.get("json_ld_schema") or None,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ItemScores:
    """Derived scores of one enhanced item."""
    quality: float
    aeo: float
    link_density: float
    semantic_richness: float


@dataclass
class EnhancedResult:
    """Final per-item output of a pipeline run."""
    id: str
    success: bool
    content: Optional[GeneratedContent] = None
    error: Optional[str] = None
    duration: float = 0.0
    link_opportunities: list[LinkOpportunity] = field(default_factory=list)
    aeo_result: Optional[AEOOptimizationResult] = None
    scores: Optional[ItemScores] = None
    post_processing_error: Optional[str] = None

    @property
    def is_enhanced(self) -> bool:
        """Check if the item went through the full post-processing chain."""
        return self.success and self.post_processing_error is None and self.scores is not None

    def to_dict(self) -> dict:
        """Serialize for JSON output."""
        return {
            "id": self.id,
            "success": self.success,
            "error": self.error,
            "duration": self.duration,
            "content": self.content.to_dict() if self.content else None,
            "link_opportunities": [o.to_dict() for o in self.link_opportunities],
            "aeo": {
                "overall_score": self.aeo_result.overall_score,
                "snippets": [s.type.value for s in self.aeo_result.snippets],
                "recommendations": self.aeo_result.recommendations,
            } if self.aeo_result else None,
            "scores": asdict(self.scores) if self.scores else None,
            "post_processing_error": self.post_processing_error,
        }


@dataclass
class BatchReport:
    """Results of one pipeline run plus throughput figures."""
    results: list[EnhancedResult] = field(default_factory=list)
    elapsed_ms: float = 0.0

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failure_count(self) -> int:
        return len(self.results) - self.success_count

    @property
    def average_ms_per_item(self) -> float:
        if not self.results:
            return 0.0
        return self.elapsed_ms / len(self.results)
