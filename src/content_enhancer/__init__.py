"""
Content Enhancer

A content-enhancement pipeline that:
- Dispatches content generation under a concurrency budget with priorities
- Inserts contextual internal links to a corpus of known pages
- Restructures content for answer engines (direct answers, lists, tables, FAQ)
- Scores every item and tracks quality over a rolling window
"""

__version__ = "1.0.0"
__author__ = "Content Enhancer Team"

from .config import EnhancementConfig, LinkingConfig

from .models import (
    Priority,
    Trend,
    SnippetType,
    Task,
    TaskResult,
    SchedulerStats,
    SitemapPage,
    LinkOpportunity,
    TopicCluster,
    SuggestedLink,
    LinkingStrategy,
    FAQItem,
    AEOSnippet,
    AEOOptimizationResult,
    PerformanceMetrics,
    OptimizationLog,
    ContentItem,
    GenerationContext,
    GeneratedContent,
    ItemScores,
    EnhancedResult,
    BatchReport,
)

# Engines
from .scheduler import ParallelTaskScheduler, create_tasks
from .linking import InternalLinkingEngine
from .aeo import AEOOptimizer, build_faq_schema
from .tracker import PerformanceTracker

# Storage
from .storage import (
    StorageError,
    KeyValueStore,
    InMemoryStore,
    JsonFileStore,
)

# Scoring
from .scoring import (
    calculate_content_quality_score,
    calculate_internal_link_density,
    calculate_semantic_richness,
    calculate_aeo_score,
)

# Orchestration
from .pipeline import PipelineOrchestrator, create_pipeline

__all__ = [
    # Configuration
    "EnhancementConfig",
    "LinkingConfig",
    # Models
    "Priority",
    "Trend",
    "SnippetType",
    "Task",
    "TaskResult",
    "SchedulerStats",
    "SitemapPage",
    "LinkOpportunity",
    "TopicCluster",
    "SuggestedLink",
    "LinkingStrategy",
    "FAQItem",
    "AEOSnippet",
    "AEOOptimizationResult",
    "PerformanceMetrics",
    "OptimizationLog",
    "ContentItem",
    "GenerationContext",
    "GeneratedContent",
    "ItemScores",
    "EnhancedResult",
    "BatchReport",
    # Engines
    "ParallelTaskScheduler",
    "create_tasks",
    "InternalLinkingEngine",
    "AEOOptimizer",
    "build_faq_schema",
    "PerformanceTracker",
    # Storage
    "StorageError",
    "KeyValueStore",
    "InMemoryStore",
    "JsonFileStore",
    # Scoring
    "calculate_content_quality_score",
    "calculate_internal_link_density",
    "calculate_semantic_richness",
    "calculate_aeo_score",
    # Orchestration
    "PipelineOrchestrator",
    "create_pipeline",
]
