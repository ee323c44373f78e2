"""
Pipeline orchestrator.

Composes the engines for a batch of content items:
items -> scheduler -> link injection -> AEO rewrite -> scoring -> tracker.

Post-processing runs sequentially on the calling thread, one item at a
time. A failure while enhancing one item leaves that item's generated
content untouched and never affects its siblings.
"""

import logging
import time
from dataclasses import replace
from typing import Callable, Optional, Sequence

from .aeo import AEOOptimizer, build_faq_schema
from .config import EnhancementConfig, LinkingConfig
from .linking import InternalLinkingEngine
from .llm_client import parse_faq_response
from .models import (
    BatchReport,
    ContentItem,
    EnhancedResult,
    GeneratedContent,
    GenerationContext,
    ItemScores,
    LinkingStrategy,
    OptimizationLog,
    PerformanceMetrics,
    SitemapPage,
    TaskResult,
    TopicCluster,
)
from .scheduler import CallFn, ParallelTaskScheduler, create_tasks
from .scoring import (
    calculate_aeo_score,
    calculate_content_quality_score,
    calculate_internal_link_density,
    calculate_semantic_richness,
)
from .storage import KeyValueStore
from .tracker import PerformanceTracker

logger = logging.getLogger(__name__)

ProgressFn = Callable[[int, int], None]


class PipelineOrchestrator:
    """
    Drive a batch of content items through generation and enhancement.

    The orchestrator owns no global state; every engine is passed in.
    """

    def __init__(
        self,
        scheduler: ParallelTaskScheduler,
        linking_engine: InternalLinkingEngine,
        aeo_optimizer: AEOOptimizer,
        tracker: PerformanceTracker,
        config: Optional[EnhancementConfig] = None,
    ):
        self.scheduler = scheduler
        self.linking_engine = linking_engine
        self.aeo_optimizer = aeo_optimizer
        self.tracker = tracker
        self.config = config or EnhancementConfig()

    def run(
        self,
        items: Sequence[ContentItem],
        context: GenerationContext,
        on_progress: Optional[ProgressFn] = None,
    ) -> BatchReport:
        """
        Generate and enhance every item.

        Args:
            items: Content items. Ids must be unique within the batch.
            context: Model selection, page corpus and link budget.
            on_progress: Called with (done, total) after each item is processed.

        Returns:
            BatchReport with one EnhancedResult per item, in item order.
        """
        start = time.perf_counter()
        report = BatchReport()
        if not items:
            return report

        context = self.resolve_context(context)
        tasks = create_tasks(
            items,
            operation=self.config.prompt_key,
            model=context.model,
            high_priority_count=self.config.high_priority_count,
        )
        items_by_task = {task.id: item for task, item in zip(tasks, items)}
        if len(items_by_task) != len(items):
            raise ValueError("Content item ids must be unique within a batch")

        results = self.scheduler.dispatch(tasks, self.config.concurrency_limit)
        enhanced_by_task: dict[str, EnhancedResult] = {}

        for done, result in enumerate(results, start=1):
            item = items_by_task[result.id]
            enhanced_by_task[result.id] = self.process_result(result, item, context)
            if on_progress is not None:
                on_progress(done, len(results))

        report.results = [enhanced_by_task[task.id] for task in tasks]
        report.elapsed_ms = (time.perf_counter() - start) * 1000

        logger.info(
            f"Batch complete: {report.success_count}/{len(report.results)} succeeded, "
            f"{report.average_ms_per_item:.0f}ms per item"
        )
        return report

    def resolve_context(self, context: GenerationContext) -> GenerationContext:
        """Fill unset model and link budget from the configuration."""
        return replace(
            context,
            model=context.model or self.config.model,
            max_links=context.max_links or self.config.max_links,
        )

    def process_result(
        self,
        result: TaskResult,
        item: ContentItem,
        context: GenerationContext,
    ) -> EnhancedResult:
        """Enhance one scheduler result; failures pass through unchanged."""
        if not result.success or result.payload is None:
            return EnhancedResult(
                id=item.id,
                success=False,
                error=result.error or "No content generated",
                duration=result.duration,
            )

        try:
            generated = normalize_payload(result.payload, item)
        except (TypeError, ValueError) as e:
            logger.warning(f"Item {item.id}: unusable payload: {e}")
            return EnhancedResult(
                id=item.id,
                success=False,
                error=f"Unusable payload: {e}",
                duration=result.duration,
            )

        try:
            return self._enhance(item, generated, result.duration, context)
        except Exception as e:
            logger.exception(f"Item {item.id}: post-processing failed")
            return EnhancedResult(
                id=item.id,
                success=True,
                content=generated,
                duration=result.duration,
                post_processing_error=str(e) or type(e).__name__,
            )

    def _enhance(
        self,
        item: ContentItem,
        generated: GeneratedContent,
        duration: float,
        context: GenerationContext,
    ) -> EnhancedResult:
        opportunities = self.linking_engine.generate_link_opportunities(
            generated.content, context.corpus, context.max_links,
        )
        linked = self.linking_engine.inject_contextual_links(generated.content, opportunities)

        keyword = generated.primary_keyword or item.keyword
        aeo_result = self.aeo_optimizer.optimize(linked, keyword, generated.faq_section)

        enhanced = GeneratedContent.from_payload(generated.to_dict())
        enhanced.content = aeo_result.optimized_content
        enhanced.primary_keyword = keyword
        if not enhanced.json_ld_schema:
            enhanced.json_ld_schema = build_faq_schema(enhanced.faq_section)

        scores = ItemScores(
            quality=calculate_content_quality_score(enhanced),
            aeo=calculate_aeo_score(enhanced),
            link_density=calculate_internal_link_density(enhanced.content, context.corpus),
            semantic_richness=calculate_semantic_richness(enhanced),
        )
        self._record(item, scores, aeo_result.recommendations, duration)

        return EnhancedResult(
            id=item.id,
            success=True,
            content=enhanced,
            duration=duration,
            link_opportunities=opportunities,
            aeo_result=aeo_result,
            scores=scores,
        )

    def _record(
        self,
        item: ContentItem,
        scores: ItemScores,
        improvements: list[str],
        duration: float,
    ) -> None:
        now = time.time() * 1000
        self.tracker.record_metrics(PerformanceMetrics(
            optimization_speed=duration,
            content_quality_score=scores.quality,
            internal_link_density=scores.link_density,
            semantic_richness=scores.semantic_richness,
            aeo_score=scores.aeo,
            timestamp=now,
        ))
        self.tracker.record_optimization(OptimizationLog(
            id=item.id,
            url=item.url or item.title,
            title=item.title,
            timestamp=now,
            before_score=self.config.baseline_score,
            after_score=scores.quality,
            improvements=list(improvements),
            duration=duration,
        ))

    def analyze_corpus(
        self,
        pages: Sequence[SitemapPage],
    ) -> tuple[list[TopicCluster], LinkingStrategy]:
        """Cluster the corpus and derive a linking strategy from it."""
        clusters = self.linking_engine.identify_topic_clusters(pages)
        return clusters, self.linking_engine.generate_linking_strategy(clusters)


def normalize_payload(payload, item: ContentItem) -> GeneratedContent:
    """
    Turn a backend payload into GeneratedContent.

    A FAQ section delivered as Q:/A: text is parsed into entries.
    """
    if isinstance(payload, dict) and isinstance(payload.get("faq_section"), str):
        payload = dict(payload)
        payload["faq_section"] = parse_faq_response(payload["faq_section"])

    generated = GeneratedContent.from_payload(payload, fallback_title=item.title)
    if not generated.content.strip():
        raise ValueError("generated content is empty")
    return generated


def create_pipeline(
    call: CallFn,
    config: Optional[EnhancementConfig] = None,
    store: Optional[KeyValueStore] = None,
    linking_config: Optional[LinkingConfig] = None,
    restore: bool = True,
) -> PipelineOrchestrator:
    """
    Wire a pipeline with one instance of each engine.

    Args:
        call: Generative call collaborator.
        config: Pipeline configuration.
        store: Key-value store for tracker persistence.
        linking_config: Link engine tunables.
        restore: Load tracker windows from the store on startup.

    Returns:
        Configured PipelineOrchestrator.
    """
    config = config or EnhancementConfig()
    tracker = PerformanceTracker(
        store=store,
        max_history=config.max_history,
        trend_window=config.trend_window,
        trend_threshold=config.trend_threshold,
    )
    if restore:
        tracker.restore()

    return PipelineOrchestrator(
        scheduler=ParallelTaskScheduler(call, config.concurrency_limit),
        linking_engine=InternalLinkingEngine(linking_config),
        aeo_optimizer=AEOOptimizer(),
        tracker=tracker,
        config=config,
    )
