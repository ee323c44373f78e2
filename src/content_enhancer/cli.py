"""
Command-line interface for Content Enhancer.

Provides a CLI for generating and enhancing a batch of content items,
inspecting topic clusters of a page corpus and reporting tracked performance.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress
from rich.table import Table

from .config import DEFAULT_MODEL, EnhancementConfig
from .corpus_loader import CorpusLoadError, load_items, load_pages
from .linking import InternalLinkingEngine
from .llm_client import LLMClientError, create_llm_client
from .models import BatchReport, GenerationContext
from .pipeline import create_pipeline
from .storage import InMemoryStore, JsonFileStore
from .tracker import PerformanceTracker

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _open_store(store_dir: Optional[Path]):
    if store_dir is None:
        return InMemoryStore()
    return JsonFileStore(store_dir)


@click.group()
def main() -> None:
    """
    Content Enhancer - Generate content and enhance it for search and answer engines.

    Examples:

        content-enhance run items.csv pages.csv -o results.json

        content-enhance clusters pages.csv --limit 5

        content-enhance report --store-dir .metrics
    """


@main.command()
@click.argument("items_file", type=click.Path(exists=True, path_type=Path))
@click.argument("corpus_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--model",
    type=str,
    default=None,
    help=f"Model used for content generation. [default: {DEFAULT_MODEL}]",
)
@click.option(
    "--concurrency",
    type=int,
    default=None,
    help="Number of generation calls run at once. [default: 5]",
)
@click.option(
    "--max-links",
    type=int,
    default=None,
    help="Maximum link opportunities considered per item. [default: 15]",
)
@click.option(
    "--store-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory where performance history is kept.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write enhanced results to this JSON file.",
)
@click.option(
    "--api-key",
    type=str,
    envvar="ANTHROPIC_API_KEY",
    help="Anthropic API key. Can also be set via ANTHROPIC_API_KEY env var.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output.",
)
def run(
    items_file: Path,
    corpus_file: Path,
    model: Optional[str],
    concurrency: Optional[int],
    max_links: Optional[int],
    store_dir: Optional[Path],
    output: Optional[Path],
    api_key: Optional[str],
    verbose: bool,
) -> None:
    """Generate and enhance every item in ITEMS_FILE, linking to CORPUS_FILE pages."""
    _configure_logging(verbose)

    console.print(Panel.fit(
        "[bold blue]Content Enhancer[/bold blue]\n"
        "Generating content with internal links and answer-engine markup",
        border_style="blue",
    ))

    try:
        overrides = {
            "concurrency_limit": concurrency,
            "max_links": max_links,
            "model": model,
        }
        config = EnhancementConfig.from_env(
            **{k: v for k, v in overrides.items() if v is not None}
        )

        with console.status("[bold green]Loading items and corpus..."):
            items = load_items(items_file)
            pages = load_pages(corpus_file)
        if verbose:
            console.print(f"  Loaded {len(items)} items from: {items_file}")
            console.print(f"  Loaded {len(pages)} pages from: {corpus_file}")

        client = create_llm_client(api_key=api_key, model=config.model)
        pipeline = create_pipeline(client, config=config, store=_open_store(store_dir))
        context = GenerationContext(corpus=pages)

        with Progress(console=console, transient=True) as progress:
            bar = progress.add_task("Enhancing content...", total=len(items))
            report = pipeline.run(
                items,
                context,
                on_progress=lambda done, total: progress.update(bar, completed=done),
            )

        _display_report(report, verbose)

        if output is not None:
            output.write_text(
                json.dumps([r.to_dict() for r in report.results], indent=2),
                encoding="utf-8",
            )
            console.print(f"\n[bold green]Success![/bold green] Output saved to: {output}")

    except ValueError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)
    except CorpusLoadError as e:
        console.print(f"[red]Corpus loading error:[/red] {e}")
        sys.exit(1)
    except LLMClientError as e:
        console.print(f"[red]LLM error:[/red] {e}")
        sys.exit(1)


@main.command()
@click.argument("corpus_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--limit",
    type=int,
    default=10,
    show_default=True,
    help="Number of clusters to show.",
)
def clusters(corpus_file: Path, limit: int) -> None:
    """Show topic clusters and suggested links for the pages in CORPUS_FILE."""
    try:
        pages = load_pages(corpus_file)
    except CorpusLoadError as e:
        console.print(f"[red]Corpus loading error:[/red] {e}")
        sys.exit(1)

    engine = InternalLinkingEngine()
    found = engine.identify_topic_clusters(pages)
    if not found:
        console.print("[yellow]No topic clusters found.[/yellow]")
        return

    table = Table(title="Topic Clusters", show_header=True)
    table.add_column("Pillar", style="cyan")
    table.add_column("Pages", justify="right")
    table.add_column("Relevance", justify="right", style="green")
    table.add_column("Link Density", justify="right")

    for cluster in found[:limit]:
        table.add_row(
            cluster.pillar_page.title,
            str(cluster.size),
            f"{cluster.topic_relevance:.1f}",
            f"{cluster.link_density:.2f}",
        )
    console.print(table)

    strategy = engine.generate_linking_strategy(found[:limit])
    for recommendation in strategy.recommendations:
        console.print(f"  [cyan]-[/cyan] {recommendation}")
    console.print(f"\n[cyan]Suggested links:[/cyan] {len(strategy.missing_links)}")


@main.command()
@click.option(
    "--store-dir",
    type=click.Path(file_okay=False, path_type=Path),
    required=True,
    help="Directory where performance history is kept.",
)
def report(store_dir: Path) -> None:
    """Summarize tracked performance history."""
    tracker = PerformanceTracker(store=JsonFileStore(store_dir))
    if not tracker.restore():
        console.print(f"[red]Storage error:[/red] could not read {store_dir}")
        sys.exit(1)

    average = tracker.get_average_metrics()
    if average is None:
        console.print("[yellow]No performance data recorded yet.[/yellow]")
        return

    table = Table(title="Average Performance", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Optimization speed (ms)", f"{average.optimization_speed:.0f}")
    table.add_row("Content quality", f"{average.content_quality_score:.1f}")
    table.add_row("Internal link density", f"{average.internal_link_density:.1f}")
    table.add_row("Semantic richness", f"{average.semantic_richness:.1f}")
    table.add_row("AEO score", f"{average.aeo_score:.1f}")
    console.print(table)

    console.print(f"\n[cyan]Trend:[/cyan] {tracker.get_performance_trend().value}")
    console.print(f"[cyan]Total optimizations:[/cyan] {tracker.get_total_optimizations()}")
    console.print(f"[cyan]Average improvement:[/cyan] {tracker.get_average_improvement():+.1f}")


def _display_report(report: BatchReport, verbose: bool) -> None:
    """Display batch summary."""
    console.print("\n[bold]Enhancement Summary[/bold]")

    table = Table(title="Results", show_header=True)
    table.add_column("Item", style="cyan")
    table.add_column("Status")
    table.add_column("Links", justify="right")
    table.add_column("Quality", justify="right")
    table.add_column("AEO", justify="right")

    for result in report.results:
        if not result.success:
            status = "[red]failed[/red]"
        elif result.post_processing_error:
            status = "[yellow]not enhanced[/yellow]"
        else:
            status = "[green]ok[/green]"
        scores = result.scores
        table.add_row(
            result.id,
            status,
            str(len(result.link_opportunities)),
            f"{scores.quality:.0f}" if scores else "-",
            f"{scores.aeo:.0f}" if scores else "-",
        )
    console.print(table)

    console.print(
        f"\n[cyan]Succeeded:[/cyan] {report.success_count}  "
        f"[cyan]Failed:[/cyan] {report.failure_count}  "
        f"[cyan]Avg per item:[/cyan] {report.average_ms_per_item:.0f}ms"
    )

    if verbose:
        for result in report.results:
            if result.error:
                console.print(f"[dim]{result.id}: {result.error}[/dim]")
            if result.post_processing_error:
                console.print(f"[dim]{result.id}: {result.post_processing_error}[/dim]")


def run_cli() -> None:
    """Entry point for the CLI."""
    main()


if __name__ == "__main__":
    run_cli()
