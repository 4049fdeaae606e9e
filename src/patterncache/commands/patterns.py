"""Pattern learning commands.

Each command rebuilds the in-memory store from the configured event log
before acting:
    - ingest: Learn from interaction history and report counts
    - suggest: Replay a learned output for new input
    - learn: Record an accepted improvement (optionally oracle-assisted)
    - stats: Summarize the learned store
    - insights: List category-level insights
"""

from __future__ import annotations

import asyncio

import typer
from rich import box
from rich.panel import Panel
from rich.table import Table

from patterncache.core.console import console
from patterncache.core.result import PatternCacheError
from patterncache.learning import Feedback, LearningEngine, Pattern

app = typer.Typer(help="Learn, inspect and replay interaction patterns.")


def _build_engine(ctx: typer.Context, *, use_oracle: bool | None = None) -> LearningEngine:
    state = ctx.obj
    return LearningEngine.from_config(state.config, use_oracle=use_oracle)


@app.command("ingest")
def ingest(
    ctx: typer.Context,
    limit: int | None = typer.Option(None, "--limit", "-l", help="Maximum events to read."),
    days: int | None = typer.Option(None, "--days", "-d", help="Trailing window in days."),
) -> None:
    """Learn patterns from the interaction history."""
    engine = _build_engine(ctx, use_oracle=False)
    try:
        report = asyncio.run(engine.ingest_history(limit=limit, window_days=days))
    except PatternCacheError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    table = Table(title="Ingestion", box=box.SIMPLE_HEAVY)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Count", style="white", justify="right")
    table.add_row("Fetched", str(report.fetched))
    table.add_row("Learned", str(report.learned))
    table.add_row("Skipped", str(report.skipped))
    table.add_row("Failed", str(report.failed))
    table.add_row("Patterns", str(len(engine.store)))
    console.print(table)


@app.command("suggest")
def suggest(
    ctx: typer.Context,
    text: str = typer.Argument(..., help="Input text to find a learned output for."),
    field: str = typer.Option("enhancement", "--field", "-f", help="Field or interaction type."),
    category: str | None = typer.Option(None, "--category", help="Domain category hint."),
) -> None:
    """Suggest a learned output for new input."""
    engine = _build_engine(ctx, use_oracle=False)
    try:
        asyncio.run(engine.ingest_history())
    except PatternCacheError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    suggestion = engine.suggest(text, field, category)
    if suggestion is None:
        console.print(Panel("No learned pattern matches this input.", style="yellow"))
        return
    console.print(Panel(suggestion, title="Suggestion", border_style="green"))


@app.command("learn")
def learn(
    ctx: typer.Context,
    original: str = typer.Argument(..., help="Text as the user wrote it."),
    improved: str = typer.Argument(..., help="Improved text the user accepted."),
    field: str = typer.Option("enhancement", "--field", "-f", help="Field or interaction type."),
    category: str | None = typer.Option(None, "--category", help="Domain category."),
    feedback: Feedback = typer.Option(Feedback.POSITIVE, "--feedback", help="User verdict."),
    no_oracle: bool = typer.Option(False, "--no-oracle", help="Skip oracle meta-analysis."),
) -> None:
    """Record an accepted improvement and show the resulting pattern."""
    engine = _build_engine(ctx, use_oracle=False if no_oracle else None)

    async def _run() -> Pattern | None:
        await engine.ingest_history()
        return await engine.record_success(original, improved, field, category, feedback)

    try:
        pattern = asyncio.run(_run())
    except PatternCacheError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    if pattern is None:
        console.print(Panel("Input has no usable signature; nothing learned.", style="yellow"))
        return

    details = [
        f"Key: {pattern.key}",
        f"Category: {pattern.category}",
        f"Confidence: {pattern.confidence:.2f}",
        f"Usage: {pattern.usage_count}",
        f"Oracle enriched: {'yes' if pattern.oracle_enriched else 'no'}",
    ]
    if pattern.improvement_factors:
        details.append("Factors: " + "; ".join(pattern.improvement_factors))
    console.print(Panel("\n".join(details), title="Pattern learned", border_style="green"))


@app.command("stats")
def stats(ctx: typer.Context) -> None:
    """Summarize the learned patterns."""
    engine = _build_engine(ctx, use_oracle=False)
    try:
        asyncio.run(engine.ingest_history())
    except PatternCacheError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    summary = engine.stats()
    table = Table(title="Learning stats", box=box.SIMPLE_HEAVY)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")
    table.add_row("Total patterns", str(summary.total_patterns))
    table.add_row("Insights", str(summary.insights_generated))
    table.add_row("High confidence", str(summary.high_confidence_count))
    table.add_row("Categories", str(summary.categories_learned))
    table.add_row("Interaction types", ", ".join(summary.interaction_types) or "-")
    table.add_row("Oracle enriched", str(summary.oracle_enriched_count))
    table.add_row("Average confidence", f"{summary.avg_confidence:.2f}")
    console.print(table)


@app.command("insights")
def insights(ctx: typer.Context) -> None:
    """List insights derived from the learned patterns."""
    engine = _build_engine(ctx, use_oracle=False)
    try:
        asyncio.run(engine.ingest_history())
    except PatternCacheError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    if not engine.insights:
        console.print(Panel("No insights yet.", style="yellow"))
        return

    table = Table(title="Insights", box=box.SIMPLE_HEAVY, expand=True)
    table.add_column("Type", style="cyan", no_wrap=True)
    table.add_column("Suggestion", style="white")
    table.add_column("Confidence", justify="right")
    table.add_column("Samples", justify="right")
    for insight in engine.insights:
        table.add_row(
            insight.pattern_type,
            insight.suggestion,
            f"{insight.confidence:.2f}",
            str(insight.sample_count),
        )
    console.print(table)
