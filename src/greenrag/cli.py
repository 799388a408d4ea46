"""CLI interface for greenrag.

Typer-based command-line interface with Rich output formatting. Every
query command builds an in-memory knowledge base from the given markdown
documents, answers one question, and exits.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from greenrag import __version__
from greenrag.bootstrap import RetrievalRuntime
from greenrag.chunk import MarkdownChunker
from greenrag.config import CONFIG_FILE, GreenragConfig, load_config, save_config
from greenrag.exceptions import GreenragError
from greenrag.ingest import load_documents
from greenrag.pipeline import knowledge_base_stats
from greenrag.registry import default_registry
from greenrag.types import RetrievalOptions, SearchFilters, SearchStrategy

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from greenrag.embed.base import BaseEmbedder
    from greenrag.retrieval.service import RetrievalService

__all__ = ["app"]

_T = TypeVar("_T")

app = typer.Typer(
    name="greenrag",
    help="Knowledge retrieval engine for landscaping quotes and property reports.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()

DocOption = Annotated[
    list[Path] | None,
    typer.Option("--doc", "-d", help="Markdown knowledge document (repeatable)"),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help=f"Config file (default: ./{CONFIG_FILE} if present)"),
]


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
) -> None:
    """greenrag command-line interface."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_settings(
    config_path: Path | None, docs: list[Path] | None
) -> tuple[GreenragConfig, list[Path]]:
    """Resolve the config and the knowledge documents to load."""
    path = config_path or Path(CONFIG_FILE)
    base_dir = path.resolve().parent
    if config_path is not None or path.exists():
        config = load_config(path)
    else:
        config = GreenragConfig()

    if docs:
        return config, list(docs)
    return config, [base_dir / p for p in config.knowledge.documents]


def _create_embedder(config: GreenragConfig) -> BaseEmbedder:
    embedder: BaseEmbedder = default_registry.create(
        "embedding", config.embedding.provider, config
    )
    return embedder


def _run_query(
    config_path: Path | None,
    docs: list[Path] | None,
    query: Callable[[RetrievalService], Awaitable[_T]],
) -> _T:
    """Build a knowledge base and run one query against it, exiting 1 on failure."""
    try:
        config, paths = _load_settings(config_path, docs)
        if not paths:
            console.print(
                "[yellow]No knowledge documents.[/yellow] Pass --doc or set "
                "[bold]\\[knowledge] documents[/bold] in the config."
            )
            raise typer.Exit(code=1)

        async def _go() -> _T:
            runtime = RetrievalRuntime()
            try:
                service = await runtime.initialize_from_paths(
                    paths, config, _create_embedder(config)
                )
                return await query(service)
            finally:
                runtime.reset()

        return asyncio.run(_go())
    except GreenragError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e


@app.command()
def version() -> None:
    """Show greenrag version."""
    console.print(f"greenrag {__version__}")


@app.command(name="init-config")
def init_config(
    path: Annotated[
        Path,
        typer.Option("--path", "-p", help="Where to write the config file"),
    ] = Path(CONFIG_FILE),
    docs: DocOption = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing config file"),
    ] = False,
) -> None:
    """Write a default config file."""
    if path.exists() and not force:
        console.print(f"[yellow]{path} already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(code=1)

    config = GreenragConfig()
    config.knowledge.documents = [str(d) for d in docs or []]
    try:
        save_config(config, path)
    except GreenragError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e
    console.print(f"[green]Wrote config[/green] to {path}")


@app.command()
def stats(docs: DocOption = None, config_path: ConfigOption = None) -> None:
    """Chunk the knowledge documents and show corpus statistics (no embedding)."""
    try:
        config, paths = _load_settings(config_path, docs)
        chunks = MarkdownChunker(config.chunk).chunk_corpus(load_documents(paths))
    except GreenragError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e

    kb = knowledge_base_stats(chunks)
    console.print(f"[bold]Chunks:[/bold] {kb.total_chunks}  [bold]Words:[/bold] {kb.total_words}")
    for title, counts in (
        ("Category", kb.category_counts),
        ("Service type", kb.service_type_counts),
        ("Source", kb.source_distribution),
    ):
        table = Table(title=title, show_header=False, box=None, padding=(0, 2))
        table.add_column("name", style="dim")
        table.add_column("chunks", style="bold", justify="right")
        for name, count in sorted(counts.items()):
            table.add_row(name, str(count))
        console.print(table)


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Search query")],
    strategy: Annotated[
        SearchStrategy,
        typer.Option("--strategy", "-s", help="Ranking strategy"),
    ] = SearchStrategy.HYBRID,
    top_k: Annotated[int, typer.Option("--top-k", "-k", help="Number of results")] = 5,
    category: Annotated[str | None, typer.Option("--category", help="Category filter")] = None,
    service_type: Annotated[
        str | None, typer.Option("--service-type", help="Service type filter")
    ] = None,
    docs: DocOption = None,
    config_path: ConfigOption = None,
) -> None:
    """Search the knowledge base."""
    options = RetrievalOptions(
        top_k=top_k,
        filters=SearchFilters(category=category, service_type=service_type),
        strategy=strategy,
    )
    context = _run_query(config_path, docs, lambda svc: svc.retrieve(query, options))

    console.print(
        f"[bold]{context.total_results}[/bold] result(s) "
        f"[dim]({context.strategy}, {context.retrieval_time:.1f} ms)[/dim]"
    )
    table = Table()
    table.add_column("Score", justify="right")
    table.add_column("Chunk")
    table.add_column("Section")
    table.add_column("Category", style="dim")
    for result in context.results:
        table.add_row(
            f"{result.score:.3f}",
            result.chunk.id,
            result.chunk.metadata.section,
            result.chunk.metadata.category,
        )
    console.print(table)


@app.command()
def pricing(
    query: Annotated[str, typer.Argument(help="Pricing question")],
    docs: DocOption = None,
    config_path: ConfigOption = None,
) -> None:
    """Show the price range the knowledge base suggests for a service."""
    ctx = _run_query(config_path, docs, lambda svc: svc.retrieve_pricing_context(query))
    price = ctx.price_range

    console.print(f"[bold]{ctx.service_name}[/bold]")
    if price.average is None:
        console.print("  [yellow]No prices found[/yellow]")
    else:
        console.print(f"  Range: ${price.low:,.2f} - ${price.high:,.2f} per {price.unit}")
        console.print(f"  Average: ${price.average:,.2f}")
    if ctx.factors:
        console.print(f"  Factors: {', '.join(ctx.factors)}")
    if ctx.region:
        console.print(f"  Region: {ctx.region}")
    console.print(f"  [dim]Sources: {', '.join(ctx.sources) or '-'}[/dim]")


@app.command()
def labor(
    region: Annotated[str | None, typer.Option("--region", help="Region hint")] = None,
    skill: Annotated[str | None, typer.Option("--skill", help="Skill level hint")] = None,
    docs: DocOption = None,
    config_path: ConfigOption = None,
) -> None:
    """Show hourly labor rates."""
    info = _run_query(config_path, docs, lambda svc: svc.retrieve_labor_rates(region, skill))
    rate = info.hourly_rate

    console.print(f"[bold]Labor ({info.skill_level})[/bold]")
    console.print(f"  Range: ${rate.low:g} - ${rate.high:g} per hour")
    console.print(f"  Average: ${rate.average:.2f} per hour")
    if info.specializations:
        console.print(f"  Specializations: {', '.join(info.specializations)}")


@app.command()
def materials(
    names: Annotated[list[str], typer.Argument(help="Material names")],
    docs: DocOption = None,
    config_path: ConfigOption = None,
) -> None:
    """Show material costs per unit."""
    costs = _run_query(config_path, docs, lambda svc: svc.retrieve_material_costs(names))
    if not costs:
        console.print("[yellow]No material costs found.[/yellow]")
        return

    table = Table()
    table.add_column("Material")
    table.add_column("Cost/unit", justify="right")
    table.add_column("Unit")
    table.add_column("Budget", justify="right")
    table.add_column("Premium", justify="right")
    for cost in costs:
        table.add_row(
            cost.material_name,
            f"${cost.cost_per_unit:,.2f}",
            cost.unit,
            f"${cost.quality_tiers.budget:,.2f}",
            f"${cost.quality_tiers.premium:,.2f}",
        )
    console.print(table)


@app.command()
def service(
    service_type: Annotated[str, typer.Argument(help="Service type, e.g. lawn_care")],
    intensity: Annotated[
        str | None,
        typer.Option("--intensity", help="Known effort intensity: light, moderate, heavy"),
    ] = None,
    docs: DocOption = None,
    config_path: ConfigOption = None,
) -> None:
    """Describe a landscaping service."""
    details = _run_query(
        config_path, docs, lambda svc: svc.retrieve_service_details(service_type, intensity)
    )

    console.print(f"[bold]{details.name}[/bold] ({details.effort_intensity})")
    console.print(f"  {details.description}")
    if details.estimated_duration:
        console.print(f"  Duration: {details.estimated_duration}")
    for label, sentences in (
        ("Prerequisites", details.prerequisites),
        ("Best practices", details.best_practices),
    ):
        if sentences:
            console.print(f"  {label}:")
            for sentence in sentences:
                console.print(f"    - {sentence}")
