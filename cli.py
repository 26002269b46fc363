"""CLI entry point for PaperForge."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from paperforge.config import CONFIG_PATH_ENV, Settings
from paperforge.errors import PaperForgeError
from paperforge.knowledge_base.db import Database
from paperforge.knowledge_base.models import GeneratedPaper, RiskStatus
from paperforge.llm.router import LLMRouter

console = Console()
logger = logging.getLogger("paperforge")

_STATUS_COLORS = {
    RiskStatus.LOW: "green",
    RiskStatus.MEDIUM: "yellow",
    RiskStatus.HIGH: "red",
}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def get_db(settings: Settings) -> Database:
    db = Database(settings.db_path)
    db.initialize()
    return db


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    "config_path",
    default=None,
    help="Settings file (default: $PAPERFORGE_CONFIG or config/settings.yaml)",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_path: str | None) -> None:
    """PaperForge - generate, check and export academic papers."""
    setup_logging(verbose)
    ctx.obj = Settings(config_path)


@main.command()
@click.option("--host", default="127.0.0.1")
@click.option("--port", default=8000, type=int)
@click.option("--reload", is_flag=True, help="Reload on code changes")
@click.pass_obj
def serve(settings: Settings, host: str, port: int, reload: bool) -> None:
    """Run the HTTP API."""
    import uvicorn

    # The app factory builds its own Settings, possibly in a reloader subprocess
    os.environ[CONFIG_PATH_ENV] = str(settings.config_path)
    uvicorn.run("api.main:create_app", factory=True, host=host, port=port, reload=reload)


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print the raw report as JSON")
def check(path: str, as_json: bool) -> None:
    """Score a text file for originality."""
    from paperforge.originality.checker import MIN_TEXT_LENGTH, check_originality

    text = Path(path).read_text(encoding="utf-8")
    if len(text) < MIN_TEXT_LENGTH:
        console.print(f"[red]Text too short for originality check (minimum {MIN_TEXT_LENGTH} characters)[/red]")
        sys.exit(1)

    report = check_originality(text)
    if as_json:
        click.echo(report.model_dump_json(by_alias=True, indent=2))
        return

    color = _STATUS_COLORS[report.status]
    console.print(
        Panel(
            f"[bold {color}]{report.score}% original[/bold {color}] ({report.status.value})\n"
            f"{report.analyzed_word_count} words analyzed"
        )
    )
    if report.matches:
        table = Table(title="Flagged passages")
        table.add_column("Similarity", justify="right")
        table.add_column("Excerpt")
        for match in report.matches:
            table.add_row(f"{match.similarity}%", match.text)
        console.print(table)
    for suggestion in report.suggestions:
        console.print(f"  - {suggestion}")


@main.command()
@click.argument("topic")
@click.option("--words", default=2000, help="Target word count")
@click.option("--style", default="ieee", type=click.Choice(["ieee", "apa", "mla", "chicago", "harvard"]))
@click.option("--output", "-o", default="output/paper.json", help="Where to write the paper JSON")
@click.pass_obj
def generate(settings: Settings, topic: str, words: int, style: str, output: str) -> None:
    """Generate a paper on TOPIC."""
    from paperforge.generation.generator import PaperGenerator, parse_citation_style

    async def _run():
        db = get_db(settings)
        try:
            generator = PaperGenerator(
                LLMRouter(settings=settings, db=db),
                timeout=settings.generation_timeout,
                temperature=settings.generation_temperature,
                max_tokens=settings.generation_max_tokens,
            )
            return await generator.generate(topic, words, parse_citation_style(style))
        finally:
            db.close()

    try:
        paper = asyncio.run(_run())
    except PaperForgeError as e:
        console.print(f"[red]{e.message}[/red]")
        sys.exit(1)

    out = Path(output)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(paper.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
    console.print(f"[green]Generated:[/green] {paper.title}")
    console.print(f"  References: {len(paper.references)}")
    console.print(f"  Saved to {out}")


@main.command()
@click.argument("paper_json", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "fmt", default="docx", type=click.Choice(["docx", "pdf", "html"]))
@click.option("--output", "-o", default=None, help="Output file path")
def export(paper_json: str, fmt: str, output: str | None) -> None:
    """Export a paper JSON file to DOCX or printable HTML."""
    from paperforge.export.exporter import EXPORT_FORMATS, PaperExporter

    paper = GeneratedPaper.model_validate(json.loads(Path(paper_json).read_text(encoding="utf-8")))
    target = output or str(Path(paper_json).with_name(EXPORT_FORMATS[fmt][1]))
    path = PaperExporter().export_to_file(paper, target, fmt)
    console.print(f"[green]Exported to {path}[/green]")


@main.command()
@click.argument("email")
@click.option("--search", default=None, help="Filter by title/topic")
@click.option("--limit", default=20, help="Max papers to list")
@click.pass_obj
def papers(settings: Settings, email: str, search: str | None, limit: int) -> None:
    """List saved papers for the account EMAIL."""
    db = get_db(settings)
    try:
        found = db.get_user_credentials(email)
        if found is None:
            console.print(f"[red]No account for {email}[/red]")
            sys.exit(1)
        page = db.list_papers(found[0].id, limit=limit, search=search)
        table = Table(title=f"{page.count} paper(s)")
        table.add_column("ID")
        table.add_column("Title")
        table.add_column("Topic")
        table.add_column("Words", justify="right")
        table.add_column("Created")
        for p in page.papers:
            created = p.created_at.strftime("%Y-%m-%d %H:%M") if p.created_at else ""
            table.add_row(p.id, p.title, p.topic, str(p.word_count), created)
        console.print(table)
    finally:
        db.close()


@main.command()
@click.pass_obj
def stats(settings: Settings) -> None:
    """Show LLM usage and cost."""
    db = get_db(settings)
    try:
        summary = db.get_llm_usage_summary()
        table = Table(title="LLM usage")
        table.add_column("Model:Task")
        table.add_column("Calls", justify="right")
        table.add_column("Tokens", justify="right")
        table.add_column("Cost (USD)", justify="right")
        for key, row in summary.items():
            table.add_row(key, str(row["calls"]), str(row["tokens"] or 0), f"{row['cost'] or 0:.4f}")
        console.print(table)
    finally:
        db.close()


if __name__ == "__main__":
    main()
