import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown

from persona_places.cities import CITIES
from persona_places.config import Settings
from persona_places.errors import ConfigurationError
from persona_places.formatter import format_persona, format_report
from persona_places.pipeline import PersonaPipeline, PipelineResult

load_dotenv()
app = typer.Typer()
console = Console()


def _setup(debug: bool) -> tuple[PersonaPipeline, Settings]:
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(message)s", handlers=[RichHandler(console=console)])
    try:
        settings = Settings.from_env()
    except ConfigurationError as exc:
        console.print(f"[bold red]Error:[/] {exc}")
        raise typer.Exit(1)
    return PersonaPipeline.from_settings(settings), settings


def _unwrap(result: PipelineResult):
    if not result.ok:
        console.print(f"[bold red]Error:[/] {result.error.message} [dim]({result.error.kind.value})[/]")
        raise typer.Exit(1)
    return result.value


@app.command()
def persona(
    handle: str = typer.Argument(help="X handle, with or without @"),
    as_json: bool = typer.Option(False, "--json", help="Print the persona as JSON"),
    debug: bool = typer.Option(False, "--debug", help="Show pipeline logs"),
):
    """Generate a persona for an X handle."""
    pipeline, _ = _setup(debug)
    with console.status("[bold green]Searching profile and generating persona..."):
        result = _unwrap(asyncio.run(pipeline.create_persona(handle)))

    if as_json:
        console.print_json(data=result.model_dump(mode="json", by_alias=True))
    else:
        console.print(Markdown(format_persona(result)))


@app.command()
def places(
    handle: str = typer.Argument(help="X handle, with or without @"),
    as_json: bool = typer.Option(False, "--json", help="Print persona and locations as JSON"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Save report to file instead of printing"),
    debug: bool = typer.Option(False, "--debug", help="Show pipeline logs"),
):
    """Generate a persona, then recommend places for it."""
    pipeline, settings = _setup(debug)

    async def _run():
        with console.status("[bold green]Searching profile and generating persona..."):
            found = _unwrap(await pipeline.create_persona(handle))
        with console.status("[bold green]Finding places..."):
            locations = _unwrap(await pipeline.create_recommendations(found))
        return found, locations

    found, locations = asyncio.run(_run())

    if as_json:
        text = json.dumps({
            "persona": found.model_dump(mode="json", by_alias=True),
            "locations": [loc.model_dump(mode="json", by_alias=True) for loc in locations],
        }, ensure_ascii=False, indent=2)
    else:
        text = format_report(found, locations, city=CITIES[settings.city].name)

    if output:
        output.write_text(text)
        console.print(f"[bold green]✓[/] Report saved to [cyan]{output}[/]")
    elif as_json:
        console.print_json(text)
    else:
        console.print(Markdown(text))
