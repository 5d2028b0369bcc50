"""Main CLI application."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from aitarget import __version__
from aitarget.core.errors import AitargetError

# Create main app
app = typer.Typer(
    name="aitarget",
    help="Runtime registry of interactive page elements",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]aitarget[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """aitarget - stable ids for every button, link and field on a page."""
    pass


@app.command()
def scan(
    url: Annotated[str, typer.Argument(help="Page to scan")],
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print descriptors as JSON"),
    ] = False,
    sync_url: Annotated[
        str | None,
        typer.Option("--sync-url", help="Base URL of the component-map service"),
    ] = None,
    headless: Annotated[
        bool,
        typer.Option("--headless/--no-headless", help="Run in headless mode"),
    ] = True,
    persist: Annotated[
        bool,
        typer.Option("--persist/--no-persist", help="Write markers back into the page"),
    ] = True,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Config file path"),
    ] = None,
) -> None:
    """Capture the interactive elements of a page once."""
    from aitarget.cli.commands.scan import run_scan

    try:
        asyncio.run(
            run_scan(
                url=url,
                as_json=as_json,
                sync_url=sync_url,
                headless=headless,
                config_file=config,
                persist=persist,
            )
        )
    except (AitargetError, FileNotFoundError, ValidationError) as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1) from e


@app.command()
def watch(
    url: Annotated[str, typer.Argument(help="Page to watch")],
    duration: Annotated[
        float,
        typer.Option("--duration", "-d", help="How long to watch, in seconds"),
    ] = 60.0,
    sync_url: Annotated[
        str | None,
        typer.Option("--sync-url", help="Base URL of the component-map service"),
    ] = None,
    headless: Annotated[
        bool,
        typer.Option("--headless/--no-headless", help="Run in headless mode"),
    ] = True,
    poll_interval: Annotated[
        float,
        typer.Option("--poll-interval", help="Seconds between page mirror refreshes"),
    ] = 0.5,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Config file path"),
    ] = None,
) -> None:
    """Keep a live page's registry current and print every scan."""
    from aitarget.cli.commands.scan import run_watch

    try:
        asyncio.run(
            run_watch(
                url=url,
                duration=duration,
                sync_url=sync_url,
                headless=headless,
                config_file=config,
                poll_interval=poll_interval,
            )
        )
    except (AitargetError, FileNotFoundError, ValidationError) as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1) from e


@app.command()
def config(
    action: Annotated[
        str,
        typer.Argument(help="Action: show, validate, init"),
    ],
    file: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="Config file"),
    ] = None,
) -> None:
    """Manage configuration."""
    from aitarget.core.models.config import Config

    if action == "show":
        cfg = Config()
        if file and file.exists():
            cfg = Config.from_yaml(file)

        console.print("[bold]Current Configuration:[/bold]")
        console.print_json(data=cfg.to_dict())

    elif action == "validate":
        if file is None:
            console.print("[red]--file is required for validate[/red]")
            raise typer.Exit(1)
        try:
            Config.from_yaml(file)
        except (FileNotFoundError, ValidationError) as e:
            console.print(f"[red]Config validation failed: {escape(str(e))}[/red]")
            raise typer.Exit(1) from e
        console.print(f"[green]Config file {file} is valid![/green]")

    elif action == "init":
        output_path = file or Path("./aitarget.yaml")
        Config().to_yaml(output_path)
        console.print(f"[green]Config initialized at {output_path}[/green]")

    else:
        console.print(f"[red]Unknown action: {action}[/red]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
