"""Scan and watch command implementations."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from aitarget.core.dom.models import ElementDescriptor
from aitarget.core.engine.registry_engine import RegistryEngine
from aitarget.core.errors import AitargetError
from aitarget.core.logs import configure_logging
from aitarget.core.models.config import Config
from aitarget.core.sync.gateway import HttpSyncGateway
from aitarget.plugins.browsers.playwright_plugin import PlaywrightBridge, PlaywrightBrowser

console = Console()


def load_config(config_file: Path | None, sync_url: str | None = None) -> Config:
    """Load configuration and apply command-line overrides."""
    config = Config.from_yaml(config_file) if config_file else Config()
    if sync_url:
        config.sync.enabled = True
        config.sync.base_url = sync_url
    return config


def registry_table(elements: list[ElementDescriptor], title: str = "Interactive Elements") -> Table:
    """Render descriptors as a rich table."""
    table = Table(title=title)
    table.add_column("Target", style="cyan", no_wrap=True)
    table.add_column("Action", style="green")
    table.add_column("Tag")
    table.add_column("Component", style="magenta")
    table.add_column("Content", overflow="ellipsis", max_width=40)
    table.add_column("Path", style="dim", overflow="fold")

    for element in elements:
        table.add_row(
            element.target_id,
            element.interaction_type.value,
            element.tag_name,
            element.component_name or "",
            element.content,
            element.path,
        )
    return table


async def run_scan(
    url: str,
    as_json: bool,
    sync_url: str | None,
    headless: bool,
    config_file: Path | None,
    persist: bool,
) -> None:
    """Open a page, capture its registry once and print it."""
    config = load_config(config_file, sync_url)
    configure_logging(config.logs)

    gateway = HttpSyncGateway(config.sync) if config.sync.enabled else None
    browser = PlaywrightBrowser()
    try:
        await browser.launch(headless=headless)
        page = await browser.open(url)

        bridge = PlaywrightBridge(page)
        engine = RegistryEngine(bridge.document, config=config, gateway=gateway)
        bridge.engine = engine

        await bridge.refresh()
        elements = engine.capture_interactive_elements()
        if persist:
            await bridge.persist_markers()

        if gateway is not None:
            ok = await engine.update_component_map()
            if not as_json:
                status = "[green]synced[/green]" if ok else "[red]sync failed[/red]"
                console.print(f"Component map {status} to {config.sync.base_url}")
    finally:
        if gateway is not None:
            await gateway.aclose()
        await browser.close()

    if as_json:
        console.print_json(data=[element.to_dict() for element in elements])
    else:
        console.print(registry_table(elements, title=f"Interactive Elements - {url}"))
        console.print(f"[bold]{len(elements)}[/bold] elements captured")


async def run_watch(
    url: str,
    duration: float,
    sync_url: str | None,
    headless: bool,
    config_file: Path | None,
    poll_interval: float,
) -> None:
    """Keep a live page's registry current and print every scan."""
    if duration <= 0:
        raise AitargetError("Duration must be positive")

    config = load_config(config_file, sync_url)
    configure_logging(config.logs)

    gateway = HttpSyncGateway(config.sync) if config.sync.enabled else None
    browser = PlaywrightBrowser()
    try:
        await browser.launch(headless=headless)
        page = await browser.open(url)

        bridge = PlaywrightBridge(page)
        engine = RegistryEngine(bridge.document, config=config, gateway=gateway)
        bridge.engine = engine

        await bridge.refresh()

        pending: set[asyncio.Task[int]] = set()

        def show(elements: list[ElementDescriptor]) -> None:
            console.print(registry_table(elements, title=f"Scan - {bridge.document.url}"))
            # Persisted markers keep random ids stable across refreshes
            task = asyncio.get_running_loop().create_task(bridge.persist_markers())
            pending.add(task)
            task.add_done_callback(pending.discard)

        unsubscribe = engine.on_update(show)
        dispose = engine.start_monitoring()
        bridge.attach()
        bridge.start_polling(poll_interval)
        try:
            await asyncio.sleep(duration)
        finally:
            dispose()
            unsubscribe()
            bridge.detach()
            await bridge.stop_polling()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            await engine.aclose()

        stats = engine.watchdog.stats if engine.watchdog else None
        if stats is not None:
            console.print_json(json.dumps(stats.to_dict()))
    finally:
        await browser.close()
