"""
esresilience count / nodes - Inspect a cluster through the resilient facade.
"""

import asyncio
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from esresilience.client import DocStore
from esresilience.config.loader import load_config
from esresilience.config.settings import DocStoreSettings
from esresilience.config.singleton import GlobalConfig
from esresilience.connections.elasticsearch import create_client
from esresilience.exceptions import ESResilienceError
from esresilience.utils.logging import setup_logging_from_config

console = Console()


def _open_store(project_dir: Path, env: str | None) -> DocStore:
    config = load_config(project_dir, env=env)
    GlobalConfig.set_config(config)
    setup_logging_from_config(config.data, project_dir=project_dir)

    settings = DocStoreSettings.from_config(config)
    return DocStore(create_client(settings), settings)


async def _run(store: DocStore, operation: str, *args: Any) -> Any:
    try:
        return await getattr(store, operation)(*args)
    finally:
        await store.close()


def count(
    index: str | None = typer.Option(None, "--index", "-i", help="Index to count (default: docstore.index)"),
    query: str | None = typer.Option(None, "--query", "-q", help="Lucene query string"),
    env: str | None = typer.Option(None, help="Environment"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Directory holding config.yaml"),
) -> None:
    """
    Count documents in an index.
    """
    try:
        store = _open_store(project_dir, env)
        request: dict[str, Any] = {"index": index or store.settings.index}
        if query:
            request["body"] = {"query": {"query_string": {"query": query}}}
        total = asyncio.run(_run(store, "count", request))
    except ESResilienceError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    console.print(total)


def nodes(
    env: str | None = typer.Option(None, help="Environment"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Directory holding config.yaml"),
) -> None:
    """
    List cluster nodes and their versions.
    """
    try:
        store = _open_store(project_dir, env)
        info = asyncio.run(_run(store, "node_info"))
    except ESResilienceError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    table = Table(title="Nodes", show_header=True)
    table.add_column("Id", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Version", style="green")
    table.add_column("Host", style="dim")

    for node_id, node in sorted((info.get("nodes") or {}).items()):
        table.add_row(node_id, node.get("name", ""), node.get("version", ""), node.get("host", ""))

    console.print(table)
