"""Shared helpers for CLI commands: engine construction and error exits."""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console

from provenant.config import ProdConfig
from provenant.core.engine import Engine
from provenant.core.production_guard import ProductionConfigError

console = Console()


def build_engine(*, output_root: Path | None = None) -> Engine:
    """Construct an ``Engine`` from the environment, exiting 1 on a bad config."""
    try:
        return Engine(ProdConfig(), output_root=output_root)
    except ProductionConfigError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc


def fail(message: str) -> NoReturn:
    """Print *message* in red and exit with status 1."""
    console.print(f"[bold red]{message}[/bold red]")
    raise typer.Exit(code=1)
