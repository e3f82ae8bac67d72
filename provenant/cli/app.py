"""Main Typer application: imports and registers all CLI commands.

Entry point: ``provenant`` (configured via pyproject.toml scripts).

Commands: attest, verify, evidence, receipts, report.
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from provenant.cli.commands.attest import attest_cmd
from provenant.cli.commands.evidence import evidence_cmd
from provenant.cli.commands.receipts import receipts_app
from provenant.cli.commands.report import report_cmd
from provenant.cli.commands.verify import verify_cmd
from provenant.config import config

app = typer.Typer(
    name="provenant",
    help="Provenant: provenance attestation and evidence verification.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="attest", help="Attest files for the current revision.")(attest_cmd)
app.command(name="verify", help="Verify files against their attestations.")(verify_cmd)
app.command(name="evidence", help="Evaluate evidence manifests.")(evidence_cmd)
app.command(name="report", help="Write the consolidated provenance report.")(report_cmd)
app.add_typer(receipts_app, name="receipts")


def configure_logging(level: str) -> None:
    """Route all log records through Rich on stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Logging level (default: PROVENANT_LOG_LEVEL or INFO).",
    ),
) -> None:
    configure_logging(log_level or config.log_level)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
