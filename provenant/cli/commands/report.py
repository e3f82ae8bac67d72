"""``provenant report``: produce the consolidated provenance report.

Report generation never fails on the state of the system under audit;
problems are recorded inside the report.
"""

from __future__ import annotations

from pathlib import Path

import typer

from provenant.cli.context import build_engine, console
from provenant.cli.renderer import ResultRenderer
from provenant.core.report import write_report

REPORT_NAME = "provenance-report.json"


def report_cmd(
    output: Path = typer.Option(
        None,
        "--output",
        "-o",
        help="Where to write the report JSON.",
    ),
) -> None:
    """Run the governance battery and write the provenance report."""
    engine = build_engine()
    report = engine.aggregator().generate_report()
    path = write_report(report, output or engine.reports_dir / REPORT_NAME)
    ResultRenderer(console).print_report(report, str(path))
