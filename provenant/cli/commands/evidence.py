"""``provenant evidence [GLOBS...]``: evaluate evidence manifests.

Discovers manifests (default ``blueprints/**/evidence.json``), evaluates
each under the current trust context, prints the findings, and writes
``evidence-summary.json``.  Warnings never change the exit code.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import typer

from provenant.cli.context import build_engine, console
from provenant.cli.renderer import ResultRenderer
from provenant.core.evidence_evaluator import discover_manifests, write_summary
from provenant.errors import StructuralError
from provenant.models.reports import ManifestEvaluation

SUMMARY_NAME = "evidence-summary.json"


def evidence_cmd(
    globs: list[str] = typer.Argument(
        None,
        help="Manifest globs relative to the base directory.",
    ),
    summary: Path = typer.Option(
        None,
        "--summary",
        "-s",
        help="Where to write the evidence summary JSON.",
    ),
) -> None:
    """Evaluate evidence manifests and exit 1 if any claim is unsupported."""
    started_at = datetime.now(timezone.utc)
    engine = build_engine()
    settings = engine.settings
    trust = engine.trust_context().model_copy(update={"job_started_at": started_at})

    manifests = discover_manifests(globs or settings.evidence_globs, settings.base_dir)
    if not manifests:
        console.print("[yellow]No evidence manifests found.[/yellow]")
        return

    if not trust.has_signing_key:
        console.print("[yellow]Degraded mode: signature artifacts are advisory.[/yellow]")

    renderer = ResultRenderer(console)
    evaluations: list[ManifestEvaluation] = []
    failed = False
    for manifest in manifests:
        try:
            evaluation = engine.evaluator.evaluate_file(manifest, trust)
        except StructuralError as exc:
            console.print(f"[bold red]FAIL[/bold red] {manifest}: {exc}")
            failed = True
            continue
        renderer.print_evaluation(evaluation)
        evaluations.append(evaluation)
        failed = failed or not evaluation.result.passed

    summary_path = write_summary(
        evaluations,
        summary or engine.validation_dir / SUMMARY_NAME,
        trust,
        started_at=started_at,
        relax_signature_checks=settings.skip_signature_checks,
    )
    console.print(f"[dim]Summary written to {summary_path}[/dim]")

    if failed:
        raise typer.Exit(code=1)
