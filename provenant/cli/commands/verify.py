"""``provenant verify [DIR]``: verify files against their attestations.

Every file is checked; a failure never stops the sweep.  Exits 1 if any
file is missing an attestation, has drifted, or carries a bad signature.
"""

from __future__ import annotations

from pathlib import Path

import typer

from provenant.cli.context import build_engine, console
from provenant.cli.renderer import ResultRenderer
from provenant.models.attestation import DirectoryVerification


def verify_cmd(
    directory: Path = typer.Argument(
        None,
        help="Directory to verify. Defaults to the configured attest targets.",
    ),
    ext: list[str] = typer.Option(
        None,
        "--ext",
        "-e",
        help="File extension to include (repeatable), e.g. --ext .py",
    ),
    workers: int = typer.Option(
        None,
        "--workers",
        "-w",
        help="Number of files verified in parallel.",
    ),
    output_root: Path = typer.Option(
        None,
        "--output-root",
        "-o",
        help="Root directory for attestation records.",
    ),
) -> None:
    """Verify files against the records of the current revision."""
    engine = build_engine(output_root=output_root)
    settings = engine.settings
    extensions = tuple(ext) if ext else tuple(settings.attest_extensions)
    targets = [directory] if directory is not None else [Path(t) for t in settings.attest_targets]

    checks = []
    for target in targets:
        sweep = engine.store.sweep(
            target, extensions, workers=workers or settings.sweep_workers
        )
        checks.extend(sweep.checks)
    combined = DirectoryVerification(root=", ".join(str(t) for t in targets), checks=checks)

    console.print(f"[bold]Revision:[/bold] {engine.store.revision_id}")
    ResultRenderer(console).print_verification(combined)

    if not combined.ok:
        raise typer.Exit(code=1)
