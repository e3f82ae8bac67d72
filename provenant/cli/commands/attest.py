"""``provenant attest [DIR]``: attest every matching file in a tree.

Writes one record per file under the active revision and an
``attestation-summary.json``.  Without a signing key the records are
digest-only.
"""

from __future__ import annotations

from pathlib import Path

import typer

from provenant.cli.context import build_engine, console
from provenant.cli.renderer import ResultRenderer
from provenant.models.attestation import DirectoryAttestation


def attest_cmd(
    directory: Path = typer.Argument(
        None,
        help="Directory to attest. Defaults to the configured attest targets.",
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
        help="Number of files attested in parallel.",
    ),
    output_root: Path = typer.Option(
        None,
        "--output-root",
        "-o",
        help="Root directory for attestation records.",
    ),
) -> None:
    """Attest files and write their records for the current revision."""
    engine = build_engine(output_root=output_root)
    settings = engine.settings
    extensions = tuple(ext) if ext else tuple(settings.attest_extensions)
    targets = [directory] if directory is not None else [Path(t) for t in settings.attest_targets]

    signatures: dict[str, str] = {}
    errors: dict[str, str] = {}
    for target in targets:
        result = engine.store.attest_directory(
            target, extensions, workers=workers or settings.sweep_workers
        )
        signatures.update(result.signatures)
        errors.update(result.errors)

    combined = DirectoryAttestation(
        root=", ".join(str(t) for t in targets), signatures=signatures, errors=errors
    )
    summary_path = engine.store.write_summary(combined)

    console.print(f"[bold]Revision:[/bold] {engine.store.revision_id}")
    ResultRenderer(console).print_attestation(combined, keyed=engine.signer.has_key())
    console.print(f"[dim]Summary written to {summary_path}[/dim]")

    if errors:
        raise typer.Exit(code=1)
