"""``provenant receipts ...``: generation receipt management.

Subcommands: generate, update-output, verify, validate, list.
"""

from __future__ import annotations

from pathlib import Path

import typer

from provenant.cli.context import build_engine, console, fail
from provenant.cli.renderer import ResultRenderer
from provenant.errors import AvailabilityError, StructuralError
from provenant.models.receipts import ExecutionMode

receipts_app = typer.Typer(
    help="Record and check deterministic-generation receipts.",
    no_args_is_help=True,
)


@receipts_app.command(name="generate", help="Record the inputs of a new generation.")
def generate_cmd(
    blueprint: Path = typer.Argument(..., help="Path to the blueprint file."),
    seed: str = typer.Option(None, "--seed", help="Generation seed; random when omitted."),
    temperature: float = typer.Option(0.0, "--temperature", "-t", help="Sampling temperature."),
    mode: ExecutionMode = typer.Option(ExecutionMode.STRICT, "--mode", "-m", help="Execution mode."),
    model: str = typer.Option("unknown", "--model", help="Model version used for generation."),
) -> None:
    engine = build_engine()
    try:
        receipt = engine.ledger.begin_generation(
            blueprint,
            seed=seed,
            temperature=temperature,
            mode=mode,
            model_version=model,
        )
    except AvailabilityError as exc:
        fail(str(exc))
    ResultRenderer(console).print_receipt(receipt, title="Generation Started")
    console.print(
        f"[dim]Next: provenant receipts update-output {receipt.receipt_id} <output>[/dim]"
    )


@receipts_app.command(name="update-output", help="Attach the generated output to a receipt.")
def update_output_cmd(
    receipt: str = typer.Argument(..., help="Receipt id, input key or input hash."),
    output: Path = typer.Argument(..., help="Path to the generated output."),
) -> None:
    engine = build_engine()
    try:
        updated = engine.ledger.attach_output(receipt, output)
    except (AvailabilityError, StructuralError) as exc:
        fail(str(exc))
    ResultRenderer(console).print_receipt(updated, title="Output Recorded")


@receipts_app.command(name="verify", help="Check that the latest generation reproduced the previous one.")
def verify_cmd(
    blueprint: Path = typer.Argument(..., help="Path to the blueprint file."),
    output: Path = typer.Argument(None, help="Output to check; defaults to the recorded one."),
) -> None:
    engine = build_engine()
    try:
        check = engine.ledger.check_reproducibility(blueprint, output)
    except StructuralError as exc:
        fail(str(exc))

    if check.ok:
        console.print(f"[bold green]Reproduced:[/bold green] {check.blueprint_path}")
        console.print(f"[dim]{check.actual_digest}[/dim]")
        return

    console.print(f"[bold red]Not reproduced:[/bold red] {check.reason}")
    if check.expected_digest or check.actual_digest:
        console.print(f"  expected: {check.expected_digest or '-'}")
        console.print(f"  actual:   {check.actual_digest or '-'}")
    raise typer.Exit(code=1)


@receipts_app.command(name="validate", help="Run build, test and lint and record the outcomes.")
def validate_cmd(
    receipt: str = typer.Argument(..., help="Receipt id, input key or input hash."),
) -> None:
    engine = build_engine()
    settings = engine.settings
    try:
        updated = engine.ledger.validate_generation(
            receipt,
            engine.executor,
            settings.validation_commands,
            timeout=settings.command_timeout_seconds,
        )
    except (AvailabilityError, StructuralError) as exc:
        fail(str(exc))

    ResultRenderer(console).print_receipt(updated, title="Validation Recorded")
    if not updated.validation.all_passed:
        raise typer.Exit(code=1)


@receipts_app.command(name="list", help="List generation receipts.")
def list_cmd(
    blueprint: str = typer.Option(None, "--blueprint", "-b", help="Only receipts for this blueprint id."),
) -> None:
    engine = build_engine()
    try:
        receipts = engine.ledger.list(blueprint)
    except StructuralError as exc:
        fail(str(exc))
    ResultRenderer(console).print_receipts(receipts)
