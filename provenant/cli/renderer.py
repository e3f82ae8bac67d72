"""Rich terminal rendering for attestation, evidence and receipt results.

Color scheme
------------
- green     : verified / passed
- red       : failed check or error finding
- yellow    : warning finding (never affects the exit code)
- dim       : skipped or not applicable
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from provenant.models.attestation import DirectoryAttestation, DirectoryVerification
from provenant.models.receipts import GenerationReceipt
from provenant.models.reports import ManifestEvaluation, ProvenanceReport
from provenant.models.results import FindingLevel

_LEVEL_STYLES: dict[FindingLevel, str] = {
    FindingLevel.ERROR: "[bold red]ERROR[/bold red]",
    FindingLevel.WARNING: "[yellow]WARNING[/yellow]",
}


def _flag(value: bool) -> str:
    return "[green]yes[/green]" if value else "[red]no[/red]"


class ResultRenderer:
    """Renders provenant results as Rich tables and panels.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Attestation
    # ------------------------------------------------------------------

    def print_attestation(self, result: DirectoryAttestation, *, keyed: bool) -> None:
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("File", min_width=30)
        table.add_column("Signature", min_width=20)

        for path, signature in result.signatures.items():
            shown = f"{signature[:16]}..." if keyed else "[dim]digest-only[/dim]"
            table.add_row(path, shown)
        for path, error in result.errors.items():
            table.add_row(path, f"[red]{error}[/red]")

        self.console.print(table)
        if not keyed:
            self.console.print(
                "[yellow]No signing key configured; records are digest-only.[/yellow]"
            )
        self.console.print(
            f"[bold]Attested:[/bold] {result.attested_count}  |  "
            f"[bold]Failed:[/bold] {len(result.errors)}"
        )

    def print_verification(self, result: DirectoryVerification) -> None:
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("File", min_width=30)
        table.add_column("Status", justify="center", min_width=10)
        table.add_column("Details", min_width=20)

        for check in result.checks:
            if check.ok:
                status = "[green]OK[/green]"
                details = "; ".join(f"[yellow]{w}[/yellow]" for w in check.warnings) or "[dim]-[/dim]"
            else:
                status = "[bold red]FAILED[/bold red]"
                kind = check.failed_check.value if check.failed_check else "unknown"
                details = f"[red]{kind}[/red]: {check.message}"
            table.add_row(check.path, status, details)

        self.console.print(table)
        verdict = "[green]all verified[/green]" if result.ok else (
            f"[bold red]{len(result.failures)} failed[/bold red]"
        )
        self.console.print(f"[bold]Checked:[/bold] {len(result.checks)}  |  {verdict}")

    # ------------------------------------------------------------------
    # Evidence
    # ------------------------------------------------------------------

    def print_evaluation(self, evaluation: ManifestEvaluation) -> None:
        result = evaluation.result
        title = evaluation.manifest_path or "manifest"
        if not result.findings:
            self.console.print(f"[green]PASS[/green] {title}")
            return

        table = Table(title=title, show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Level", justify="center", width=9)
        table.add_column("Check", min_width=14)
        table.add_column("Path", min_width=14)
        table.add_column("Message", min_width=24)
        for finding in result.findings:
            table.add_row(
                _LEVEL_STYLES[finding.level],
                finding.check or "[dim]-[/dim]",
                finding.path or "[dim]-[/dim]",
                finding.message,
            )
        self.console.print(table)
        verdict = "[green]PASS[/green]" if result.passed else "[bold red]FAIL[/bold red]"
        self.console.print(f"{verdict} {title}")

    # ------------------------------------------------------------------
    # Receipts
    # ------------------------------------------------------------------

    def print_receipt(self, receipt: GenerationReceipt, title: str = "Generation Receipt") -> None:
        lines = [
            f"[bold]Receipt:[/bold] {receipt.receipt_id}",
            f"[bold]Input hash:[/bold] {receipt.input_hash}",
            f"[bold]Blueprint:[/bold] {receipt.blueprint.id}@{receipt.blueprint.version} "
            f"([dim]{receipt.blueprint.path}[/dim])",
            f"[bold]Seed:[/bold] {receipt.execution.seed}  "
            f"[bold]Temperature:[/bold] {receipt.execution.temperature}  "
            f"[bold]Mode:[/bold] {receipt.execution.mode.value}",
            f"[bold]Output digest:[/bold] {receipt.output_digest or '[dim]pending[/dim]'}",
            f"[bold]Reproduced:[/bold] {_flag(receipt.reproduced)}",
            f"[bold]Validation:[/bold] build {_flag(receipt.validation.build_passed)}  "
            f"tests {_flag(receipt.validation.tests_passed)}  "
            f"lint {_flag(receipt.validation.lint_passed)}",
        ]
        self.console.print(Panel("\n".join(lines), title=f"[bold]{title}[/bold]", border_style="blue"))

    def print_receipts(self, receipts: list[GenerationReceipt]) -> None:
        if not receipts:
            self.console.print("[dim]No receipts found.[/dim]")
            return
        table = Table(title="Generation Receipts", show_header=True, header_style="bold cyan")
        table.add_column("Receipt", style="cyan")
        table.add_column("Blueprint")
        table.add_column("Timestamp", style="dim")
        table.add_column("Output", justify="center")
        table.add_column("Reproduced", justify="center")
        table.add_column("Validation", justify="right")
        for r in receipts:
            table.add_row(
                r.receipt_id,
                f"{r.blueprint.id}@{r.blueprint.version}",
                r.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
                "[green]yes[/green]" if r.output_digest else "[dim]pending[/dim]",
                _flag(r.reproduced),
                f"{r.validation.passed_count}/3",
            )
        self.console.print(table)

    # ------------------------------------------------------------------
    # Report
    # ------------------------------------------------------------------

    def print_report(self, report: ProvenanceReport, path: str) -> None:
        failed_commands = sum(
            1 for r in report.commands.values() if r.exit_code not in (0, -1)
        )
        failing_manifests = sum(1 for e in report.evidence if not e.result.passed)
        lines = [
            f"[bold]Commit:[/bold] {report.meta.commit}",
            f"[bold]Key fingerprint:[/bold] {report.meta.signing_key_fingerprint or '[dim]none[/dim]'}",
            f"[bold]Commands:[/bold] {len(report.commands)} ({failed_commands} failed)",
            f"[bold]Manifests:[/bold] {len(report.evidence)} ({failing_manifests} failing)",
            f"[bold]Blueprints:[/bold] {len(report.reproducibility)}",
            f"[bold]Attestation records:[/bold] {len(report.attestations)}",
        ]
        for error in report.errors:
            lines.append(f"[yellow]{error}[/yellow]")
        self.console.print(
            Panel("\n".join(lines), title="[bold]Provenance Report[/bold]", subtitle=path, border_style="blue")
        )
