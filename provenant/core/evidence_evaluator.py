"""Evidence Manifest Evaluator.

Runs the checks an evidence manifest declares and returns a
``VerificationResult``.  Individual check failures are findings, never
exceptions; only a manifest that fails to parse aborts evaluation (with
``StructuralError``) before any check runs.

Degraded mode
-------------
When the trust context reports no signing key, a missing *signature
artifact* is downgraded from an error to the warning
``"signature file missing, attestation disabled"``.  Every other check
keeps its severity.
"""

from __future__ import annotations

import glob
import json
import logging
import os
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from provenant.config import ProdConfig
from provenant.core.executor import CommandExecutor, SubprocessExecutor
from provenant.core.fsutil import atomic_write_bytes
from provenant.core.signing import SignatureService
from provenant.errors import StructuralError
from provenant.models.manifest import (
    ArtifactKind,
    CommandCheck,
    EvidenceManifest,
    ExpectedFile,
    TelemetryCheck,
)
from provenant.models.reports import ManifestEvaluation
from provenant.models.results import (
    CommandReceipt,
    FileReceipt,
    TrustContext,
    VerificationResult,
)

logger = logging.getLogger(__name__)

DEGRADED_SIGNATURE_MESSAGE = "signature file missing, attestation disabled"
_GLOB_CHARS = frozenset("*?[")


def trust_context_from(
    signer: SignatureService,
    settings: ProdConfig,
    job_started_at: datetime | None = None,
) -> TrustContext:
    """Build the trust context for the current process.

    ``skip_signature_checks`` forces degraded mode even with a key.
    """
    keyed = signer.has_key() and not settings.skip_signature_checks
    return TrustContext(has_signing_key=keyed, job_started_at=job_started_at)


def discover_manifests(globs: Iterable[str], base_dir: Path | None = None) -> list[Path]:
    """Expand manifest globs relative to *base_dir*; sorted, de-duplicated."""
    base = Path(base_dir) if base_dir is not None else Path.cwd()
    found: set[Path] = set()
    for pattern in globs:
        for match in glob.glob(str(base / pattern), recursive=True):
            if os.path.isfile(match):
                found.add(Path(match))
    return sorted(found)


class EvidenceEvaluator:
    """Evaluates evidence manifests against the live system.

    Parameters
    ----------
    executor:
        Command execution backend.  Defaults to ``SubprocessExecutor``
        running in *base_dir*.
    base_dir:
        Directory manifest paths (files, globs, telemetry) are relative to.
    timeout_seconds:
        Timeout for commands that do not declare their own.
    """

    def __init__(
        self,
        executor: CommandExecutor | None = None,
        *,
        base_dir: Path | None = None,
        timeout_seconds: float = 300.0,
    ) -> None:
        self._base = Path(base_dir) if base_dir is not None else Path.cwd()
        self._executor = executor or SubprocessExecutor(cwd=str(self._base))
        self._timeout = timeout_seconds

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_manifest(self, path: Path | str) -> EvidenceManifest:
        """Parse and validate a manifest file.

        Raises
        ------
        StructuralError
            The file is unreadable, not JSON, or not a valid manifest.
        """
        source = Path(path)
        try:
            data = json.loads(source.read_text(encoding="utf-8"))
            return EvidenceManifest.model_validate(data)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            logger.error("Invalid evidence manifest %s: %s", source, exc)
            raise StructuralError(
                f"Invalid evidence manifest {source}: {exc}", source=str(source)
            ) from exc

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, manifest: EvidenceManifest, trust: TrustContext) -> VerificationResult:
        return self.evaluate_detailed(manifest, trust).result

    def evaluate_file(self, path: Path | str, trust: TrustContext) -> ManifestEvaluation:
        """Load and evaluate one manifest file."""
        return self.evaluate_detailed(self.load_manifest(path), trust, manifest_path=str(path))

    def evaluate_detailed(
        self,
        manifest: EvidenceManifest,
        trust: TrustContext,
        *,
        manifest_path: str = "",
    ) -> ManifestEvaluation:
        """Evaluate every check and keep the receipts behind the verdict."""
        result = VerificationResult()
        commands: list[CommandReceipt] = []
        outputs: list[FileReceipt] = []

        for command in manifest.commands:
            command_result, receipt, files = self._check_command(command, trust)
            result = result.merge(command_result)
            commands.append(receipt)
            outputs.extend(files)

        for expected in manifest.required_files:
            file_result, receipt = self._check_file(expected, trust, check="required-files")
            result = result.merge(file_result)
            outputs.append(receipt)

        for telemetry in manifest.telemetry:
            result = result.merge(self._check_telemetry(telemetry))

        logger.info(
            "Evaluated %s: %d error(s), %d warning(s)",
            manifest_path or manifest.blueprint_id or "manifest",
            len(result.errors),
            len(result.warnings),
        )
        return ManifestEvaluation(
            manifest_path=manifest_path,
            result=result,
            commands=commands,
            outputs=outputs,
        )

    def _check_command(
        self,
        check: CommandCheck,
        trust: TrustContext,
    ) -> tuple[VerificationResult, CommandReceipt, list[FileReceipt]]:
        timeout = check.timeout_seconds if check.timeout_seconds is not None else self._timeout
        receipt = self._executor.run(check.command, timeout=timeout)
        result = VerificationResult()

        if receipt.timed_out:
            result = result.merge(VerificationResult.warning(
                f"command timed out after {timeout}s", check=check.name
            ))

        if check.expected_exit_code is not None and receipt.exit_code != check.expected_exit_code:
            result = result.merge(VerificationResult.error(
                f"exit code {receipt.exit_code}, expected {check.expected_exit_code}",
                check=check.name,
            ))

        output = receipt.combined_output
        for substring in check.expected_output_substrings:
            if substring not in output:
                result = result.merge(VerificationResult.error(
                    f"output missing expected text {substring!r}", check=check.name
                ))

        files: list[FileReceipt] = []
        for expected in check.expected_files:
            file_result, file_receipt = self._check_file(expected, trust, check=check.name)
            result = result.merge(file_result)
            files.append(file_receipt)

        return result, receipt, files

    def _check_file(
        self,
        expected: ExpectedFile,
        trust: TrustContext,
        *,
        check: str,
    ) -> tuple[VerificationResult, FileReceipt]:
        kind = expected.artifact_kind
        matches = self._resolve(expected.path)
        receipt = FileReceipt(
            path=expected.path,
            kind=kind.value,
            exists=bool(matches),
            matches=[self._display(m) for m in matches],
        )

        if not matches:
            if not expected.required:
                return VerificationResult(), receipt
            if kind is ArtifactKind.SIGNATURE and not trust.has_signing_key:
                return VerificationResult.warning(
                    DEGRADED_SIGNATURE_MESSAGE, check=check, path=expected.path
                ), receipt
            return VerificationResult.error(
                "required file missing", check=check, path=expected.path
            ), receipt

        result = VerificationResult()
        for match in matches:
            shown = self._display(match)
            try:
                stat = match.stat()
            except OSError as exc:
                result = result.merge(VerificationResult.error(
                    f"cannot stat file: {exc}", check=check, path=shown
                ))
                continue
            if expected.non_empty and stat.st_size == 0:
                result = result.merge(VerificationResult.error(
                    "file is empty", check=check, path=shown
                ))
            if expected.fresh and trust.job_started_at is not None:
                if stat.st_mtime < trust.job_started_at.timestamp():
                    result = result.merge(VerificationResult.warning(
                        "file was not modified during this job", check=check, path=shown
                    ))
        return result, receipt

    def _check_telemetry(self, check: TelemetryCheck) -> VerificationResult:
        name = f"telemetry:{check.event_name}"
        source = self._base / check.source_file
        try:
            lines = source.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return VerificationResult.warning(
                "telemetry file not found", check=name, path=check.source_file
            )
        except (OSError, UnicodeDecodeError) as exc:
            return VerificationResult.warning(
                f"telemetry file unreadable: {exc}", check=name, path=check.source_file
            )

        result = VerificationResult()
        found = False
        for number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                result = result.merge(VerificationResult.warning(
                    f"skipped unparsable line {number}", check=name, path=check.source_file
                ))
                continue
            if isinstance(record, dict) and record.get("event") == check.event_name:
                found = True
                break

        if not found:
            result = result.merge(VerificationResult.error(
                f"event {check.event_name!r} not recorded", check=name, path=check.source_file
            ))
        return result

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def _resolve(self, pattern: str) -> list[Path]:
        """Files matching *pattern*; a literal path matches itself if it exists."""
        if _GLOB_CHARS.isdisjoint(pattern):
            candidate = self._base / pattern
            return [candidate] if candidate.is_file() else []
        return sorted(
            Path(match)
            for match in glob.glob(str(self._base / pattern), recursive=True)
            if os.path.isfile(match)
        )

    def _display(self, path: Path) -> str:
        try:
            return path.relative_to(self._base).as_posix()
        except ValueError:
            return path.as_posix()


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


def write_summary(
    evaluations: Iterable[ManifestEvaluation],
    path: Path,
    trust: TrustContext,
    *,
    started_at: datetime | None = None,
    relax_signature_checks: bool = False,
) -> Path:
    """Write the evidence summary JSON consumed by CI dashboards."""
    evaluations = list(evaluations)
    summary = {
        "startedAtUtc": (started_at or datetime.now(timezone.utc)).isoformat(),
        "env": {
            "hasSigningKey": trust.has_signing_key,
            "relaxSignatureChecks": relax_signature_checks,
        },
        "manifests": [
            {
                "path": evaluation.manifest_path,
                "passed": evaluation.result.passed,
                "commands": [r.model_dump(mode="json") for r in evaluation.commands],
                "outputs": [r.model_dump(mode="json") for r in evaluation.outputs],
            }
            for evaluation in evaluations
        ],
        "findings": [
            {"manifest": evaluation.manifest_path, **finding.model_dump(mode="json")}
            for evaluation in evaluations
            for finding in evaluation.result.findings
        ],
    }
    atomic_write_bytes(Path(path), json.dumps(summary, indent=2).encode("utf-8"))
    return Path(path)
