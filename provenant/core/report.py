"""Provenance Report Aggregator.

Runs a fixed battery of checks and collects everything into one
``ProvenanceReport``:

1. configured governance commands;
2. an attestation sweep over the configured targets (skipped when unkeyed);
3. every discovered evidence manifest;
4. reproducibility status for every blueprint with receipts;
5. snapshots of curated files and of the active revision's records.

The aggregator never fails.  An exception inside a step is logged and
recorded in ``errors`` and the remaining steps still run.
"""

from __future__ import annotations

import logging
import platform
import socket
import sys
import time
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

from provenant.config import ProdConfig
from provenant.core.attestation_store import AttestationStore
from provenant.core.evidence_evaluator import (
    EvidenceEvaluator,
    discover_manifests,
    trust_context_from,
)
from provenant.core.executor import CommandExecutor
from provenant.core.fsutil import atomic_write_bytes
from provenant.core.hasher import sha256_hex
from provenant.core.normalizer import embedded_digest
from provenant.core.receipt_ledger import GenerationReceiptLedger
from provenant.errors import StructuralError
from provenant.models.reports import (
    FileSnapshot,
    ManifestEvaluation,
    ProvenanceReport,
    ReportMeta,
)
from provenant.models.results import CommandReceipt

logger = logging.getLogger(__name__)

SKIPPED_EXIT_CODE = -1
NO_KEY_MESSAGE = "signing key not set"


def snapshot_file(path: Path, label: str | None = None) -> FileSnapshot:
    """Size, SHA-256 of the raw bytes and mtime of *path*, or ``exists=False``."""
    label = label or Path(path).as_posix()
    try:
        data = Path(path).read_bytes()
        stat = Path(path).stat()
    except (FileNotFoundError, IsADirectoryError):
        return FileSnapshot(path=label, exists=False)
    return FileSnapshot(
        path=label,
        exists=True,
        size=stat.st_size,
        sha256=sha256_hex(data),
        modified_utc=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        declared_digest=embedded_digest(data.decode("utf-8", errors="replace")),
    )


def host_fingerprint(cwd: Path) -> dict[str, str]:
    """Non-identifying description of the host the report was produced on."""
    return {
        "platform": platform.platform(),
        "python": sys.version.split()[0],
        "hostnameHash": sha256_hex(socket.gethostname().encode("utf-8"))[:16],
        "cwd": str(cwd),
    }


class ProvenanceReportAggregator:
    """Builds the consolidated provenance report.

    Parameters
    ----------
    settings:
        Source of report commands, attest targets, evidence globs and
        curated files.
    store, ledger, evaluator, executor:
        The services each step of the battery delegates to.
    """

    def __init__(
        self,
        settings: ProdConfig,
        *,
        store: AttestationStore,
        ledger: GenerationReceiptLedger,
        evaluator: EvidenceEvaluator,
        executor: CommandExecutor,
    ) -> None:
        self._settings = settings
        self._store = store
        self._ledger = ledger
        self._evaluator = evaluator
        self._executor = executor
        self._base = Path(settings.base_dir)

    def generate_report(self) -> ProvenanceReport:
        errors: list[str] = []
        commands: dict[str, CommandReceipt] = {}
        evidence: list[ManifestEvaluation] = []
        reproducibility: dict[str, dict] = {}
        files: dict[str, FileSnapshot] = {}
        attestations: dict[str, FileSnapshot] = {}

        def step(name: str, func: Callable[[], None]) -> None:
            try:
                func()
            except Exception as exc:
                logger.exception("Report step %r failed", name)
                errors.append(f"{name}: {exc}")

        step("commands", lambda: commands.update(self._run_commands()))
        step("attestation", lambda: commands.update(self._run_attestation()))
        step("evidence", lambda: evidence.extend(self._run_evidence(errors)))
        step("reproducibility", lambda: reproducibility.update(self._run_reproducibility()))
        step("files", lambda: files.update(self._snapshot_files()))
        step("attestations", lambda: attestations.update(self._snapshot_records()))

        meta = ReportMeta(
            commit=self._store.revision_id,
            signing_key_fingerprint=self._store.signer.fingerprint(),
            host=host_fingerprint(self._base.resolve()),
        )
        return ProvenanceReport(
            meta=meta,
            commands=commands,
            evidence=evidence,
            reproducibility=reproducibility,
            files=files,
            attestations=attestations,
            errors=errors,
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _run_commands(self) -> dict[str, CommandReceipt]:
        timeout = self._settings.command_timeout_seconds
        return {
            name: self._executor.run(command, timeout=timeout)
            for name, command in self._settings.report_commands.items()
        }

    def _run_attestation(self) -> dict[str, CommandReceipt]:
        receipts: dict[str, CommandReceipt] = {}
        extensions = tuple(self._settings.attest_extensions)
        workers = self._settings.sweep_workers

        for target in self._settings.attest_targets:
            attest_name, verify_name = f"attest:{target}", f"verify:{target}"
            if not self._store.signer.has_key():
                for name in (attest_name, verify_name):
                    receipts[name] = CommandReceipt(
                        command=name, exit_code=SKIPPED_EXIT_CODE, stderr=NO_KEY_MESSAGE
                    )
                continue

            root = Path(target)  # resolved against the store's base_dir
            started = time.monotonic()
            attested = self._store.attest_directory(root, extensions, workers=workers)
            receipts[attest_name] = CommandReceipt(
                command=attest_name,
                exit_code=1 if attested.errors else 0,
                stdout=f"attested {attested.attested_count} file(s)",
                stderr="\n".join(f"{path}: {err}" for path, err in attested.errors.items()),
                duration_ms=(time.monotonic() - started) * 1000.0,
            )

            started = time.monotonic()
            swept = self._store.sweep(root, extensions, workers=workers)
            receipts[verify_name] = CommandReceipt(
                command=verify_name,
                exit_code=0 if swept.ok else 1,
                stdout=f"verified {len(swept.checks)} file(s)",
                stderr="\n".join(
                    f"{c.path}: {c.failed_check.value if c.failed_check else ''} {c.message}"
                    for c in swept.failures
                ),
                duration_ms=(time.monotonic() - started) * 1000.0,
            )
        return receipts

    def _run_evidence(self, errors: list[str]) -> list[ManifestEvaluation]:
        trust = trust_context_from(self._store.signer, self._settings)
        evaluations: list[ManifestEvaluation] = []
        for manifest in discover_manifests(self._settings.evidence_globs, self._base):
            try:
                evaluations.append(self._evaluator.evaluate_file(manifest, trust))
            except StructuralError as exc:
                errors.append(f"evidence: {exc}")
        return evaluations

    def _run_reproducibility(self) -> dict[str, dict]:
        status: dict[str, dict] = {}
        for blueprint in self._ledger.blueprint_paths():
            check = self._ledger.check_reproducibility(blueprint)
            status[blueprint] = {
                **check.model_dump(mode="json"),
                "receipts": len(self._ledger.history(blueprint)),
            }
        return status

    def _snapshot_files(self) -> dict[str, FileSnapshot]:
        return {
            name: snapshot_file(self._base / name, name)
            for name in self._settings.report_files
        }

    def _snapshot_records(self) -> dict[str, FileSnapshot]:
        revision_dir = self._store.revision_dir
        snapshots: dict[str, FileSnapshot] = {}
        for record in self._store.list_records():
            label = record.relative_to(revision_dir).as_posix()
            snapshots[label] = snapshot_file(record, label)
        return snapshots


def write_report(report: ProvenanceReport, path: Path) -> Path:
    """Serialize *report* as indented JSON at *path*."""
    atomic_write_bytes(Path(path), report.model_dump_json(indent=2).encode("utf-8"))
    logger.info("Wrote provenance report to %s", path)
    return Path(path)
