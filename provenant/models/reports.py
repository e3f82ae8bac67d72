"""Report models: evidence summaries and the consolidated provenance report."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from provenant.models.results import CommandReceipt, FileReceipt, VerificationResult


class ManifestEvaluation(BaseModel):
    """A manifest's verdict together with the receipts that justify it."""

    model_config = ConfigDict(frozen=True)

    manifest_path: str = ""
    result: VerificationResult
    commands: list[CommandReceipt] = []
    outputs: list[FileReceipt] = []


class FileSnapshot(BaseModel):
    """Digest, size and modification time of a curated file."""

    model_config = ConfigDict(frozen=True)

    path: str
    exists: bool
    size: int | None = None
    sha256: str | None = None
    modified_utc: datetime | None = None
    declared_digest: str | None = None  # from an embedded @hash: annotation


class ReportMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    generated_at_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    commit: str
    signing_key_fingerprint: str = ""
    host: dict[str, str] = {}


class ProvenanceReport(BaseModel):
    """One externally auditable document describing the system's state.

    ``errors`` holds internal failures of the aggregator itself; the report
    is still produced when parts of the system under audit are broken.
    """

    model_config = ConfigDict(frozen=True)

    meta: ReportMeta
    commands: dict[str, CommandReceipt] = {}
    evidence: list[ManifestEvaluation] = []
    reproducibility: dict[str, dict[str, Any]] = {}
    files: dict[str, FileSnapshot] = {}
    attestations: dict[str, FileSnapshot] = {}
    errors: list[str] = []
