"""Provenant data models: all Pydantic v2, all frozen (immutable)."""

from provenant.models.attestation import (
    ALG_DIGEST_ONLY,
    ALG_SIGNED,
    AttestationCheck,
    AttestationRecord,
    CheckKind,
    DirectoryAttestation,
    DirectoryVerification,
)
from provenant.models.manifest import (
    ArtifactKind,
    CommandCheck,
    EvidenceManifest,
    ExpectedFile,
    TelemetryCheck,
    classify_artifact,
)
from provenant.models.receipts import (
    BlueprintIdentity,
    ExecutionMode,
    ExecutionParams,
    GenerationReceipt,
    ReproducibilityCheck,
    ValidationOutcomes,
)
from provenant.models.reports import (
    FileSnapshot,
    ManifestEvaluation,
    ProvenanceReport,
    ReportMeta,
)
from provenant.models.results import (
    CommandReceipt,
    FileReceipt,
    Finding,
    FindingLevel,
    TrustContext,
    VerificationResult,
)

__all__ = [
    # attestation
    "ALG_DIGEST_ONLY",
    "ALG_SIGNED",
    "AttestationRecord",
    "AttestationCheck",
    "CheckKind",
    "DirectoryAttestation",
    "DirectoryVerification",
    # manifest
    "ArtifactKind",
    "CommandCheck",
    "EvidenceManifest",
    "ExpectedFile",
    "TelemetryCheck",
    "classify_artifact",
    # receipts
    "BlueprintIdentity",
    "ExecutionMode",
    "ExecutionParams",
    "GenerationReceipt",
    "ReproducibilityCheck",
    "ValidationOutcomes",
    # results
    "CommandReceipt",
    "FileReceipt",
    "Finding",
    "FindingLevel",
    "TrustContext",
    "VerificationResult",
    # reports
    "FileSnapshot",
    "ManifestEvaluation",
    "ProvenanceReport",
    "ReportMeta",
]
