"""Attestation record and verification outcome models.

An ``AttestationRecord`` is immutable once written.  Re-attesting a file
replaces the whole record; nothing is ever patched in place.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

ALG_SIGNED = "sha256+hmac-sha256"
ALG_DIGEST_ONLY = "sha256"


class AttestationRecord(BaseModel):
    """Signed (or unsigned) claim about an artifact's normalized digest.

    Serialized as ``{file, hash, signature, timestamp, commit, algorithm}``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    artifact_path: str = Field(alias="file")
    digest: str = Field(alias="hash", pattern=r"^[0-9a-f]{64}$")
    signature: str
    timestamp_utc: datetime = Field(
        alias="timestamp",
        default_factory=lambda: datetime.now(timezone.utc),
    )
    revision_id: str = Field(alias="commit")
    algorithm: str = ALG_SIGNED

    @property
    def is_signed(self) -> bool:
        return self.algorithm == ALG_SIGNED


class CheckKind(str, Enum):
    """Which verification step failed for an artifact."""

    MISSING = "missing"
    DIGEST = "digest"
    SIGNATURE = "signature"
    STRUCTURAL = "structural"
    UNREADABLE = "unreadable"


class AttestationCheck(BaseModel):
    """Outcome of verifying one artifact against its stored record."""

    model_config = ConfigDict(frozen=True)

    path: str
    ok: bool
    failed_check: CheckKind | None = None
    message: str = ""
    warnings: list[str] = []

    def __bool__(self) -> bool:
        return self.ok


class DirectoryAttestation(BaseModel):
    """Partial result of attesting a directory tree."""

    model_config = ConfigDict(frozen=True)

    root: str
    signatures: dict[str, str] = {}
    errors: dict[str, str] = {}

    @property
    def attested_count(self) -> int:
        return len(self.signatures)


class DirectoryVerification(BaseModel):
    """Per-file outcomes of a verification sweep, plus the aggregate verdict."""

    model_config = ConfigDict(frozen=True)

    root: str
    checks: list[AttestationCheck] = []

    @property
    def ok(self) -> bool:
        return all(check.ok for check in self.checks)

    @property
    def failures(self) -> list[AttestationCheck]:
        return [check for check in self.checks if not check.ok]

    def __bool__(self) -> bool:
        return self.ok
