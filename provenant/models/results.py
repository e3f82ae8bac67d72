"""Verification result models: the evaluator's only output type.

``VerificationResult`` is an accumulator value: each check returns its own
result and the evaluator merges them.  There is no shared mutable
collector.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class FindingLevel(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class Finding(BaseModel):
    """A single error or warning produced by a check."""

    model_config = ConfigDict(frozen=True)

    level: FindingLevel
    message: str
    check: str = ""  # command name, "required-files", "telemetry", ...
    path: str = ""


class VerificationResult(BaseModel):
    """Errors block a claim; warnings never do."""

    model_config = ConfigDict(frozen=True)

    errors: list[Finding] = []
    warnings: list[Finding] = []

    @property
    def passed(self) -> bool:
        return not self.errors

    @classmethod
    def error(cls, message: str, *, check: str = "", path: str = "") -> VerificationResult:
        return cls(errors=[Finding(level=FindingLevel.ERROR, message=message, check=check, path=path)])

    @classmethod
    def warning(cls, message: str, *, check: str = "", path: str = "") -> VerificationResult:
        return cls(warnings=[Finding(level=FindingLevel.WARNING, message=message, check=check, path=path)])

    def merge(self, *others: VerificationResult) -> VerificationResult:
        """Return a new result holding this result's findings followed by *others*'."""
        errors = list(self.errors)
        warnings = list(self.warnings)
        for other in others:
            errors.extend(other.errors)
            warnings.extend(other.warnings)
        return VerificationResult(errors=errors, warnings=warnings)

    @property
    def findings(self) -> list[Finding]:
        return [*self.errors, *self.warnings]


class CommandReceipt(BaseModel):
    """What a command did when it was run: exit status and captured output."""

    model_config = ConfigDict(frozen=True)

    command: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: float = 0.0
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and not self.timed_out

    @property
    def combined_output(self) -> str:
        return self.stdout + self.stderr


class FileReceipt(BaseModel):
    """Existence check of one expected file path or glob."""

    model_config = ConfigDict(frozen=True)

    path: str
    kind: str
    exists: bool
    matches: list[str] = []


class TrustContext(BaseModel):
    """What the evaluator knows about the signing configuration."""

    model_config = ConfigDict(frozen=True)

    has_signing_key: bool
    job_started_at: datetime | None = None
