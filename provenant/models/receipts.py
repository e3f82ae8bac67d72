"""Generation receipt models: deterministic-generation transactions.

A receipt ties generation inputs (blueprint, seed, parameters) to an output
digest.  It is created with an empty output digest, filled once the output
exists, and flagged ``reproduced`` when a later run with identical inputs
regenerates byte-identical output.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ExecutionMode(str, Enum):
    """Generation mode recorded alongside the seed and temperature."""

    LEAN = "lean"
    STRICT = "strict"
    GENERATIVE = "generative"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )


class BlueprintIdentity(_CamelModel):
    id: str = "unknown"
    version: str = "unknown"
    path: str


class ExecutionParams(_CamelModel):
    seed: str | int
    temperature: float = 0.0
    mode: ExecutionMode = ExecutionMode.STRICT


class ValidationOutcomes(_CamelModel):
    build_passed: bool = False
    tests_passed: bool = False
    lint_passed: bool = False

    @property
    def passed_count(self) -> int:
        return sum((self.build_passed, self.tests_passed, self.lint_passed))

    @property
    def all_passed(self) -> bool:
        return self.passed_count == 3


class GenerationReceipt(_CamelModel):
    """One generation transaction, persisted as ``{receipt_id}.json``."""

    receipt_id: str
    input_hash: str = Field(pattern=r"^[0-9a-f]{64}$")
    model_version: str = "unknown"
    output_digest: str = ""
    output_path: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    reproduced: bool = False
    blueprint: BlueprintIdentity
    execution: ExecutionParams
    validation: ValidationOutcomes = ValidationOutcomes()

    @property
    def input_key(self) -> str:
        """Fixed-length prefix of the input digest used to name receipt files."""
        return self.input_hash[:16]


class ReproducibilityCheck(BaseModel):
    """Verdict of comparing the two most recent receipts for a blueprint."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    reason: str
    blueprint_path: str
    expected_digest: str = ""
    actual_digest: str = ""

    def __bool__(self) -> bool:
        return self.ok
