"""Evidence manifest models: externally authored, validated at the boundary.

A manifest declares the checks that, if all pass, substantiate a claim
about system behaviour.  Manifests are read-only inputs; unknown keys are
rejected so a typo never silently disables a check.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

SIGNATURE_SUFFIX = ".sig"


class ArtifactKind(str, Enum):
    """What an expected file represents.

    ``SIGNATURE`` files are subject to the degraded-mode downgrade when no
    signing key is configured.
    """

    SOURCE = "source"
    OUTPUT = "output"
    SIGNATURE = "signature"
    OTHER = "other"


def classify_artifact(path: str, declared: ArtifactKind | None = None) -> ArtifactKind:
    """Return the declared kind, or infer it from the path."""
    if declared is not None:
        return declared
    if path.endswith(SIGNATURE_SUFFIX):
        return ArtifactKind.SIGNATURE
    return ArtifactKind.OTHER


class _ManifestModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class ExpectedFile(_ManifestModel):
    """A file (or glob) that must exist after a command, or at all."""

    path: str
    required: bool = True
    non_empty: bool = False
    fresh: bool = False  # modified after the job start time (advisory)
    kind: ArtifactKind | None = None

    @property
    def artifact_kind(self) -> ArtifactKind:
        return classify_artifact(self.path, self.kind)


class CommandCheck(_ManifestModel):
    name: str
    command: str
    expected_exit_code: int | None = None
    expected_output_substrings: list[str] = []
    expected_files: list[ExpectedFile] = []
    timeout_seconds: float | None = None


class TelemetryCheck(_ManifestModel):
    event_name: str
    source_file: str


class EvidenceManifest(_ManifestModel):
    blueprint_id: str = ""
    commands: list[CommandCheck] = []
    telemetry: list[TelemetryCheck] = []
    required_files: list[ExpectedFile] = []
