"""Error taxonomy for attestation, receipts, and evidence evaluation.

Only ``StructuralError`` and unrecoverable I/O errors are meant to escape
an enclosing operation.  ``IntegrityError`` and ``AvailabilityError`` are
raised at the item level and turned into per-artifact outcomes by the
directory sweeps and the evaluator.  Advisory conditions are never
exceptions; they are recorded as warning findings.
"""

from __future__ import annotations


class ProvenanceError(RuntimeError):
    """Base class for all provenant errors."""


class StructuralError(ProvenanceError):
    """A manifest, attestation record, or receipt failed to parse its shape."""

    def __init__(self, message: str, *, source: str = "") -> None:
        super().__init__(message)
        self.source = source


class IntegrityError(ProvenanceError):
    """A digest or signature did not match during verification.

    ``check`` names the comparison that failed: ``"digest"`` or
    ``"signature"``.
    """

    def __init__(self, message: str, *, check: str, path: str = "") -> None:
        super().__init__(message)
        self.check = check
        self.path = path


class AvailabilityError(ProvenanceError):
    """An expected file, attestation record, or receipt is missing."""

    def __init__(self, message: str, *, path: str = "") -> None:
        super().__init__(message)
        self.path = path


class KeyRequiredError(ProvenanceError):
    """A keyed operation was requested while no signing key is configured.

    Callers are expected to branch on ``SignatureService.has_key()`` before
    signing; reaching this error is a programming mistake, not a runtime
    condition to recover from.
    """
