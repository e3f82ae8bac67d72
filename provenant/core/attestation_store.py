"""Revision-scoped attestation store.

Storage layout: {output_root}/{revision_id}/{relative_path}.sig
Each record is JSON ``{file, hash, signature, timestamp, commit, algorithm}``
written atomically.  Records are replaced whole on re-attestation and are
never deleted by this module.

Directory sweeps are loops of independent single-file transactions: one
file's failure never aborts the sweep, and each file writes its own key,
so sweeps may run on a thread pool without locking.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from provenant.core.fsutil import atomic_write_bytes, iter_files
from provenant.core.hasher import digest, file_digest
from provenant.core.normalizer import normalize
from provenant.core.signing import UNSIGNED, SignatureService
from provenant.errors import (
    AvailabilityError,
    IntegrityError,
    ProvenanceError,
    StructuralError,
)
from provenant.models.attestation import (
    ALG_DIGEST_ONLY,
    ALG_SIGNED,
    AttestationCheck,
    AttestationRecord,
    CheckKind,
    DirectoryAttestation,
    DirectoryVerification,
)

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".sig"
SUMMARY_NAME = "attestation-summary.json"
DEFAULT_EXTENSIONS: tuple[str, ...] = (".ts", ".js", ".tsx", ".jsx")


class AttestationStore:
    """Writes and verifies attestation records for one revision.

    Parameters
    ----------
    output_root:
        Root directory for attestation records.
    revision_id:
        Revision namespace; records of other revisions are never touched.
    signer:
        Signature service.  When it has no key, records are digest-only
        and carry the ``UNSIGNED`` sentinel.
    base_dir:
        Directory artifact paths are made relative to.  Defaults to cwd.
    """

    def __init__(
        self,
        output_root: Path,
        revision_id: str,
        signer: SignatureService,
        *,
        base_dir: Path | None = None,
    ) -> None:
        self._root = Path(output_root)
        self._revision = revision_id
        self._signer = signer
        self._base = Path(base_dir) if base_dir is not None else Path.cwd()

    @property
    def revision_id(self) -> str:
        return self._revision

    @property
    def revision_dir(self) -> Path:
        return self._root / self._revision

    @property
    def signer(self) -> SignatureService:
        return self._signer

    # ------------------------------------------------------------------
    # Addressing
    # ------------------------------------------------------------------

    def _absolute(self, path: Path | str) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self._base / p

    def relative_key(self, path: Path | str) -> str:
        """The artifact's addressing key: its path relative to ``base_dir``.

        Paths outside ``base_dir`` are keyed by their absolute path without
        the anchor, so they can never escape the revision directory.
        """
        absolute = self._absolute(path).resolve()
        try:
            rel = absolute.relative_to(self._base.resolve())
        except ValueError:
            rel = Path(*absolute.parts[1:])
        return rel.as_posix()

    def record_path(self, path: Path | str) -> Path:
        """Layout: {output_root}/{revision_id}/{relative_path}.sig"""
        return self.revision_dir / f"{self.relative_key(path)}{RECORD_SUFFIX}"

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def attest(self, path: Path | str) -> str:
        """Attest one artifact and return its signature (or ``UNSIGNED``)."""
        raw = self._absolute(path).read_text(encoding="utf-8")
        content_hash = digest(normalize(raw))

        if self._signer.has_key():
            signature = self._signer.sign(content_hash)
            algorithm = ALG_SIGNED
        else:
            signature = UNSIGNED
            algorithm = ALG_DIGEST_ONLY

        record = AttestationRecord(
            artifact_path=self.relative_key(path),
            digest=content_hash,
            signature=signature,
            timestamp_utc=datetime.now(timezone.utc),
            revision_id=self._revision,
            algorithm=algorithm,
        )
        target = self.record_path(path)
        payload = record.model_dump(mode="json", by_alias=True)
        atomic_write_bytes(target, json.dumps(payload, indent=2).encode("utf-8"))
        logger.debug("Attested %s -> %s", record.artifact_path, target)
        return signature

    def attest_directory(
        self,
        root: Path | str,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        *,
        workers: int = 1,
    ) -> DirectoryAttestation:
        """Attest every matching file under *root*, continuing past failures."""
        files = list(iter_files(self._absolute(root), tuple(extensions)))

        def _one(file_path: Path) -> tuple[str, str | None, str | None]:
            key = self.relative_key(file_path)
            try:
                return key, self.attest(file_path), None
            except (OSError, UnicodeDecodeError, ProvenanceError) as exc:
                logger.warning("Failed to attest %s: %s", key, exc)
                return key, None, str(exc)

        signatures: dict[str, str] = {}
        errors: dict[str, str] = {}
        for key, signature, error in self._map(_one, files, workers):
            if error is not None:
                errors[key] = error
            else:
                signatures[key] = signature or UNSIGNED

        return DirectoryAttestation(root=str(root), signatures=signatures, errors=errors)

    def write_summary(self, attestation: DirectoryAttestation) -> Path:
        """Write ``attestation-summary.json`` for the active revision."""
        summary = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "commit": self._revision,
            "filesAttested": attestation.attested_count,
            "signatures": attestation.signatures,
            "errors": attestation.errors,
        }
        target = self.revision_dir / SUMMARY_NAME
        atomic_write_bytes(target, json.dumps(summary, indent=2).encode("utf-8"))
        return target

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def load_record(self, path: Path | str) -> AttestationRecord | None:
        """Load the record for *path*; ``None`` when none exists.

        Raises ``StructuralError`` if the stored record is malformed.
        """
        target = self.record_path(path)
        if not target.exists():
            return None
        try:
            data = json.loads(target.read_text(encoding="utf-8"))
            return AttestationRecord.model_validate(data)
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as exc:
            raise StructuralError(
                f"Malformed attestation record {target}: {exc}", source=str(target)
            ) from exc

    def assert_verified(self, path: Path | str) -> AttestationRecord:
        """Verify *path* against its record, raising on any failure.

        Raises
        ------
        AvailabilityError
            No attestation exists for this revision.
        StructuralError
            The stored record is malformed.
        IntegrityError
            ``check="digest"`` if the current content differs from the
            attested digest, ``check="signature"`` if the signature does not
            verify under the configured key.
        """
        key = self.relative_key(path)
        record = self.load_record(path)
        if record is None:
            raise AvailabilityError(f"No attestation found for {key}", path=key)

        current = file_digest(self._absolute(path))
        if current != record.digest:
            raise IntegrityError(f"Digest mismatch for {key}", check="digest", path=key)

        if self._signer.has_key():
            if record.signature == UNSIGNED or not self._signer.verify_signature(
                current, record.signature
            ):
                raise IntegrityError(
                    f"Signature mismatch for {key}", check="signature", path=key
                )
        return record

    def check(self, path: Path | str) -> AttestationCheck:
        """Verify one artifact and report which check, if any, failed."""
        key = self.relative_key(path)
        try:
            record = self.assert_verified(path)
        except AvailabilityError as exc:
            return self._failed(key, CheckKind.MISSING, exc)
        except StructuralError as exc:
            return self._failed(key, CheckKind.STRUCTURAL, exc)
        except IntegrityError as exc:
            return self._failed(key, CheckKind(exc.check), exc)
        except (OSError, UnicodeDecodeError) as exc:
            return self._failed(key, CheckKind.UNREADABLE, exc)

        warnings: list[str] = []
        if not self._signer.has_key() and record.is_signed:
            warnings.append("signature not checked: no signing key")
        return AttestationCheck(path=key, ok=True, warnings=warnings)

    def verify(self, path: Path | str) -> bool:
        return self.check(path).ok

    def sweep(
        self,
        root: Path | str,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        *,
        workers: int = 1,
    ) -> DirectoryVerification:
        """Verify every matching file under *root*; never short-circuits."""
        files = list(iter_files(self._absolute(root), tuple(extensions)))
        checks = list(self._map(self.check, files, workers))
        return DirectoryVerification(root=str(root), checks=checks)

    def verify_directory(
        self,
        root: Path | str,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        *,
        workers: int = 1,
    ) -> bool:
        return self.sweep(root, extensions, workers=workers).ok

    def list_records(self) -> list[Path]:
        """Every ``.sig`` record stored under the active revision."""
        return list(iter_files(self.revision_dir, (RECORD_SUFFIX,)))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _failed(key: str, kind: CheckKind, exc: Exception) -> AttestationCheck:
        logger.warning("Verification failed for %s (%s): %s", key, kind.value, exc)
        return AttestationCheck(path=key, ok=False, failed_check=kind, message=str(exc))

    @staticmethod
    def _map(func, items: list[Path], workers: int) -> list:
        """Apply *func* to *items* in order, on a thread pool when workers > 1."""
        if workers <= 1 or len(items) <= 1:
            return [func(item) for item in items]
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(func, items))
