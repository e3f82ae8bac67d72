"""Generation Receipt Ledger: records of deterministic-generation runs.

Each receipt lives in its own JSON file,
``{receipts_path}/{input_key}-{NNNN}.json``, where ``input_key`` is the
first 16 hex chars of the input digest and ``NNNN`` a per-input sequence
number.  Several receipts for the same inputs therefore coexist, which is
what makes a reproducibility check possible.

Design:
- Receipts are replaced whole on every update (atomic rename); fields are
  never patched in place.
- Sequence numbers are claimed with exclusive file creation under a
  per-input-key lock, so concurrent generations never clobber each other.
- Updates re-read the receipt under the same per-input-key lock before
  replacing it, so concurrent updates never drop each other's fields.
- APIs taking a receipt key accept a full ``receipt_id`` or a bare input
  key / input digest.  A receipt id names exactly one receipt; only the
  bare keys resolve to the most recent receipt.
"""

from __future__ import annotations

import json
import logging
import re
import secrets
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from provenant.core.executor import CommandExecutor
from provenant.core.fsutil import atomic_write_bytes
from provenant.core.hasher import compute_input_hash, file_digest
from provenant.errors import AvailabilityError, StructuralError
from provenant.models.receipts import (
    BlueprintIdentity,
    ExecutionMode,
    ExecutionParams,
    GenerationReceipt,
    ReproducibilityCheck,
    ValidationOutcomes,
)

logger = logging.getLogger(__name__)

INPUT_KEY_LENGTH = 16
_RECEIPT_ID = re.compile(r"^[0-9a-f]{16}-\d{4,}$")
_UNKNOWN = "unknown"


def _blueprint_identity(content: str, path: str) -> BlueprintIdentity:
    """Read ``id`` and ``version`` from the blueprint's first YAML document."""
    try:
        document = next(yaml.safe_load_all(content), None)
    except yaml.YAMLError:
        document = None
    if not isinstance(document, dict):
        return BlueprintIdentity(path=path)
    return BlueprintIdentity(
        id=str(document.get("id") or _UNKNOWN),
        version=str(document.get("version") or _UNKNOWN),
        path=path,
    )


class GenerationReceiptLedger:
    """File-backed store of generation receipts.

    Parameters
    ----------
    receipts_path:
        Directory holding one JSON file per receipt.  Created on first write.
    """

    def __init__(self, receipts_path: Path) -> None:
        self._path = Path(receipts_path)
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def receipts_path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def begin_generation(
        self,
        blueprint_path: Path | str,
        *,
        seed: str | int | None = None,
        temperature: float = 0.0,
        mode: ExecutionMode | str = ExecutionMode.STRICT,
        model_version: str = _UNKNOWN,
        blueprint_content: str | None = None,
    ) -> GenerationReceipt:
        """Record the inputs of a generation and return the new receipt.

        The blueprint is read from *blueprint_path* unless its text is passed
        as *blueprint_content*.  A random seed is drawn when none is given.
        """
        path_key = Path(blueprint_path).as_posix()
        if blueprint_content is None:
            try:
                blueprint_content = Path(blueprint_path).read_text(encoding="utf-8")
            except FileNotFoundError as exc:
                raise AvailabilityError(
                    f"Blueprint not found: {path_key}", path=path_key
                ) from exc

        if seed is None:
            seed = secrets.token_hex(16)
        mode = ExecutionMode(mode)
        input_hash = compute_input_hash(blueprint_content, seed, temperature, mode.value)
        input_key = input_hash[:INPUT_KEY_LENGTH]

        with self._lock_for(input_key):
            receipt = GenerationReceipt(
                receipt_id=self._claim_id(input_key),
                input_hash=input_hash,
                model_version=model_version,
                blueprint=_blueprint_identity(blueprint_content, path_key),
                execution=ExecutionParams(seed=seed, temperature=temperature, mode=mode),
            )
            self._write(receipt)

        logger.info("Began generation %s for %s", receipt.receipt_id, path_key)
        return receipt

    def attach_output(self, receipt_key: str, output_path: Path | str) -> GenerationReceipt:
        """Digest the generated output and store it on the receipt."""
        output = Path(output_path)
        if not output.is_file():
            raise AvailabilityError(
                f"Output not found: {output.as_posix()}", path=output.as_posix()
            )
        digest = file_digest(output)
        return self._update(
            receipt_key,
            lambda receipt: receipt.model_copy(
                update={"output_digest": digest, "output_path": output.as_posix()}
            ),
        )

    def attach_validation(
        self,
        receipt_key: str,
        *,
        build: bool,
        tests: bool,
        lint: bool,
    ) -> GenerationReceipt:
        """Replace the validation outcomes of a receipt; nothing else changes."""
        outcomes = ValidationOutcomes(build_passed=build, tests_passed=tests, lint_passed=lint)
        return self._update(
            receipt_key, lambda receipt: receipt.model_copy(update={"validation": outcomes})
        )

    def validate_generation(
        self,
        receipt_key: str,
        executor: CommandExecutor,
        commands: dict[str, str],
        *,
        timeout: float | None = None,
    ) -> GenerationReceipt:
        """Run the build/test/lint commands and record which passed.

        A stage with no configured command counts as failed.
        """
        passed: dict[str, bool] = {}
        for stage in ("build", "test", "lint"):
            command = commands.get(stage)
            if not command:
                logger.warning("No %s command configured; recording as failed.", stage)
                passed[stage] = False
                continue
            result = executor.run(command, timeout=timeout)
            passed[stage] = result.succeeded
            logger.info("Validation %s exited %d: %s", stage, result.exit_code, command)

        return self.attach_validation(
            receipt_key, build=passed["build"], tests=passed["test"], lint=passed["lint"]
        )

    # ------------------------------------------------------------------
    # Reproducibility
    # ------------------------------------------------------------------

    def check_reproducibility(
        self,
        blueprint_path: Path | str,
        output_path: Path | str | None = None,
    ) -> ReproducibilityCheck:
        """Check the newest generation for a blueprint against the one before it.

        The current output (*output_path*, else the newest receipt's recorded
        output) is compared with the output digest stored on the *older*
        receipt.  On a match the newest receipt is marked ``reproduced``.
        """
        path_key = Path(blueprint_path).as_posix()
        history = self.history(path_key)

        def verdict(ok: bool, reason: str, expected: str = "", actual: str = "") -> ReproducibilityCheck:
            return ReproducibilityCheck(
                ok=ok,
                reason=reason,
                blueprint_path=path_key,
                expected_digest=expected,
                actual_digest=actual,
            )

        if len(history) < 2:
            return verdict(False, "need at least two receipts")

        previous, latest = history[-2], history[-1]
        if previous.input_hash != latest.input_hash:
            return verdict(False, "input mismatch")

        target = Path(output_path) if output_path is not None else (
            Path(latest.output_path) if latest.output_path else None
        )
        if target is None or not target.is_file():
            return verdict(False, "output not found", expected=previous.output_digest)

        actual = file_digest(target)
        if actual != previous.output_digest:
            return verdict(False, "output mismatch", previous.output_digest, actual)

        self._update(
            latest.receipt_id, lambda receipt: receipt.model_copy(update={"reproduced": True})
        )
        logger.info("Generation %s reproduced %s", latest.receipt_id, previous.receipt_id)
        return verdict(True, "reproduced", previous.output_digest, actual)

    # ------------------------------------------------------------------
    # Query methods (read-only)
    # ------------------------------------------------------------------

    def get(self, receipt_key: str) -> GenerationReceipt:
        """Resolve a receipt id, input key or input digest to a receipt.

        A receipt id must name an existing receipt; it never falls back to
        another receipt with the same input key.
        """
        if _RECEIPT_ID.match(receipt_key):
            receipt = self._load(self._path / f"{receipt_key}.json")
            if receipt is None:
                raise AvailabilityError(f"No receipt found for {receipt_key}", path=receipt_key)
            return receipt

        input_key = receipt_key[:INPUT_KEY_LENGTH]
        candidates = [
            receipt
            for file in sorted(self._path.glob(f"{input_key}-*.json"))
            if (receipt := self._load(file)) is not None
        ]
        if not candidates:
            raise AvailabilityError(f"No receipt found for {receipt_key}", path=receipt_key)
        return max(candidates, key=lambda r: (r.timestamp, r.receipt_id))

    def list(self, blueprint_id: str | None = None) -> list[GenerationReceipt]:
        """All receipts in file name order, optionally for one blueprint id."""
        receipts = self._load_all()
        if blueprint_id is not None:
            receipts = [r for r in receipts if r.blueprint.id == blueprint_id]
        return receipts

    def history(self, blueprint_path: Path | str) -> list[GenerationReceipt]:
        """Receipts for one blueprint path, oldest first."""
        path_key = Path(blueprint_path).as_posix()
        matching = [r for r in self._load_all() if r.blueprint.path == path_key]
        return sorted(matching, key=lambda r: (r.timestamp, r.receipt_id))

    def blueprint_paths(self) -> list[str]:
        """Every blueprint path with at least one receipt."""
        return sorted({r.blueprint.path for r in self._load_all()})

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def _lock_for(self, input_key: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(input_key, threading.Lock())

    def _claim_id(self, input_key: str) -> str:
        """Reserve the next free ``{input_key}-{NNNN}`` by exclusive creation."""
        self._path.mkdir(parents=True, exist_ok=True)
        sequence = len(list(self._path.glob(f"{input_key}-*.json"))) + 1
        while True:
            receipt_id = f"{input_key}-{sequence:04d}"
            try:
                with open(self._path / f"{receipt_id}.json", "x", encoding="utf-8"):
                    return receipt_id
            except FileExistsError:
                sequence += 1

    def _update(
        self,
        receipt_key: str,
        change: Callable[[GenerationReceipt], GenerationReceipt],
    ) -> GenerationReceipt:
        """Re-read, change and replace one receipt under its input-key lock."""
        receipt_id = self.get(receipt_key).receipt_id
        with self._lock_for(receipt_id[:INPUT_KEY_LENGTH]):
            updated = change(self.get(receipt_id))
            self._write(updated)
        return updated

    def _write(self, receipt: GenerationReceipt) -> None:
        payload: dict[str, Any] = receipt.model_dump(mode="json", by_alias=True)
        atomic_write_bytes(
            self._path / f"{receipt.receipt_id}.json",
            json.dumps(payload, indent=2).encode("utf-8"),
        )

    def _load(self, file: Path) -> GenerationReceipt | None:
        """Parse one receipt file; ``None`` for a claimed but unwritten id."""
        try:
            raw = file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        if not raw.strip():
            return None
        try:
            return GenerationReceipt.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.error("Corrupt receipt %s: %s", file, exc)
            raise StructuralError(f"Corrupt receipt {file}: {exc}", source=str(file)) from exc

    def _load_all(self) -> list[GenerationReceipt]:
        if not self._path.is_dir():
            return []
        return [
            receipt
            for file in sorted(self._path.glob("*.json"))
            if (receipt := self._load(file)) is not None
        ]
