"""Shared test fixtures for Provenant."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from provenant.core.attestation_store import AttestationStore
from provenant.core.evidence_evaluator import EvidenceEvaluator
from provenant.core.receipt_ledger import GenerationReceiptLedger
from provenant.core.signing import SignatureService
from provenant.models.results import CommandReceipt

TEST_KEY = "test-signing-key-001"
TEST_REVISION = "rev-test-001"

_ENV_VARS = (
    "PROVENANT_SIGNING_KEY",
    "AEGIS_HMAC_KEY",
    "PROVENANT_SKIP_SIGNATURE_CHECKS",
    "SKIP_SIGNATURE_CHECKS",
    "PROVENANT_ENVIRONMENT",
    "PROVENANT_DEBUG",
    "PROVENANT_REVISION",
    "PROVENANT_BASE_DIR",
    "GITHUB_SHA",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's or CI's signing configuration out of tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class FakeExecutor:
    """CommandExecutor returning scripted receipts and recording calls.

    ``responses`` maps a command string to a ``CommandReceipt`` or to a
    callable producing one (handy for commands that must write files).
    Unknown commands succeed with empty output.
    """

    def __init__(
        self,
        responses: dict[str, CommandReceipt | Callable[[], CommandReceipt]] | None = None,
    ) -> None:
        self.responses = dict(responses or {})
        self.calls: list[tuple[str, float | None]] = []

    def run(self, command: str, timeout: float | None = None) -> CommandReceipt:
        self.calls.append((command, timeout))
        response = self.responses.get(command)
        if response is None:
            return CommandReceipt(command=command, exit_code=0)
        return response() if callable(response) else response

    @property
    def commands(self) -> list[str]:
        return [command for command, _ in self.calls]


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def signer() -> SignatureService:
    """A keyed signature service."""
    return SignatureService.from_key(TEST_KEY)


@pytest.fixture
def unkeyed_signer() -> SignatureService:
    """A signature service with no key (degraded mode)."""
    return SignatureService.from_key(None)


@pytest.fixture
def store(tmp_dir: Path, signer: SignatureService) -> AttestationStore:
    """Provide a keyed AttestationStore rooted in a temp directory."""
    return AttestationStore(
        tmp_dir / ".provenant" / "attestations",
        TEST_REVISION,
        signer,
        base_dir=tmp_dir,
    )


@pytest.fixture
def unkeyed_store(tmp_dir: Path, unkeyed_signer: SignatureService) -> AttestationStore:
    """Provide an unkeyed AttestationStore over the same layout as ``store``."""
    return AttestationStore(
        tmp_dir / ".provenant" / "attestations",
        TEST_REVISION,
        unkeyed_signer,
        base_dir=tmp_dir,
    )


@pytest.fixture
def ledger(tmp_dir: Path) -> GenerationReceiptLedger:
    """Provide a fresh GenerationReceiptLedger in a temp directory."""
    return GenerationReceiptLedger(tmp_dir / ".provenant" / "generation-receipts")


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def evaluator(tmp_dir: Path, fake_executor: FakeExecutor) -> EvidenceEvaluator:
    """Provide an EvidenceEvaluator over the temp directory with a fake executor."""
    return EvidenceEvaluator(fake_executor, base_dir=tmp_dir, timeout_seconds=5.0)


@pytest.fixture
def make_tree(tmp_dir: Path) -> Callable[..., Path]:
    """Factory fixture: write ``{relative_path: content}`` under a directory."""

    def _factory(files: dict[str, str], root: str = "src") -> Path:
        base = tmp_dir / root
        for rel, content in files.items():
            target = base / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8", newline="")
        return base

    return _factory
