"""Engine: wires the attestation, receipt and evidence services together.

Every service gets its collaborators injected here, once, from the
configuration.  The CLI and the report aggregator go through an
``Engine``; tests construct services directly.
"""

from __future__ import annotations

from pathlib import Path

from provenant.config import ProdConfig
from provenant.core.attestation_store import AttestationStore
from provenant.core.evidence_evaluator import EvidenceEvaluator, trust_context_from
from provenant.core.executor import CommandExecutor, SubprocessExecutor
from provenant.core.production_guard import enforce_production_constraints
from provenant.core.receipt_ledger import GenerationReceiptLedger
from provenant.core.report import ProvenanceReportAggregator
from provenant.core.revision import RevisionSource
from provenant.core.signing import SecretKeyProvider, SignatureService
from provenant.models.results import TrustContext


class Engine:
    """The configured set of provenance services for one process.

    Parameters
    ----------
    settings:
        Configuration; a fresh ``ProdConfig`` from the environment when omitted.
    executor:
        Command execution backend shared by every service.
    output_root:
        Overrides ``settings.attestation_root``.
    """

    def __init__(
        self,
        settings: ProdConfig | None = None,
        *,
        executor: CommandExecutor | None = None,
        output_root: Path | None = None,
    ) -> None:
        self.settings = settings or ProdConfig()

        # Production guard: fails hard if production constraints are violated
        enforce_production_constraints(self.settings)

        base_dir = Path(self.settings.base_dir)
        self.executor = executor or SubprocessExecutor(
            cwd=str(base_dir), default_timeout=self.settings.command_timeout_seconds
        )
        self.signer = SignatureService(SecretKeyProvider(settings=self.settings))
        self.revision = RevisionSource(self.settings.revision, executor=self.executor)

        root = output_root if output_root is not None else self.settings.attestation_root
        self.store = AttestationStore(
            self._under_base(root),
            self.revision.revision_id(),
            self.signer,
            base_dir=base_dir,
        )
        self.ledger = GenerationReceiptLedger(self._under_base(self.settings.receipts_path))
        self.evaluator = EvidenceEvaluator(
            self.executor,
            base_dir=base_dir,
            timeout_seconds=self.settings.command_timeout_seconds,
        )

    def _under_base(self, path: Path) -> Path:
        path = Path(path)
        return path if path.is_absolute() else Path(self.settings.base_dir) / path

    @property
    def validation_dir(self) -> Path:
        return self._under_base(self.settings.validation_dir)

    @property
    def reports_dir(self) -> Path:
        return self._under_base(self.settings.reports_dir)

    def trust_context(self) -> TrustContext:
        return trust_context_from(self.signer, self.settings)

    def aggregator(self) -> ProvenanceReportAggregator:
        return ProvenanceReportAggregator(
            self.settings,
            store=self.store,
            ledger=self.ledger,
            evaluator=self.evaluator,
            executor=self.executor,
        )
