"""Production configuration guard: enforces hard constraints in production.

The guard validates that production-critical settings are correctly configured
before any attestation work starts.  It fails hard (raises
``ProductionConfigError``) if any constraint is violated.

Outside production a missing signing key is a supported, degraded mode; in
production it is a misconfiguration.
"""

from __future__ import annotations

import logging

from provenant.config import ProdConfig

logger = logging.getLogger(__name__)


class ProductionConfigError(RuntimeError):
    """Raised when production configuration constraints are violated.

    The process cannot safely start in production mode with the current
    configuration.  It must not be caught and ignored.
    """


def enforce_production_constraints(config: ProdConfig) -> None:
    """Validate all production-critical configuration constraints.

    Constraints enforced
    --------------------
    1. Debug mode must be disabled.
    2. A signing key must be configured.
    3. Signature checks must not be relaxed.

    Raises
    ------
    ProductionConfigError
        If any production constraint is violated.
    """
    if not config.is_production:
        return

    violations: list[str] = []

    if config.debug:
        violations.append(
            "debug=True is not allowed in production. "
            "Set PROVENANT_DEBUG=false."
        )

    if not config.signing_key:
        violations.append(
            "A signing key is required in production but not configured. "
            "Set PROVENANT_SIGNING_KEY."
        )

    if config.skip_signature_checks:
        violations.append(
            "skip_signature_checks=True is not allowed in production."
        )

    if violations:
        msg = (
            "Production configuration guard failed.\n"
            + "\n".join(f"  - {v}" for v in violations)
        )
        logger.critical(msg)
        raise ProductionConfigError(msg)

    logger.info("Production configuration guard passed.")
