"""Provenant: provenance attestation and evidence verification.

  - Content normalization and SHA-256 digests that ignore self-referential
    ``@hash:`` annotations and line-ending differences
  - HMAC-SHA256 signed attestation records, namespaced by revision
  - Generation receipts with a reproducibility check
  - Evidence manifests with a degraded mode for unkeyed environments
  - A consolidated, externally auditable provenance report
"""

__version__ = "0.1.0"
__description__ = "Provenance attestation and evidence verification engine"

from provenant.core.engine import Engine
from provenant.cli.app import app as cli

__all__ = ["Engine", "cli", "__version__"]
