"""Runtime configuration: env-driven via pydantic-settings.

Reads from a ``.env`` file and ``PROVENANT_*`` environment variables.
The signing key is the only secret; when it is empty the engine runs in
degraded (digest-only) mode instead of failing.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProdConfig(BaseSettings):
    """Provenant configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export PROVENANT_SIGNING_KEY=...
        export PROVENANT_LOG_LEVEL=DEBUG
        export PROVENANT_ATTESTATION_ROOT=/data/attestations

    Or via .env file::

        PROVENANT_ENVIRONMENT=production
        PROVENANT_SWEEP_WORKERS=4
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PROVENANT_",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Trust
    # AEGIS_HMAC_KEY is accepted for pipelines that still export the old name.
    signing_key: str = Field(
        default="",
        validation_alias=AliasChoices("PROVENANT_SIGNING_KEY", "AEGIS_HMAC_KEY"),
    )
    skip_signature_checks: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "PROVENANT_SKIP_SIGNATURE_CHECKS", "SKIP_SIGNATURE_CHECKS"
        ),
    )
    revision: str = ""  # overrides GITHUB_SHA / git lookup when set

    # Storage paths
    base_dir: Path = Path(".")
    attestation_root: Path = Path(".provenant/attestations")
    receipts_path: Path = Path(".provenant/generation-receipts")
    validation_dir: Path = Path(".provenant/validation")
    reports_dir: Path = Path(".provenant/reports")

    # Attestation sweeps
    attest_extensions: list[str] = [".py", ".ts", ".js", ".tsx", ".jsx"]
    attest_targets: list[str] = ["tools"]
    sweep_workers: int = 1

    # Command execution
    command_timeout_seconds: float = 300.0

    # Evidence and reporting
    evidence_globs: list[str] = ["blueprints/**/evidence.json"]
    report_commands: dict[str, str] = {}
    report_files: list[str] = []
    validation_commands: dict[str, str] = {
        "build": "npm run build",
        "test": "npm test",
        "lint": "npm run lint",
    }

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"


# Module-level singleton: import as `from provenant.config import config`
config = ProdConfig()
