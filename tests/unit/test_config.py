"""Tests for production config: env-driven settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from provenant.config import ProdConfig


class TestProdConfig:
    def test_defaults(self):
        config = ProdConfig()
        assert config.environment == "development"
        assert config.log_level == "INFO"
        assert config.signing_key == ""
        assert config.skip_signature_checks is False
        assert config.command_timeout_seconds == 300.0
        assert config.sweep_workers == 1

    def test_is_production_false_by_default(self):
        assert ProdConfig().is_production is False

    def test_is_production_when_set(self):
        assert ProdConfig(environment="production").is_production is True

    def test_default_paths(self):
        config = ProdConfig()
        assert config.attestation_root == Path(".provenant/attestations")
        assert config.receipts_path == Path(".provenant/generation-receipts")
        assert config.validation_dir == Path(".provenant/validation")
        assert config.reports_dir == Path(".provenant/reports")

    def test_default_globs_and_extensions(self):
        config = ProdConfig()
        assert config.evidence_globs == ["blueprints/**/evidence.json"]
        assert ".ts" in config.attest_extensions

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PROVENANT_SWEEP_WORKERS", "4")
        monkeypatch.setenv("PROVENANT_SIGNING_KEY", "k1")
        config = ProdConfig()
        assert config.sweep_workers == 4
        assert config.signing_key == "k1"

    def test_legacy_env_names(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("AEGIS_HMAC_KEY", "legacy")
        monkeypatch.setenv("SKIP_SIGNATURE_CHECKS", "true")
        config = ProdConfig()
        assert config.signing_key == "legacy"
        assert config.skip_signature_checks is True

    def test_json_list_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PROVENANT_ATTEST_TARGETS", '["src", "tools"]')
        assert ProdConfig().attest_targets == ["src", "tools"]
