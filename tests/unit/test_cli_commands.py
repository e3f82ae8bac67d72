"""Unit tests for the CLI: Typer command registration and behavior.

Exercises every command through typer.testing.CliRunner inside an
isolated working directory.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from provenant.cli.app import app

runner = CliRunner()


@pytest.fixture
def workspace(tmp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A project directory with a tools/ tree; cwd is moved into it."""
    monkeypatch.chdir(tmp_dir)
    monkeypatch.setenv("PROVENANT_REVISION", "cli-test")
    tools = tmp_dir / "tools"
    tools.mkdir()
    (tools / "attest.ts").write_text("export const attest = 1;\n")
    (tools / "check.ts").write_text("export const check = 2;\n")
    return tmp_dir


@pytest.fixture
def keyed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROVENANT_SIGNING_KEY", "cli-secret")


# ---------------------------------------------------------------------------
# Test: CLI help and registration
# ---------------------------------------------------------------------------


class TestCliApp:
    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        # Typer's no_args_is_help may exit with 0 or 2 depending on version
        assert result.exit_code in (0, 2)
        assert "usage" in result.output.lower()

    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for name in ("attest", "verify", "evidence", "receipts", "report"):
            assert name in result.output

    @pytest.mark.parametrize(
        "command",
        [["attest"], ["verify"], ["evidence"], ["report"],
         ["receipts", "generate"], ["receipts", "list"], ["receipts", "verify"]],
    )
    def test_command_help(self, command):
        assert runner.invoke(app, [*command, "--help"]).exit_code == 0


# ---------------------------------------------------------------------------
# Test: attest / verify
# ---------------------------------------------------------------------------


class TestAttestVerify:
    def test_attest_then_verify(self, workspace: Path, keyed):
        assert runner.invoke(app, ["attest", "tools"]).exit_code == 0
        record = workspace / ".provenant" / "attestations" / "cli-test" / "tools" / "attest.ts.sig"
        assert record.exists()
        summary = workspace / ".provenant" / "attestations" / "cli-test" / "attestation-summary.json"
        assert json.loads(summary.read_text())["filesAttested"] == 2

        result = runner.invoke(app, ["verify", "tools"])
        assert result.exit_code == 0

    def test_verify_detects_tampering(self, workspace: Path, keyed):
        runner.invoke(app, ["attest", "tools"])
        (workspace / "tools" / "check.ts").write_text("export const check = 3;\n")
        result = runner.invoke(app, ["verify", "tools"])
        assert result.exit_code == 1
        assert "FAILED" in result.output

    def test_verify_without_attestations_fails(self, workspace: Path, keyed):
        assert runner.invoke(app, ["verify", "tools"]).exit_code == 1

    def test_default_targets_from_config(self, workspace: Path, keyed):
        assert runner.invoke(app, ["attest"]).exit_code == 0
        assert runner.invoke(app, ["verify"]).exit_code == 0

    def test_unkeyed_attest_is_digest_only(self, workspace: Path):
        result = runner.invoke(app, ["attest", "tools"])
        assert result.exit_code == 0
        assert "digest-only" in result.output
        assert runner.invoke(app, ["verify", "tools"]).exit_code == 0

    def test_ext_and_output_root_options(self, workspace: Path, keyed):
        (workspace / "tools" / "helper.py").write_text("x = 1\n")
        result = runner.invoke(app, ["attest", "tools", "--ext", ".py", "--output-root", "sigs"])
        assert result.exit_code == 0
        assert (workspace / "sigs" / "cli-test" / "tools" / "helper.py.sig").exists()
        assert not (workspace / "sigs" / "cli-test" / "tools" / "attest.ts.sig").exists()

    def test_production_without_key_refuses(self, workspace: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PROVENANT_ENVIRONMENT", "production")
        result = runner.invoke(app, ["attest", "tools"])
        assert result.exit_code == 1
        assert "Configuration error" in result.output


# ---------------------------------------------------------------------------
# Test: evidence
# ---------------------------------------------------------------------------


def _write_manifest(workspace: Path, payload: dict) -> Path:
    path = workspace / "blueprints" / "svc" / "evidence.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload))
    return path


class TestEvidence:
    def test_degraded_signature_is_warning(self, workspace: Path):
        _write_manifest(workspace, {"requiredFiles": [{"path": "dist/app.js.sig"}]})
        result = runner.invoke(app, ["evidence"])
        assert result.exit_code == 0
        summary = workspace / ".provenant" / "validation" / "evidence-summary.json"
        data = json.loads(summary.read_text())
        assert data["env"]["hasSigningKey"] is False
        assert data["findings"][0]["level"] == "warning"

    def test_keyed_missing_signature_fails(self, workspace: Path, keyed):
        _write_manifest(workspace, {"requiredFiles": [{"path": "dist/app.js.sig"}]})
        assert runner.invoke(app, ["evidence"]).exit_code == 1

    def test_skip_signature_checks_relaxes(self, workspace: Path, keyed, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SKIP_SIGNATURE_CHECKS", "true")
        _write_manifest(workspace, {"requiredFiles": [{"path": "dist/app.js.sig"}]})
        assert runner.invoke(app, ["evidence"]).exit_code == 0

    def test_malformed_manifest_fails(self, workspace: Path):
        path = workspace / "blueprints" / "bad" / "evidence.json"
        path.parent.mkdir(parents=True)
        path.write_text("{not json")
        assert runner.invoke(app, ["evidence"]).exit_code == 1

    def test_no_manifests(self, workspace: Path):
        result = runner.invoke(app, ["evidence"])
        assert result.exit_code == 0
        assert "No evidence manifests" in result.output

    def test_explicit_glob_and_summary(self, workspace: Path):
        path = workspace / "custom" / "claims.json"
        path.parent.mkdir()
        path.write_text(json.dumps({"requiredFiles": [{"path": "tools/attest.ts"}]}))
        result = runner.invoke(app, ["evidence", "custom/*.json", "--summary", "out/summary.json"])
        assert result.exit_code == 0
        assert (workspace / "out" / "summary.json").exists()


# ---------------------------------------------------------------------------
# Test: receipts
# ---------------------------------------------------------------------------


class TestReceipts:
    @pytest.fixture
    def blueprint(self, workspace: Path) -> Path:
        path = workspace / "bp.yaml"
        path.write_text("id: svc\nversion: 2.0.0\n")
        (workspace / "out.ts").write_text("export const out = 1;\n")
        return path

    def _receipt_ids(self, workspace: Path) -> list[str]:
        directory = workspace / ".provenant" / "generation-receipts"
        return sorted(p.stem for p in directory.glob("*.json"))

    def test_generate_and_list(self, workspace: Path, blueprint: Path):
        result = runner.invoke(app, ["receipts", "generate", "bp.yaml", "--seed", "42"])
        assert result.exit_code == 0
        assert len(self._receipt_ids(workspace)) == 1
        listing = runner.invoke(app, ["receipts", "list", "--blueprint", "svc"])
        assert listing.exit_code == 0
        assert "svc" in listing.output

    def test_reproduction_flow(self, workspace: Path, blueprint: Path):
        for _ in range(2):
            runner.invoke(app, ["receipts", "generate", "bp.yaml", "--seed", "42"])
        first, second = self._receipt_ids(workspace)
        assert runner.invoke(app, ["receipts", "update-output", first, "out.ts"]).exit_code == 0
        assert runner.invoke(app, ["receipts", "update-output", second, "out.ts"]).exit_code == 0
        result = runner.invoke(app, ["receipts", "verify", "bp.yaml"])
        assert result.exit_code == 0
        assert "Reproduced" in result.output

    def test_verify_single_receipt_fails(self, workspace: Path, blueprint: Path):
        runner.invoke(app, ["receipts", "generate", "bp.yaml", "--seed", "1"])
        result = runner.invoke(app, ["receipts", "verify", "bp.yaml"])
        assert result.exit_code == 1
        assert "need at least two receipts" in result.output

    def test_update_output_missing_file(self, workspace: Path, blueprint: Path):
        runner.invoke(app, ["receipts", "generate", "bp.yaml", "--seed", "1"])
        (receipt_id,) = self._receipt_ids(workspace)
        result = runner.invoke(app, ["receipts", "update-output", receipt_id, "nope.ts"])
        assert result.exit_code == 1

    def test_generate_missing_blueprint(self, workspace: Path):
        assert runner.invoke(app, ["receipts", "generate", "absent.yaml"]).exit_code == 1

    def test_validate_records_outcomes(self, workspace: Path, blueprint: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv(
            "PROVENANT_VALIDATION_COMMANDS",
            json.dumps({"build": "exit 0", "test": "exit 0", "lint": "exit 1"}),
        )
        runner.invoke(app, ["receipts", "generate", "bp.yaml", "--seed", "1"])
        (receipt_id,) = self._receipt_ids(workspace)
        result = runner.invoke(app, ["receipts", "validate", receipt_id])
        assert result.exit_code == 1
        stored = json.loads(
            (workspace / ".provenant" / "generation-receipts" / f"{receipt_id}.json").read_text()
        )
        assert stored["validation"] == {"buildPassed": True, "testsPassed": True, "lintPassed": False}


# ---------------------------------------------------------------------------
# Test: report
# ---------------------------------------------------------------------------


class TestReport:
    def test_report_written(self, workspace: Path, keyed):
        result = runner.invoke(app, ["report", "--output", "report.json"])
        assert result.exit_code == 0
        data = json.loads((workspace / "report.json").read_text())
        assert data["meta"]["commit"] == "cli-test"
        assert data["commands"]["verify:tools"]["exit_code"] == 0

    def test_report_default_location_unkeyed(self, workspace: Path):
        assert runner.invoke(app, ["report"]).exit_code == 0
        path = workspace / ".provenant" / "reports" / "provenance-report.json"
        data = json.loads(path.read_text())
        assert data["commands"]["attest:tools"]["exit_code"] == -1
