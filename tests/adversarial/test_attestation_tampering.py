"""Adversarial tests: tampered artifacts, forged records, wrong keys.

Every tampering attempt must be detected by the verification sweep and
attributed to the right check, without aborting the sweep.
"""

from __future__ import annotations

import json
from pathlib import Path

from provenant.core.attestation_store import AttestationStore
from provenant.core.hasher import content_digest
from provenant.core.signing import UNSIGNED, SignatureService, sign
from provenant.models.attestation import ALG_DIGEST_ONLY, CheckKind


def _rewrite_record(store: AttestationStore, path: str, **changes) -> None:
    record_path = store.record_path(path)
    data = json.loads(record_path.read_text())
    data.update(changes)
    record_path.write_text(json.dumps(data))


class TestContentTampering:
    def test_modified_file_fails_digest(self, store: AttestationStore, make_tree):
        root = make_tree({"a.ts": "const a = 1;\n"})
        store.attest_directory(root)
        (root / "a.ts").write_text("const a = 2;\n")
        check = store.check(root / "a.ts")
        assert check.ok is False
        assert check.failed_check is CheckKind.DIGEST

    def test_sweep_continues_past_tampered_file(self, store: AttestationStore, make_tree):
        root = make_tree({"a.ts": "a", "b.ts": "b", "c.ts": "c"})
        store.attest_directory(root)
        (root / "b.ts").write_text("tampered")
        result = store.sweep(root)
        assert len(result.checks) == 3
        assert [c.path for c in result.failures] == ["src/b.ts"]
        assert result.ok is False

    def test_appended_annotation_cannot_hide_change(self, store: AttestationStore, make_tree):
        root = make_tree({"a.ts": "const a = 1;\n"})
        store.attest_directory(root)
        (root / "a.ts").write_text("const a = 666;\n// @hash: " + content_digest("const a = 1;\n") + "\n")
        assert store.check(root / "a.ts").failed_check is CheckKind.DIGEST


class TestRecordForgery:
    def test_forged_digest_fails_signature(self, store: AttestationStore, make_tree):
        root = make_tree({"a.ts": "original"})
        store.attest_directory(root)
        (root / "a.ts").write_text("malicious")
        _rewrite_record(store, "src/a.ts", hash=content_digest("malicious"))
        check = store.check("src/a.ts")
        assert check.failed_check is CheckKind.SIGNATURE

    def test_signature_from_another_key_rejected(self, store: AttestationStore, make_tree):
        root = make_tree({"a.ts": "payload"})
        store.attest_directory(root)
        forged = sign(content_digest("payload"), "attacker-key")
        _rewrite_record(store, "src/a.ts", signature=forged)
        assert store.check("src/a.ts").failed_check is CheckKind.SIGNATURE

    def test_downgrade_to_unsigned_rejected_when_keyed(self, store: AttestationStore, make_tree):
        root = make_tree({"a.ts": "payload"})
        store.attest_directory(root)
        _rewrite_record(store, "src/a.ts", signature=UNSIGNED, algorithm=ALG_DIGEST_ONLY)
        assert store.check("src/a.ts").failed_check is CheckKind.SIGNATURE

    def test_verifier_with_wrong_key_rejects(self, store: AttestationStore, make_tree, tmp_dir: Path):
        root = make_tree({"a.ts": "payload"})
        store.attest_directory(root)
        verifier = AttestationStore(
            tmp_dir / ".provenant" / "attestations",
            store.revision_id,
            SignatureService.from_key("different-key"),
            base_dir=tmp_dir,
        )
        assert verifier.check("src/a.ts").failed_check is CheckKind.SIGNATURE

    def test_malformed_digest_is_structural(self, store: AttestationStore, make_tree):
        root = make_tree({"a.ts": "payload"})
        store.attest_directory(root)
        _rewrite_record(store, "src/a.ts", hash="not-a-digest")
        assert store.check("src/a.ts").failed_check is CheckKind.STRUCTURAL

    def test_extra_fields_are_structural(self, store: AttestationStore, make_tree):
        root = make_tree({"a.ts": "payload"})
        store.attest_directory(root)
        _rewrite_record(store, "src/a.ts", trusted=True)
        assert store.check("src/a.ts").failed_check is CheckKind.STRUCTURAL

    def test_deleted_record_is_missing(self, store: AttestationStore, make_tree):
        root = make_tree({"a.ts": "payload", "b.ts": "other"})
        store.attest_directory(root)
        store.record_path("src/a.ts").unlink()
        result = store.sweep(root)
        assert [(c.path, c.failed_check) for c in result.failures] == [("src/a.ts", CheckKind.MISSING)]


class TestPathEscape:
    def test_outside_path_stays_inside_revision_dir(self, store: AttestationStore, tmp_dir: Path):
        outside = tmp_dir.parent / "outside-artifact.ts"
        record = store.record_path(outside)
        assert store.revision_dir in record.parents

    def test_dotdot_path_stays_inside_revision_dir(self, store: AttestationStore):
        record = store.record_path("../../etc/passwd.ts")
        assert store.revision_dir in record.parents
