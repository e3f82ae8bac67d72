"""Canonical hashing helpers for attestation and generation receipts.

Digests are always SHA-256, lowercase hex.  Content digests are taken over
the UTF-8 bytes of *normalized* text; structured inputs go through
canonical JSON first so key order and whitespace never affect the hash.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

from provenant.core.normalizer import normalize


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes: deterministic, sorted, compact.

    - sorted keys
    - no whitespace separators (",", ":")
    - ensure_ascii=True
    - UTF-8 encoding
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def digest(normalized: str) -> str:
    """SHA-256 of already-normalized content (64 lowercase hex chars)."""
    return sha256_hex(normalized.encode("utf-8"))


def content_digest(raw: str) -> str:
    """Normalize *raw* then digest it."""
    return digest(normalize(raw))


def file_digest(path: Path) -> str:
    """Digest the current content of a text artifact.

    Read fresh on every call; artifact content is never cached.
    """
    return content_digest(Path(path).read_text(encoding="utf-8"))


def compute_input_hash(
    blueprint: str,
    seed: str | int,
    temperature: float,
    mode: str,
) -> str:
    """Digest of the canonical generation inputs.

    Two generations with the same blueprint text, seed, temperature and
    mode always share an input hash.  The blueprint is normalized before
    canonicalization: canonical JSON is a single line, so an annotation
    inside the blueprint would otherwise blank the whole payload.
    """
    payload = {
        "blueprint": normalize(blueprint),
        "seed": seed,
        "temperature": temperature,
        "mode": mode,
    }
    return sha256_hex(canonical_json_bytes(payload))
