"""Content normalization for stable hashing.

Artifacts may carry a self-referential ``@hash:`` annotation on a line of
its own, optionally behind a comment marker.  Those lines are dropped
entirely before hashing so the digest never depends on the value it is
about to produce, and line endings are unified to LF.

``normalize`` is pure and idempotent: ``normalize(normalize(s)) == normalize(s)``.
"""

from __future__ import annotations

import re

# Annotation-only lines: an optional comment marker, then `@hash:`.  Code
# sharing a line with the annotation is kept and therefore hashed.
_ANNOTATION_LINE = re.compile(r"^\s*(?:(?://|#|--|;|/\*+|\*|<!--)\s*)?@hash:")

# A run of CRs before LF collapses to one LF, so no CR can ever precede
# an LF in the output.
_CRLF = re.compile(r"\r+\n")
_EMBEDDED_DIGEST = re.compile(r"@hash:\s*([0-9a-f]{64})\b")


def normalize(raw: str) -> str:
    """Strip hash-annotation lines and convert CRLF line endings to LF."""
    text = _CRLF.sub("\n", raw)
    kept = [line for line in text.split("\n") if not _ANNOTATION_LINE.match(line)]
    return "\n".join(kept)


def embedded_digest(raw: str) -> str | None:
    """Return the digest an artifact declares about itself, if any.

    Informational only; the declared value is never an input to hashing.
    """
    match = _EMBEDDED_DIGEST.search(raw)
    return match.group(1) if match else None
