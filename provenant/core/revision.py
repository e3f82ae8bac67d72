"""Revision identifier lookup: never fatal.

Resolution order: explicit override, ``GITHUB_SHA``, ``git rev-parse HEAD``,
then the literal ``"local"``.
"""

from __future__ import annotations

import logging
import os
import re

from provenant.core.executor import CommandExecutor, SubprocessExecutor

logger = logging.getLogger(__name__)

LOCAL_REVISION = "local"

_SAFE_REVISION = re.compile(r"^[A-Za-z0-9._-]+$")


class RevisionSource:
    """Supplies the revision id that namespaces attestation records."""

    def __init__(
        self,
        override: str = "",
        *,
        executor: CommandExecutor | None = None,
    ) -> None:
        self._override = override
        self._executor = executor or SubprocessExecutor(default_timeout=10.0)
        self._cached: str | None = None

    def revision_id(self) -> str:
        if self._cached is None:
            self._cached = self._resolve()
        return self._cached

    def _resolve(self) -> str:
        for candidate in (self._override, os.environ.get("GITHUB_SHA", "")):
            if candidate and _SAFE_REVISION.match(candidate):
                return candidate

        receipt = self._executor.run("git rev-parse HEAD", timeout=10.0)
        sha = receipt.stdout.strip()
        if receipt.succeeded and _SAFE_REVISION.match(sha):
            return sha

        logger.debug("No revision available; using %r.", LOCAL_REVISION)
        return LOCAL_REVISION
