"""Command execution facility: one narrow seam for running external commands.

Defines the ``CommandExecutor`` Protocol the evaluator, receipt ledger and
report aggregator depend on, and ``SubprocessExecutor``, the default
backend.  Tests substitute a fake executor that satisfies the Protocol.

A command failing, timing out, or failing to launch is data, not an
exception: the executor always returns a ``CommandReceipt``.
"""

from __future__ import annotations

import logging
import subprocess
import time
from typing import Protocol, runtime_checkable

from provenant.models.results import CommandReceipt

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124
NOT_LAUNCHED_EXIT_CODE = 127


@runtime_checkable
class CommandExecutor(Protocol):
    """Protocol for command execution backends."""

    def run(self, command: str, timeout: float | None = None) -> CommandReceipt:
        """Run *command* and return its exit status and captured output.

        A timeout is reported as ``timed_out=True`` with a non-zero exit
        code; it must never raise.
        """
        ...


def _as_text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class SubprocessExecutor:
    """Runs shell commands with ``subprocess.run`` and captured text output.

    Parameters
    ----------
    cwd:
        Working directory for every command.  Defaults to the process cwd.
    default_timeout:
        Timeout in seconds applied when ``run`` is called without one.
    """

    def __init__(self, cwd: str | None = None, default_timeout: float | None = 300.0) -> None:
        self._cwd = cwd
        self._default_timeout = default_timeout

    def run(self, command: str, timeout: float | None = None) -> CommandReceipt:
        limit = timeout if timeout is not None else self._default_timeout
        started = time.monotonic()
        try:
            completed = subprocess.run(
                command,
                shell=True,
                cwd=self._cwd,
                capture_output=True,
                text=True,
                timeout=limit,
            )
        except subprocess.TimeoutExpired as exc:
            logger.warning("Command timed out after %ss: %s", limit, command)
            return CommandReceipt(
                command=command,
                exit_code=TIMEOUT_EXIT_CODE,
                stdout=_as_text(exc.stdout),
                stderr=_as_text(exc.stderr) or f"timed out after {limit}s",
                duration_ms=(time.monotonic() - started) * 1000.0,
                timed_out=True,
            )
        except OSError as exc:
            logger.warning("Command could not be launched: %s (%s)", command, exc)
            return CommandReceipt(
                command=command,
                exit_code=NOT_LAUNCHED_EXIT_CODE,
                stderr=str(exc),
                duration_ms=(time.monotonic() - started) * 1000.0,
            )

        logger.debug("Command exited %d: %s", completed.returncode, command)
        return CommandReceipt(
            command=command,
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            duration_ms=(time.monotonic() - started) * 1000.0,
        )
