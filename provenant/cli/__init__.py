"""Provenant CLI: Typer-based command-line interface.

Provides the ``provenant`` command with subcommands for attesting and
verifying artifacts, evaluating evidence manifests, managing generation
receipts, and producing the provenance report.

All output uses Rich for formatted terminal display.
"""
