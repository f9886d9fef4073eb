"""Presentation layer package."""

from peakinvestigator.presentation.cli import main

__all__ = ["main"]
