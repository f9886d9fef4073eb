"""Shared utilities package."""

from peakinvestigator.shared.logging import setup_logger, get_logger, redact
from peakinvestigator.shared.metrics import SessionMetrics
from peakinvestigator.shared.types import PathLike, JSONObject

__all__ = [
    "setup_logger",
    "get_logger",
    "redact",
    "SessionMetrics",
    "PathLike",
    "JSONObject",
]
