"""Common type definitions."""

from typing import Any, Callable, Dict, Union
from pathlib import Path

# Type alias for paths
PathLike = Union[str, Path]

# Decoded JSON object returned by the service
JSONObject = Dict[str, Any]

SleepFunc = Callable[[float], None]
