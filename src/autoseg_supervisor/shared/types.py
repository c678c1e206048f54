"""Common type definitions."""

from pathlib import Path
from typing import Callable, Union

# Type alias for paths
PathLike = Union[str, Path]

Sleeper = Callable[[float], None]
Clock = Callable[[], float]
