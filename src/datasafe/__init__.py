"""Oracle Data Safe toolkit - target and connector name resolution with listing cache."""

from .cli import app
from .config import DataSafeConfig

__version__ = "0.1.0"
__all__ = ["app", "DataSafeConfig"]
