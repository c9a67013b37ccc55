from __future__ import annotations

from pathlib import Path
from typing import Optional


class SeedingError(Exception):
    """Base class for errors raised by the seeding layer itself."""


class CatalogError(SeedingError):
    """A catalog file is missing, unreadable or does not match its schema."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)
