from __future__ import annotations

from typing import Optional


class AnnolearnError(Exception):
    pass


class ConfigurationError(AnnolearnError, ValueError):
    """Raised at setup time for invalid hyperparameters or policy names."""


class OpLogParseError(AnnolearnError, ValueError):
    def __init__(self, message: str, filename: str = "<string>", line_number: int = 0, line: Optional[str] = None):
        self.filename = filename
        self.line_number = line_number
        self.line = line
        super().__init__(f"{filename}:{line_number}: {message}")


class UnsupportedOperationError(AnnolearnError):
    pass
