from typing import Any, Optional


class ConfigurationError(Exception):
    """Raised for option combinations that cannot describe a single run."""


class RecordError(Exception):
    """A single page could not be turned into output; the run goes on."""

    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"
