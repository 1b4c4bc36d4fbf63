from __future__ import annotations
from typing import Optional


class PromptBenchError(Exception):
    """Base error for the engine. Public operations convert it into a result message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(PromptBenchError):
    """Request cannot be attempted: no model selected or none configured."""


class UpstreamError(PromptBenchError):
    """Provider answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
