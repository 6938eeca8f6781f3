"""Error taxonomy surfaced at the pipeline boundary."""

from __future__ import annotations


class ArchvizError(RuntimeError):
    """Base class for errors raised by archviz components."""


class QuotaExceeded(ArchvizError):
    """Raised when an identity has exhausted its request window."""

    def __init__(self, identity: str, retry_after: float | None = None) -> None:
        super().__init__("Rate limit exceeded. Please try again later.")
        self.identity = identity
        self.retry_after = retry_after


class InvalidInput(ArchvizError):
    """Raised when the repository digest payload is missing or malformed."""


class UpstreamGenerationError(ArchvizError):
    """Raised when a language-model call produces no usable content."""

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage


__all__ = [
    "ArchvizError",
    "InvalidInput",
    "QuotaExceeded",
    "UpstreamGenerationError",
]
