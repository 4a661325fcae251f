"""Canonical error types for the knowledge base retrieval core.

"No results" is never an error: searches and retrievals return empty
structures. Only invalid input, a broken content store, or a failing AI
provider raise one of these.

- ValidationError: a required field is blank or an option is malformed
- DimensionMismatchError: vectors of different lengths were compared
- ProviderError: an embedding/generation call failed or timed out
- RateLimitError: the provider asked us to slow down (HTTP 429)
- ContentStoreError: a content index file could not be parsed
"""
from typing import Optional


class ModGuideError(Exception):
    """Base class for every error raised by modguide."""


class ValidationError(ModGuideError, ValueError):
    """Raised when a required field is blank or an option is invalid.

    Attributes:
        field: Name of the offending field (e.g. "violation").
    """

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"{field} is required")


class DimensionMismatchError(ModGuideError, ValueError):
    """Raised when two vectors with different dimensions are compared."""

    def __init__(self, left: int, right: int):
        self.left = left
        self.right = right
        super().__init__(f"Vectors must have the same dimension ({left} != {right})")


class ProviderError(ModGuideError):
    """Raised when an external AI provider call fails.

    Attributes:
        provider: Logical provider name ("embedding" or "generation").
    """

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"AI servisi hatası ({provider}): {message}")


class RateLimitError(ProviderError):
    """Raised when a provider rejects a call because of rate limiting."""


class ContentStoreError(ModGuideError):
    """Raised when a content index file exists but cannot be read."""
