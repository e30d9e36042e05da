from __future__ import annotations

from typing import Optional


class SiteGenError(Exception):
    """Base class for errors raised by the generator service."""


class ValidationError(SiteGenError):
    """The request is missing a usable description or is malformed."""


class ProviderError(SiteGenError):
    """A provider call failed: transport error, timeout, bad status or empty completion."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider} generation failed: {message}")
        self.provider = provider
        self.message = message


class NoProviderError(SiteGenError):
    """The requested provider (or, for auto, any provider) is not configured."""

    def __init__(self, provider: Optional[str] = None, message: Optional[str] = None) -> None:
        if message is None:
            message = f"{provider} not configured" if provider else "No LLM providers configured"
        super().__init__(message)
        self.provider = provider
