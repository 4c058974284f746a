"""Exception types shared across replybot."""

from __future__ import annotations


class ReplybotError(Exception):
    """Base class for replybot errors."""


class GatewayError(ReplybotError):
    """A messaging gateway request failed."""

    def __init__(
        self,
        message: str,
        *,
        url: str = "",
        method: str = "",
        status: int | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.method = method
        self.status = status


class ProviderError(ReplybotError):
    """The model backend could not produce a response."""


class DispatchError(ReplybotError):
    """The final reply could not be delivered to the gateway."""


class ToolError(ReplybotError):
    """A tool could not complete; the message is shown to the model."""
