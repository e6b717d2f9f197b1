from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .response import Response


class AgentError(RuntimeError):
    """Base class for everything raised by the agent client."""


class TransportError(AgentError):
    """Raised when connecting to, writing to or reading from the agent fails."""


class FramingError(AgentError):
    """Raised when the response frame cannot be decoded."""


class LengthBufferTooSmall(FramingError):
    def __init__(self) -> None:
        super().__init__("DataLength buffer too small")


class LengthOverflow(FramingError):
    def __init__(self) -> None:
        super().__init__("DataLength is too large")


class HeaderMismatch(FramingError):
    def __init__(self, header: bytes, expected: bytes) -> None:
        super().__init__(f"unexpected frame header {header!r}, expected {expected!r}")
        self.header = header
        self.expected = expected


class FrameLengthMismatch(FramingError):
    def __init__(self, declared: int, actual: int) -> None:
        super().__init__(f"declared data length {declared} but received {actual} bytes")
        self.declared = declared
        self.actual = actual


class UnsupportedKeyError(AgentError):
    """The agent answered with ZBX_NOTSUPPORTED. The response is still attached."""

    def __init__(self, key: str, response: "Response") -> None:
        super().__init__(f"{key} is not supported")
        self.key = key
        self.response = response


class ConversionError(AgentError, ValueError):
    """Raised when a response payload cannot be read as the requested type."""


class DiscoveryError(AgentError, ValueError):
    """Raised when a discovery payload is not the expected JSON shape."""
