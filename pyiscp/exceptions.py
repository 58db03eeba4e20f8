"""Exceptions raised by the ISCP protocol engine."""

__all__ = (
    "ISCPError",
    "ProtocolError",
    "ConnectionClosed",
    "DiscoveryTimeout",
    "UnknownCommand",
)


class ISCPError(Exception):
    """Base class for all errors raised by pyiscp."""


class ProtocolError(ISCPError):
    """The byte stream can not be interpreted as ISCP/eISCP data.

    When raised while decoding, the stream is desynchronized and the
    connection has to be reopened.
    """


class ConnectionClosed(ISCPError, ConnectionError):
    """The transport was closed by the other side."""


class DiscoveryTimeout(ISCPError, TimeoutError):
    """No receiver answered the discovery broadcast."""


class UnknownCommand(ISCPError, ValueError):
    """A command phrase has no mapping and is not a raw ISCP command."""
