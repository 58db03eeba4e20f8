"""Onkyo receiver Interface Module.

This module provides a blocking session and an asyncio network handler for
interacting with home A/V receivers made by Onkyo and Integra, over a
serial cable (ISCP) or the network (eISCP).
"""
from pyiscp.commands import DEFAULT_COMMANDS, CommandTable  # noqa: F401
from pyiscp.connection import Connection  # noqa: F401
from pyiscp.discovery import async_discover, discover  # noqa: F401
from pyiscp.exceptions import (  # noqa: F401
    ConnectionClosed,
    DiscoveryTimeout,
    ISCPError,
    ProtocolError,
    UnknownCommand,
)
from pyiscp.protocol import AVR, Message  # noqa: F401
from pyiscp.session import Session  # noqa: F401
