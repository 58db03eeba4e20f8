"""Module with the ISCP/eISCP wire codecs and the asyncio protocol handler."""
import asyncio
import logging
import re
import struct
from collections import namedtuple

from pyiscp.commands import DEFAULT_COMMANDS
from pyiscp.exceptions import ProtocolError, UnknownCommand
from pyiscp.writequeue import WriteQueue

__all__ = (
    "Message",
    "NEED_MORE_DATA",
    "ISCPMessage",
    "eISCPPacket",
    "get_codec",
    "command_to_packet",
    "AVR",
)

log = logging.getLogger(__name__)

TERMINATORS = b"\x1a\r\n"
START_DESTINATION = "!1"


class Message(namedtuple("Message", ("command", "argument"))):
    """A single ISCP message: a three character command and its argument."""

    __slots__ = ()

    def __str__(self):
        return self.command + self.argument

    @classmethod
    def from_string(cls, data):
        """Split a raw command such as ``PWR01`` into command and argument."""
        return cls(data[:3], data[3:])


class _NeedMoreData(object):
    """Returned by the decoders while no complete frame is buffered."""

    def __bool__(self):
        return False

    def __repr__(self):
        return "NEED_MORE_DATA"


NEED_MORE_DATA = _NeedMoreData()


def _text(data):
    return data.decode("utf-8", "backslashreplace")


def _check_start_destination(sd):
    if sd != START_DESTINATION:
        log.warning(
            "Unexpected start/destination: expected '%s', got '%s'",
            START_DESTINATION,
            sd,
        )


class ISCPMessage(object):
    """Deals with formatting and parsing data wrapped in an ISCP
    container. The docs say:
        ISCP (Integra Serial Control Protocol) consists of three
        command characters and parameter character(s) of variable
        length.
    It seems this was the original protocol used for communicating
    via a serial cable.
    """

    type = "ISCP"

    # Stray terminators left over from a previous frame are swallowed
    # together with the next frame.
    _frame = re.compile(rb"[\x1a\r\n]*([^\x1a\r\n]{2})([^\x1a\r\n]{3,})[\x1a\r\n]+")

    @classmethod
    def encode(cls, command, argument="", destination="1"):
        # ! = start character
        # 1 = destination unit type, 1 means receiver
        # End character may be CR, LF or CR+LF, according to doc
        return "!{}{}{}\r\n".format(destination, command, argument).encode("utf-8")

    @classmethod
    def decode(cls, buffer):
        """Remove the first complete message from ``buffer``.

        ``buffer`` is a :class:`bytearray` which is only modified when a
        complete message was found. Returns a :class:`Message` or
        :data:`NEED_MORE_DATA`.
        """
        match = cls._frame.match(buffer)
        if match is None:
            return NEED_MORE_DATA
        # The groups are views of buffer, read them before it shrinks.
        sd, body = _text(match.group(1)), _text(match.group(2))
        del buffer[: match.end()]

        _check_start_destination(sd)
        return Message.from_string(body)


class eISCPPacket(object):
    """For communicating over Ethernet, traditional ISCP messages are
    wrapped inside an eISCP package.
    """

    type = "eISCP"

    header = namedtuple("header", ("magic, header_size, data_size, version, reserved"))

    HEADER_SIZE = 16
    VERSION = 0x01
    _header_format = "! 4s I I B 3s"

    @classmethod
    def encode(cls, command, argument="", destination="1"):
        return cls.wrap("!{}{}{}\r".format(destination, command, argument).encode("utf-8"))

    @classmethod
    def wrap(cls, iscp_message):
        """Prefix the encoded ``iscp_message`` with an eISCP header."""
        # We attach data separately, because Python's struct module does
        # not support variable length strings.
        header = struct.pack(
            cls._header_format,
            b"ISCP",  # magic
            cls.HEADER_SIZE,  # header size (16 bytes)
            len(iscp_message),  # data size
            cls.VERSION,  # version
            b"\x00\x00\x00",  # reserved
        )
        return header + iscp_message

    @classmethod
    def parse_header(cls, data):
        """Parse the header of an eISCP package.
        This is useful when reading data in a streaming fashion,
        because you can subsequently know the number of bytes to
        expect in the packet.

        Raises :class:`ProtocolError` if the magic is not ``ISCP``.
        """
        magic, header_size, data_size, version, reserved = struct.unpack(
            cls._header_format, bytes(data[: cls.HEADER_SIZE])
        )
        if magic != b"ISCP":
            raise ProtocolError(
                "Unexpected magic: expected 'ISCP', got {!r}".format(magic)
            )
        return cls.header(magic.decode(), header_size, data_size, version, reserved)

    @classmethod
    def decode(cls, buffer):
        """Remove the first complete package from ``buffer``.

        Data for a package may not arrive all in one go. First read the
        header to determine the total package size, then wait until we
        have that much data before decoding it.
        """
        if len(buffer) < cls.HEADER_SIZE:
            return NEED_MORE_DATA

        h = cls.parse_header(buffer)
        if h.header_size < cls.HEADER_SIZE:
            raise ProtocolError(
                "Header size {} is shorter than the header itself".format(h.header_size)
            )
        if len(buffer) < h.header_size + h.data_size:
            return NEED_MORE_DATA

        # Strangely, the header contains a header_size field. The observed
        # values are trusted over the documented ones.
        if h.version != cls.VERSION:
            log.warning(
                "Unexpected version: expected '0x%02x', got '0x%02x'",
                cls.VERSION,
                h.version,
            )
        if h.header_size != cls.HEADER_SIZE:
            log.warning(
                "Unexpected header size: expected '0x%02x', got '0x%02x'",
                cls.HEADER_SIZE,
                h.header_size,
            )

        del buffer[: h.header_size]
        body = bytes(buffer[: h.data_size])
        del buffer[: h.data_size]

        _check_start_destination(_text(body[:2]))
        return Message.from_string(_text(body[2:].rstrip(TERMINATORS)))


_CODECS = {codec.type.lower(): codec for codec in (ISCPMessage, eISCPPacket)}


def get_codec(type):
    """Return the codec class for the protocol ``type`` (ISCP or eISCP)."""
    try:
        return _CODECS[type.lower()]
    except KeyError:
        raise ValueError('"{}" is not a valid protocol type'.format(type))


def command_to_packet(command, type="eISCP"):
    """Convert an ascii command like (PWR00) to the binary data we
    need to send to the receiver.
    """
    message = Message.from_string(command)
    return get_codec(type).encode(message.command, message.argument)


# pylint: disable=too-many-instance-attributes
class AVR(asyncio.Protocol):
    """The Onkyo eISCP network protocol handler."""

    def __init__(self,
        update_callback=None,
        connect_callback=None,
        loop=None,
        connection_lost_callback=None,
        commands=DEFAULT_COMMANDS,
    ):
        """Protocol handler that decodes messages and paces outgoing commands.

        This class is expected to be wrapped inside a Connection class object
        which will maintain the socket and handle auto-reconnects.

            :param update_callback:
                called with every :class:`Message` received (optional)
            :param connect_callback:
                called when the connection is established (optional)
            :param connection_lost_callback:
                called when connection is lost to device (optional)
            :param loop:
                asyncio event loop (optional)
            :param commands:
                :class:`~pyiscp.commands.CommandTable` used to resolve phrases

            :type update_callback:
                callable
            :type connect_callback:
                callable
            :type: connection_lost_callback:
                callable
            :type loop:
                asyncio.loop
        """
        self._loop = loop
        self.log = logging.getLogger(__name__)
        self._connection_lost_callback = connection_lost_callback
        self._update_callback = update_callback
        self._connect_callback = connect_callback
        self._commands = commands
        self.buffer = bytearray()
        self.write_queue = WriteQueue(self._send)
        self.transport = None

    def command(self, command, callback=None):
        """Issue a command to the device.

        The command is written once the previous command has been answered
        by any message from the device. ``callback`` is called at that point
        for this command.

            :param command: A phrase like ``volume up`` or a raw ``MVLUP``
            :param callback: Called without arguments on completion
            :type command: str
            :type callback: callable

        :Example:

        >>> command("power on")
        or
        >>> command("PWR01")
        """
        try:
            iscp_message = self._commands.lookup(command)
        except UnknownCommand as error:
            self.log.error("Invalid message. %s", error)
            return

        if self.transport is None:
            self.log.warning("No transport found, unable to send command")
            return

        self.log.debug("> %s", iscp_message)
        self.write_queue.enqueue(command_to_packet(iscp_message), callback)

    def _send(self, data):
        self.transport.write(data)

    #
    # asyncio network functions
    #

    def connection_made(self, transport):
        """Called when asyncio.Protocol establishes the network connection."""
        self.log.info("Connection established to AVR")
        self.transport = transport
        self.buffer = bytearray()

        if self._connect_callback:
            self._loop.call_soon(self._connect_callback)

    def data_received(self, data):
        """Called when asyncio.Protocol detects received data from network."""
        self.buffer += data
        self.log.debug("Received %d bytes from AVR: %s", len(self.buffer), bytes(self.buffer))
        self._assemble_buffer()

    def connection_lost(self, exc):
        """Called when asyncio.Protocol loses the network connection."""
        if exc is not None:
            self.log.warning("Lost connection to receiver: %s", exc)

        self.transport = None
        self.write_queue.clear()

        if self._connection_lost_callback:
            self._loop.call_soon(self._connection_lost_callback)

    def _assemble_buffer(self):
        """Decode every complete package in the buffer."""
        while self.buffer:
            try:
                message = eISCPPacket.decode(self.buffer)
            except ProtocolError as error:
                # The stream is desynchronized, start over on a new connection
                self.log.warning("Dropping connection: %s", error)
                self.buffer = bytearray()
                self.transport.close()
                return

            if message is NEED_MORE_DATA:
                return

            self.log.debug("< %s", message)
            self.write_queue.frame_consumed()
            if self._update_callback:
                self._loop.call_soon(self._update_callback, message)
