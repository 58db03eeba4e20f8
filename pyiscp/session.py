"""Blocking session with a receiver over a serial port or TCP socket."""
import logging
import select
import time

from pyiscp.commands import DEFAULT_COMMANDS
from pyiscp.discovery import discover
from pyiscp.exceptions import ConnectionClosed
from pyiscp.protocol import NEED_MORE_DATA, Message, get_codec
from pyiscp.transport import DEFAULT_BAUD, DEFAULT_PORT, open_transport
from pyiscp.utils import hexdump
from pyiscp.writequeue import WriteQueue

__all__ = ("Session",)

READ_SIZE = 2048


class Session(object):
    """Reads messages from and writes commands to one receiver.

    A session is not thread safe. :meth:`write` never blocks: the first
    command is written right away and later ones are held back until
    the receiver has sent a message, which is only noticed by
    :meth:`read`. Keep calling :meth:`read` to get queued commands out.
    """

    def __init__(self, transport, type="eISCP", commands=DEFAULT_COMMANDS):
        """
            :param transport:
                an open :class:`~pyiscp.transport.Transport`
            :param type:
                the protocol spoken on the transport, ``ISCP`` or ``eISCP``
            :param commands:
                :class:`~pyiscp.commands.CommandTable` used by :meth:`write`
        """
        self.log = logging.getLogger(__name__)
        self.transport = transport
        self.codec = get_codec(type)
        self.commands = commands
        self.buffer = bytearray()
        self.write_queue = WriteQueue(transport.write)
        self.last_read = None

    @classmethod
    def open(
        cls,
        device="discover",
        type=None,
        baud=DEFAULT_BAUD,
        port=DEFAULT_PORT,
        broadcast_source_ip="0.0.0.0",
        broadcast_dest_ip="255.255.255.255",
        commands=DEFAULT_COMMANDS,
    ):
        """Open a session to ``device``.

        :param device:
            A tty device name, ``hostname[:port]`` for TCP, or ``discover``
            to connect to the first receiver answering a discovery query.
        :param type:
            ``ISCP`` or ``eISCP``. Serial devices always use ``ISCP``,
            TCP connections default to ``eISCP``.
        :param baud:
            Baud rate of a serial device.
        :param port:
            TCP port, unless ``device`` carries one.
        :param broadcast_source_ip:
            Local address discovery broadcasts from.
        :param broadcast_dest_ip:
            Address discovery broadcasts to.
        :param commands:
            Command table to resolve phrases with.
        """
        if device == "discover":
            address = discover(
                broadcast_source_ip=broadcast_source_ip,
                broadcast_dest_ip=broadcast_dest_ip,
                port=port,
            )
            device = "{}:{}".format(address.ip, address.port)

        transport, default_type = open_transport(device, baud=baud, port=port)
        if default_type == "ISCP":
            type = "ISCP"
        return cls(transport, type=type or default_type, commands=commands)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self):
        self.transport.close()

    @property
    def type(self):
        return self.codec.type

    def write(self, command, argument=None, callback=None):
        """Queue a command for sending to the receiver.

        Without ``argument``, ``command`` is a phrase such as ``volume up``
        or a raw command such as ``MVLUP``; it is resolved through the
        command table. Otherwise ``command`` is the three character command.

        ``callback`` is called without arguments once the next message
        after this command has been read.
        """
        if argument is None:
            message = Message.from_string(self.commands.lookup(command))
        else:
            message = Message(command, argument)
        self.log.debug("queuing: %s", message)
        self.write_queue.enqueue(
            self.codec.encode(message.command, message.argument), callback
        )

    command = write

    def read(self, timeout=None):
        """Return the next :class:`~pyiscp.protocol.Message`.

        Blocks until a message arrives or ``timeout`` seconds have passed,
        in which case ``None`` is returned. Raises
        :class:`~pyiscp.exceptions.ConnectionClosed` if the transport was
        closed.
        """
        message = self._read_one()
        if message is not None:
            return message

        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            remaining = None
            if deadline is not None:
                remaining = max(deadline - time.monotonic(), 0)
            if self.transport.closed:
                raise ConnectionClosed("Transport has been closed")
            try:
                readable, _, _ = select.select([self.transport], [], [], remaining)
            except ValueError as error:
                # A socket closed behind our back reports fileno() -1
                raise ConnectionClosed("Transport has been closed") from error
            if not readable:
                return None

            data = self.transport.read(READ_SIZE)
            self.last_read = time.monotonic()
            if not data:
                raise ConnectionClosed("Connection closed by receiver")
            self.buffer += data

            message = self._read_one()
            if message is not None:
                return message

    def _read_one(self):
        if not self.buffer:
            return None
        self.log.debug("rbuf=%s", hexdump(self.buffer))
        message = self.codec.decode(self.buffer)
        if message is NEED_MORE_DATA:
            return None
        self.write_queue.frame_consumed()
        return message
