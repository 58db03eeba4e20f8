"""Module containing the connection wrapper for the AVR interface."""
import asyncio
import logging

from pyiscp.commands import DEFAULT_COMMANDS
from pyiscp.discovery import async_discover
from pyiscp.protocol import AVR
from pyiscp.transport import DEFAULT_PORT

__all__ = ("Connection",)


class Connection:
    """Connection handler to maintain network connection for AVR Protocol."""

    def __init__(self):
        """Instantiate the Connection object."""
        self.log = logging.getLogger(__name__)

    @classmethod
    async def create(
        cls,
        host="localhost",
        port=DEFAULT_PORT,
        auto_reconnect=True,
        max_retry_interval=300,
        loop=None,
        protocol_class=AVR,
        update_callback=None,
        connect_callback=None,
        disconnect_callback=None,
        auto_connect=True,
        commands=DEFAULT_COMMANDS,
    ):
        """Initiate a connection to a specific device.

        Here is where we supply the host and port and callback callables we
        expect for this AVR class object.

        :param host:
            Hostname or IP address of the device
        :param port:
            TCP port number of the device
        :param auto_reconnect:
            Should the Connection try to automatically reconnect if needed?
        :param max_retry_interval:
            Maximum time between reconnects when auto reconnect is enabled
        :param loop:
            asyncio.loop for async operation
        :param update_callback
            This function is called with every message the AVR sends
        :param connect_callback
            This function is called when the connection with the AVR is established
        :param disconnect_callback
            This function is called when the connection with the AVR is lost
        :param auto_connect
            Should the Connection try to automatically connect?
        :param commands
            Command table used to resolve phrases passed to send()

        :type host:
            str
        :type port:
            int
        :type auto_reconnect:
            boolean
        :param max_retry_interval:
            int
        :type loop:
            asyncio.loop
        :type update_callback:
            callable
        :type connect_callback:
            callable
        :param disconnect_callback
            callable
        :type auto_connect:
            boolean
        """
        assert port >= 0, "Invalid port value: %r" % (port)
        conn = cls()

        conn.host = host
        conn.port = port
        conn._loop = loop or asyncio.get_running_loop()
        conn._retry_interval = 1
        conn._closing = False
        conn._halted = False
        conn._auto_reconnect = auto_reconnect
        conn._max_retry_interval = max_retry_interval

        def _disconnect_callback():
            """Function callback for Protocol class when connection is lost."""
            if conn._auto_reconnect and not conn._closing:
                asyncio.ensure_future(conn._reconnect(), loop=conn._loop)

            if disconnect_callback:
                conn._loop.call_soon(disconnect_callback, conn.host)

        def _update_callback(message):
            """Function callback for Protocol class when the AVR sends a message."""
            if update_callback:
                conn._loop.call_soon(update_callback, message, conn.host)

        def _connect_callback():
            """Function callback for Protocol class when connection is established."""
            if connect_callback:
                conn._loop.call_soon(connect_callback, conn.host)

        conn.protocol = protocol_class(
            loop=conn._loop,
            update_callback=_update_callback,
            connect_callback=_connect_callback,
            connection_lost_callback=_disconnect_callback,
            commands=commands,
        )

        if auto_connect:
            await conn._reconnect()

        return conn

    @classmethod
    async def discover(
        cls,
        host=None,
        port=DEFAULT_PORT,
        timeout=10,
        **kwargs
    ):
        """Discover an Onkyo Network Receiver on the network.

        A Connection to the first receiver answering the discovery query is
        returned. The connection is not yet established, this should be done
        manually by calling connect on the Connection.

        :param host:
            If specified, the discovery query is only sent to this host.
            Else, the available broadcast addresses are used.
        :param port:
            UDP port number the discovery query is sent to
        :param timeout
            Number of seconds to wait for a reply
        :param kwargs
            Passed on to create()

        :raises DiscoveryTimeout:
            if no receiver answered in time
        """
        address = await async_discover(host=host, port=port, timeout=timeout)
        kwargs["auto_connect"] = False
        return await cls.create(host=address.ip, port=address.port, **kwargs)

    def send(self, msg, callback=None):
        """Queue a command for the receiver, see AVR.command()."""
        self.protocol.command(msg, callback)

    def _get_retry_interval(self):
        return self._retry_interval

    def _reset_retry_interval(self):
        self._retry_interval = 1

    def _increase_retry_interval(self):
        self._retry_interval = min(self._max_retry_interval, 1.5 * self._retry_interval)

    async def _reconnect(self):
        while True:
            try:
                if self._halted:
                    await asyncio.sleep(2)
                else:
                    self.log.debug(
                        "Connecting to Network Receiver at %s:%d", self.host, self.port
                    )
                    await self._loop.create_connection(
                        lambda: self.protocol, self.host, self.port
                    )
                    self._reset_retry_interval()
                    return

            except OSError:
                self._increase_retry_interval()
                interval = self._get_retry_interval()
                self.log.debug("Connecting failed, retrying in %i seconds", interval)
                await asyncio.sleep(interval)

    async def connect(self):
        """Establish the AVR device connection"""
        if not self.protocol.transport:
            await self._reconnect()

    def close(self):
        """Close the AVR device connection and don't try to reconnect."""
        self.log.info("Closing connection to Network Receiver")
        self._closing = True
        if self.protocol.transport:
            self.protocol.transport.close()

    def halt(self):
        """Close the AVR device connection and wait for a resume() request."""
        self.log.info("Halting connection to Network Receiver")
        self._halted = True
        if self.protocol.transport:
            self.protocol.transport.close()

    def resume(self):
        """Resume the AVR device connection if we have been halted."""
        self.log.info("Resuming connection to Network Receiver")
        self._halted = False
