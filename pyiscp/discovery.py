"""Locate receivers on the local network with the eISCP discovery broadcast.

Only the first receiver to answer is reported. Networks with several
receivers should pass the wanted device explicitly instead.
"""
import asyncio
import logging
import re
import socket
from collections import namedtuple

import netifaces

from pyiscp.exceptions import DiscoveryTimeout, ProtocolError
from pyiscp.protocol import NEED_MORE_DATA, ISCPMessage, eISCPPacket
from pyiscp.transport import DEFAULT_PORT

__all__ = ("DeviceAddress", "DiscoveryProtocol", "discover", "async_discover", "parse_info")

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10

DeviceAddress = namedtuple("DeviceAddress", ("ip", "port"))

# 4953 4350 0000 0010 0000 000b 0100 0000  ISCP............
# 2178 4543 4e51 5354 4e0d 0a              !xECNQSTN\r\n
DISCOVERY_PACKET = eISCPPacket.wrap(ISCPMessage.encode("ECN", "QSTN", destination="x"))


def parse_info(data):
    """Parse the datagram a receiver sends in reply to the discovery query.

    The reply argument looks something like this:
    TX-NR609/60128/DX/0009b0123456

    Raises :class:`ProtocolError` if ``data`` is not a complete eISCP
    package or carries no control port.
    """
    message = eISCPPacket.decode(bytearray(data))
    if message is NEED_MORE_DATA:
        raise ProtocolError("Truncated discovery reply: {!r}".format(data))

    info = re.search(r'''
        (?P<model_name>[^/]*)/
        (?P<iscp_port>\d{5})/
        (?P<area_code>..)/
        (?P<identifier>[0-9a-f]{12})
    ''', message.argument, re.VERBOSE | re.IGNORECASE)

    if info is None:
        raise ProtocolError(
            "No control port in discovery reply: {}".format(message)
        )
    return info.groupdict()


def discover(
    broadcast_source_ip="0.0.0.0",
    broadcast_dest_ip="255.255.255.255",
    port=DEFAULT_PORT,
    timeout=DEFAULT_TIMEOUT,
):
    """Broadcast a discovery query and return the first receiver to answer.

    :param broadcast_source_ip:
        Local address to send from. Multi-homed hosts may need to pick the
        right interface.
    :param broadcast_dest_ip:
        Address to broadcast the query to.
    :param port:
        UDP port receivers listen on for discovery.
    :param timeout:
        Seconds to wait for a reply.

    :rtype: DeviceAddress
    """
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.bind((broadcast_source_ip, 0))
        log.debug("Broadcast discovery packet to %s:%d", broadcast_dest_ip, port)
        sock.sendto(DISCOVERY_PACKET, (broadcast_dest_ip, port))

        sock.settimeout(timeout)
        try:
            data, sender = sock.recvfrom(2048)
        except socket.timeout:
            raise DiscoveryTimeout(
                "No reply to discovery within {} seconds".format(timeout)
            ) from None

    info = parse_info(data)
    address = DeviceAddress(sender[0], int(info["iscp_port"]))
    log.info("%s discovered at %s:%d", info["model_name"], address.ip, address.port)
    return address


class DiscoveryProtocol(asyncio.DatagramProtocol):

    def __init__(self, target, future):
        """Protocol handler that handles AVR discovery by broadcasting a discovery packet.

            :param target:
                the target (host, port) to broadcast the discovery packet over
            :param future:
                resolved with the :class:`DeviceAddress` of the first reply

            :type target:
                tuple
            :type future:
                asyncio.Future
        """
        self.log = logging.getLogger(__name__)
        self._target = target
        self._future = future
        self.transport = None

    def connection_made(self, transport):
        """Discovery connection created, broadcast discovery packet."""
        self.transport = transport
        self.broadcast_discovery_packet()

    def datagram_received(self, data, addr):
        """Received response from device."""
        if self._future.done():
            return
        try:
            info = parse_info(data)
        except ProtocolError as error:
            self._future.set_exception(error)
            return
        self.log.info("%s discovered at %s", info["model_name"], addr)
        self._future.set_result(DeviceAddress(addr[0], int(info["iscp_port"])))

    def broadcast_discovery_packet(self):
        """Broadcast discovery packets over the target."""
        self.log.debug("Broadcast discovery packet to %s", self._target)
        self.transport.sendto(DISCOVERY_PACKET, self._target)

    def close(self):
        """Close the discovery connection."""
        self.log.debug("Closing broadcast discovery connection")
        if self.transport:
            self.transport.close()


def _broadcast_targets(host, port):
    """Yield (local address, target) pairs to send the discovery query on."""
    if host:
        yield "0.0.0.0", (host, port)
        return

    # Iterate over all network interfaces to find broadcast addresses
    for interface in netifaces.interfaces():
        for ifaddr in netifaces.ifaddresses(interface).get(netifaces.AF_INET, []):
            if "addr" in ifaddr and "broadcast" in ifaddr:
                yield ifaddr["addr"], (ifaddr["broadcast"], port)


async def async_discover(host=None, port=DEFAULT_PORT, timeout=DEFAULT_TIMEOUT):
    """Discover a receiver from the running event loop.

    :param host:
        If specified, the query is sent to this host only. Else, the
        broadcast address of every IPv4 interface is used.
    :param port:
        UDP port receivers listen on for discovery.
    :param timeout:
        Seconds to wait for a reply.

    :rtype: DeviceAddress
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()
    protocols = []

    try:
        for local_addr, target in _broadcast_targets(host, port):
            protocol = DiscoveryProtocol(target, future)
            try:
                await loop.create_datagram_endpoint(
                    lambda: protocol,
                    local_addr=(local_addr, 0),
                    allow_broadcast=True,
                )
            except PermissionError:
                continue
            protocols.append(protocol)

        try:
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            raise DiscoveryTimeout(
                "No reply to discovery within {} seconds".format(timeout)
            ) from None
    finally:
        for protocol in protocols:
            protocol.close()
