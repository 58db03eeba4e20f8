"""Byte stream transports to a receiver: a serial device or a TCP socket."""
import logging
import re
import socket

import serial

__all__ = ("Transport", "SerialTransport", "TCPTransport", "open_transport", "DEFAULT_PORT")

DEFAULT_PORT = 60128
DEFAULT_BAUD = 9600


class Transport(object):
    """A duplex byte stream owned by a single session."""

    closed = False

    def read(self, size):
        """Return up to ``size`` bytes, ``b""`` once the stream is closed."""
        raise NotImplementedError

    def write(self, data):
        raise NotImplementedError

    def close(self):
        raise NotImplementedError

    def fileno(self):
        """File descriptor used to wait for readability."""
        raise NotImplementedError


class SerialTransport(Transport):
    """ISCP over an RS-232 port: 9600 baud, 8-N-1, no flow control."""

    def __init__(self, device, baud=DEFAULT_BAUD):
        self.log = logging.getLogger(__name__)
        self.device = device
        self.log.debug("Opening %s as serial port", device)
        self._serial = serial.Serial(
            port=device,
            baudrate=baud,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            xonxoff=False,
            rtscts=False,
            timeout=0,
        )

    def read(self, size):
        if not self._serial.is_open:
            return b""
        return self._serial.read(size)

    def write(self, data):
        self._serial.write(data)
        self._serial.flush()

    def close(self):
        self.closed = True
        self._serial.close()

    def fileno(self):
        return self._serial.fileno()


class TCPTransport(Transport):
    """eISCP over a TCP connection."""

    def __init__(self, host, port=DEFAULT_PORT, timeout=None):
        self.log = logging.getLogger(__name__)
        match = re.match(r"^(.*):(\d+)$", host)
        if match:
            host, port = match.group(1), int(match.group(2))
        self.host = host
        self.port = port
        self.log.debug("Opening %s:%d as tcp socket", host, port)
        try:
            self._socket = socket.create_connection((host, port), timeout=timeout)
        except OSError as error:
            raise ConnectionError(
                "TCP connect to '{}:{}' failed: {}".format(host, port, error)
            ) from error
        self._socket.settimeout(None)

    def read(self, size):
        return self._socket.recv(size)

    def write(self, data):
        self._socket.sendall(data)

    def close(self):
        self.closed = True
        self._socket.close()

    def fileno(self):
        return self._socket.fileno()


def is_serial_device(device):
    """Device names containing a path separator are serial ports."""
    return re.search(r"[/\\]", device) is not None


def open_transport(device, baud=DEFAULT_BAUD, port=DEFAULT_PORT):
    """Open ``device`` and return ``(transport, protocol type)``.

    ``device`` is either a tty device name or ``hostname[:port]``.
    """
    if is_serial_device(device):
        return SerialTransport(device, baud=baud), "ISCP"
    return TCPTransport(device, port=port), "eISCP"
