import socket

import pytest

from pyiscp.transport import Transport


class PairTransport(Transport):
    """Transport over one end of a socket pair, recording every write."""

    def __init__(self, sock):
        self.sock = sock
        self.written = []
        self.closed = False

    def read(self, size):
        return self.sock.recv(size)

    def write(self, data):
        self.written.append(data)

    def close(self):
        self.closed = True
        self.sock.close()

    def fileno(self):
        return self.sock.fileno()


@pytest.fixture
def socket_pair():
    ours, receiver = socket.socketpair()
    yield ours, receiver
    ours.close()
    receiver.close()


@pytest.fixture
def transport(socket_pair):
    return PairTransport(socket_pair[0])


@pytest.fixture
def receiver(socket_pair):
    """The receiver's end of the transport."""
    return socket_pair[1]
