"""Tests for the serial and TCP transports."""
import socket

import pytest

from pyiscp import transport as transport_module
from pyiscp.transport import SerialTransport, TCPTransport, is_serial_device, open_transport


class FakeSerial:

    instances = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.is_open = True
        self.written = []
        FakeSerial.instances.append(self)

    def read(self, size):
        return b"!1PWR01\r\n"[:size]

    def write(self, data):
        self.written.append(data)

    def flush(self):
        pass

    def close(self):
        self.is_open = False

    def fileno(self):
        return 42


@pytest.fixture
def fake_serial(monkeypatch):
    FakeSerial.instances = []
    monkeypatch.setattr(transport_module.serial, "Serial", FakeSerial)
    return FakeSerial


def test_serial_settings(fake_serial):
    transport = SerialTransport("/dev/ttyUSB0")
    settings = fake_serial.instances[0].kwargs
    assert settings["port"] == "/dev/ttyUSB0"
    assert settings["baudrate"] == 9600
    assert settings["bytesize"] == 8
    assert settings["parity"] == "N"
    assert settings["stopbits"] == 1
    assert transport.fileno() == 42


def test_serial_read_write_close(fake_serial):
    transport = SerialTransport("/dev/ttyUSB0", baud=19200)
    assert fake_serial.instances[0].kwargs["baudrate"] == 19200
    transport.write(b"!1PWRQSTN\r\n")
    assert fake_serial.instances[0].written == [b"!1PWRQSTN\r\n"]
    assert transport.read(2048) == b"!1PWR01\r\n"
    transport.close()
    assert transport.read(2048) == b""


@pytest.fixture
def server():
    sock = socket.socket()
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    yield sock
    sock.close()


def test_tcp_port_suffix(server):
    port = server.getsockname()[1]
    transport = TCPTransport("127.0.0.1:{}".format(port), port=1)
    peer, _ = server.accept()
    with peer:
        assert transport.host == "127.0.0.1"
        assert transport.port == port
        transport.write(b"ping")
        assert peer.recv(4) == b"ping"
        peer.sendall(b"pong")
        assert transport.read(4) == b"pong"
        peer.close()
        assert transport.read(4) == b""
    transport.close()


def test_tcp_default_port(server):
    port = server.getsockname()[1]
    transport = TCPTransport("127.0.0.1", port=port)
    assert transport.port == port
    transport.close()


def test_tcp_connect_failure(server):
    port = server.getsockname()[1]
    server.close()
    with pytest.raises(ConnectionError) as excinfo:
        TCPTransport("127.0.0.1", port=port)
    assert "127.0.0.1:{}".format(port) in str(excinfo.value)


def test_is_serial_device():
    assert is_serial_device("/dev/ttyS0")
    assert is_serial_device("\\\\.\\COM3")
    assert not is_serial_device("receiver.local:60128")


def test_open_transport(fake_serial, server):
    transport, type = open_transport("/dev/ttyS0")
    assert isinstance(transport, SerialTransport)
    assert type == "ISCP"

    transport, type = open_transport("127.0.0.1", port=server.getsockname()[1])
    assert isinstance(transport, TCPTransport)
    assert type == "eISCP"
    transport.close()
