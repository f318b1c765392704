import logging
import socket

from linkbox.conduit.base import Conduit, ConduitFactory

logger = logging.getLogger(__name__)


def parse_address(address):
    """
    Splits a host:port address into a (host, port) tuple.
    IPv6 hosts are given in brackets.

    >>> parse_address('localhost:8080')
    ('localhost', 8080)
    >>> parse_address('[::1]:5000')
    ('::1', 5000)
    """
    host, sep, port = str(address).strip().rpartition(':')
    if not sep or not host:
        raise ValueError("address '%s' is not in the form host:port" % address)
    if host.startswith('[') and host.endswith(']'):
        host = host[1:-1]
    try:
        port = int(port)
    except ValueError:
        raise ValueError("address '%s' has an invalid port" % address) from None
    if not 0 < port < 65536:
        raise ValueError("address '%s' has a port out of range" % address)
    return host, port


class SocketConduit(Conduit):
    """
    A conduit that provides communication via a connected socket.
    :param sock The open, connected socket
    :param address The address the socket is connected to, as given in the configuration
    """
    def __init__(self, sock: socket.socket, address):
        self.sock = sock
        self.address = address
        self._closed = False

    @property
    def open(self) -> bool:
        return not self._closed and self.sock.fileno() != -1

    @property
    def target(self):
        return self.sock

    def write(self, data) -> int:
        self.sock.sendall(data)
        return len(data)

    def read(self, size, timeout=None) -> bytes:
        self.sock.settimeout(timeout)
        try:
            return self.sock.recv(size)
        except socket.timeout:
            return b''

    def close(self):
        if self._closed:
            return
        self._closed = True
        try:
            self._shutdown()
        finally:
            self.sock.close()

    def _shutdown(self):
        pass

    def describe(self):
        return self.address


class TCPConduit(SocketConduit):
    kind = "tcp"

    def _shutdown(self):
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass    # the peer may have closed the socket


class UDPConduit(SocketConduit):
    """ A datagram socket connected to a single peer. Each write is sent as one datagram. """
    kind = "udp"

    def write(self, data) -> int:
        return self.sock.send(data)


class TCPConduitFactory(ConduitFactory):
    """
    Dials a TCP stream connection to config.address.
    :param connect_timeout the time in seconds to wait for the connection to be established
    """
    def __init__(self, connect_timeout=5):
        self.connect_timeout = connect_timeout

    def __call__(self, config) -> TCPConduit:
        address = parse_address(config.address)
        sock = socket.create_connection(address, timeout=self.connect_timeout)
        sock.settimeout(None)
        logger.info("opened tcp socket to %s" % config.address)
        return TCPConduit(sock, config.address)


class UDPConduitFactory(ConduitFactory):
    """
    Creates a datagram socket connected to config.address. Nothing is sent to the peer,
    so opening succeeds for any resolvable address.
    """

    def __call__(self, config) -> UDPConduit:
        host, port = parse_address(config.address)
        family, type_, proto, _, sockaddr = socket.getaddrinfo(host, port, type=socket.SOCK_DGRAM)[0]
        sock = socket.socket(family, type_, proto)
        try:
            sock.connect(sockaddr)
        except OSError:
            sock.close()
            raise
        logger.info("opened udp socket to %s" % config.address)
        return UDPConduit(sock, config.address)
