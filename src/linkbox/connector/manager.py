import logging
import threading

from linkbox.conduit.serial_conduit import SerialConduitFactory, SerialEnumerator
from linkbox.conduit.socket_conduit import TCPConduitFactory, UDPConduitFactory
from linkbox.connector.base import SERIAL, TCP, UDP, SERIAL_CONNECTED, SERIAL_DISCONNECTED, transport_kinds, \
    OpenFailedError, NotConnectedError, WrongTransportError, UnknownTransportKindError, WriteFailedError, \
    CloseFailedError, EnumerationFailedError
from linkbox.connector.read_loop import ReadLoop, RUNNING
from linkbox.support.events import EventSource

logger = logging.getLogger(__name__)


def default_factories(read_timeout=0.1, connect_timeout=5):
    """ the conduit factories for each transport kind """
    return {
        SERIAL: SerialConduitFactory(read_timeout=read_timeout),
        TCP: TCPConduitFactory(connect_timeout=connect_timeout),
        UDP: UDPConduitFactory(),
    }


class ConnectionManager:
    """
    Owns at most one open conduit, which may be a serial port, a TCP socket or a UDP socket.

    Connecting replaces any open conduit: the previous one is closed first, and errors closing it
    are logged and ignored. A serial conduit gets a ReadLoop that fires (SERIAL_DATA, bytes)
    for data received. TCP and UDP conduits are write-only here; nothing reads from them.

    Connect, write and close calls are serialized by a lock. The read loop does not take the lock;
    it is stopped before its conduit is closed.

    Events fired, as (topic, payload):
        SERIAL_CONNECTED - payload is the device name
        SERIAL_DATA - payload is the bytes received
        SERIAL_DISCONNECTED - payload is None

    Event handlers for SERIAL_DATA run on the read loop thread and should not call back into the
    manager. Use a QueuedEventSource to consume the events on another thread.

    :param events: the event source to fire events to. An EventSource is created if not given.
    :param notify: a callable(topic, payload) to register as a handler on events.
    :param factories: a map from transport kind to a callable that opens a conduit from a config.
        These replace the default factories for the given kinds.
    :param enumerator: lists the serial ports. Defaults to a SerialEnumerator.
    :param read_timeout: the time in seconds each read by the read loop waits for data
    :param read_buffer_size: the maximum number of bytes fetched by each read
    :param stop_timeout: how long to wait for the read loop thread to finish when stopping it
    """

    def __init__(self, events=None, notify=None, factories=None, enumerator=None,
                 read_timeout=0.1, read_buffer_size=1024, stop_timeout=2.0):
        self.events = events if events is not None else EventSource()
        if notify is not None:
            self.events.add(notify)
        self.factories = default_factories(read_timeout)
        if factories:
            self.factories.update(factories)
        self.enumerator = enumerator if enumerator is not None else SerialEnumerator()
        self.read_timeout = read_timeout
        self.read_buffer_size = read_buffer_size
        self.stop_timeout = stop_timeout
        self._lock = threading.Lock()
        self._conduit = None
        self._read_loop = None

    @classmethod
    def from_conf(cls, conf, **kwargs):
        """
        Creates a manager from a validated configuration, as returned by linkbox.config.config.load_settings().
        """
        read_loop = conf['read_loop']
        kwargs.setdefault('factories', default_factories(read_loop['read_timeout'], conf['tcp']['connect_timeout']))
        kwargs.setdefault('read_timeout', read_loop['read_timeout'])
        kwargs.setdefault('read_buffer_size', read_loop['buffer_size'])
        return cls(**kwargs)

    @property
    def session(self):
        """ the open conduit, or None """
        return self._conduit

    @property
    def connected(self) -> bool:
        return self._conduit is not None

    @property
    def kind(self):
        """ the transport kind of the open conduit, or None if nothing is open """
        conduit = self._conduit
        return conduit.kind if conduit is not None else None

    @property
    def reading(self) -> bool:
        loop = self._read_loop
        return loop is not None and loop.state == RUNNING

    def connect_serial(self, config):
        """
        Opens the serial port described by config, replacing any open conduit, and starts reading from it.
        Raises OpenFailedError if the port cannot be opened, leaving nothing open.
        An exception from a handler of the connected event is logged and does not fail the connect.
        """
        with self._lock:
            conduit = self._replace(SERIAL, config)
            try:
                self.events.fire(SERIAL_CONNECTED, conduit.describe())
            except Exception as e:
                logger.exception("error notifying connection to %s, ignored: %s" % (conduit.describe(), e))
            self._start_reading(conduit)

    def connect_tcp(self, config):
        """ Dials config.address over TCP, replacing any open conduit. """
        with self._lock:
            self._replace(TCP, config)

    def connect_udp(self, config):
        """ Opens a UDP socket connected to config.address, replacing any open conduit. """
        with self._lock:
            self._replace(UDP, config)

    def write(self, data):
        """
        Writes the bytes to the open conduit, whatever its kind.
        :return: the number of bytes written
        """
        with self._lock:
            conduit = self._conduit
            if conduit is None:
                raise NotConnectedError("no connection is open")
            return self._write(conduit, data)

    def send_data(self, kind, data):
        """
        Writes the bytes to the open conduit, which must be of the given kind.
        :param kind: 'serial', 'tcp' or 'udp'
        """
        if kind not in transport_kinds:
            raise UnknownTransportKindError("unknown transport kind: %s" % kind)
        with self._lock:
            conduit = self._conduit
            if conduit is None:
                raise NotConnectedError("%s is not connected" % kind)
            if conduit.kind != kind:
                raise WrongTransportError("cannot send via %s, the open connection is %s" % (kind, conduit.kind))
            return self._write(conduit, data)

    def close_serial(self):
        """
        Stops reading and closes the serial port. Does nothing if no serial port is open.
        Raises CloseFailedError if the port reports an error while closing. The port is
        forgotten regardless.
        """
        with self._lock:
            conduit = self._conduit
            if conduit is None or conduit.kind != SERIAL:
                return
            self._stop_reading()
            self._conduit = None
            try:
                conduit.close()
            except OSError as e:
                logger.warning("error closing serial port %s: %s" % (conduit.describe(), e))
                raise CloseFailedError("could not close serial port %s: %s" % (conduit.describe(), e)) from e
            logger.info("closed serial port %s" % conduit.describe())
            self.events.fire(SERIAL_DISCONNECTED, None)

    def close(self):
        """ Closes whatever conduit is open. Errors from closing are logged. """
        with self._lock:
            self._release()

    def list_serial_ports(self):
        """
        Lists the serial ports present. The port of the open serial conduit, if any, is marked as open.
        :return: a list of SerialPortDescriptor
        """
        try:
            ports = self.enumerator.list()
        except (OSError, ValueError) as e:
            raise EnumerationFailedError("could not list serial ports: %s" % e) from e
        with self._lock:
            conduit = self._conduit
            device = conduit.describe() if conduit is not None and conduit.kind == SERIAL else None
        for port in ports:
            port.is_open = device is not None and port.device == device
        return ports

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _replace(self, kind, config):
        """ closes any open conduit and opens a new one from config. Must be called with the lock held. """
        self._release()
        try:
            conduit = self.factories[kind](config)
        except (OSError, ValueError) as e:
            logger.warning("error opening %s %s: %s" % (kind, config.endpoint, e))
            raise OpenFailedError("could not open %s %s: %s" % (kind, config.endpoint, e)) from e
        self._conduit = conduit
        return conduit

    def _release(self):
        conduit = self._conduit
        if conduit is None:
            return
        self._stop_reading()
        self._conduit = None
        try:
            conduit.close()
            logger.info("closed %s" % conduit)
        except OSError as e:
            logger.warning("error closing %s, ignored: %s" % (conduit, e))
        if conduit.kind == SERIAL:
            self.events.fire(SERIAL_DISCONNECTED, None)

    def _write(self, conduit, data):
        if isinstance(data, (int, str)):
            raise TypeError("data must be bytes-like or a sequence of byte values, not %s" % type(data).__name__)
        data = bytes(data)
        try:
            return conduit.write(data)
        except OSError as e:
            raise WriteFailedError("could not write to %s: %s" % (conduit, e)) from e

    def _start_reading(self, conduit):
        loop = ReadLoop(conduit, self.events, read_timeout=self.read_timeout, buffer_size=self.read_buffer_size)
        self._read_loop = loop
        loop.start()

    def _stop_reading(self):
        loop = self._read_loop
        if loop is None:
            return
        self._read_loop = None
        loop.stop(self.stop_timeout)
