"""
Implements a conduit over a serial port, and enumeration of the serial ports on this host.
"""

import logging

import serial
from serial.tools import list_ports

from linkbox.conduit.base import Conduit, ConduitFactory
from linkbox.support.mixins import CommonEqualityMixin, ReprMixin

logger = logging.getLogger(__name__)

_stop_bits = {
    1.0: serial.STOPBITS_ONE,
    1.5: serial.STOPBITS_ONE_POINT_FIVE,
    2.0: serial.STOPBITS_TWO,
}

_parity = {
    "N": serial.PARITY_NONE,
    "O": serial.PARITY_ODD,
    "E": serial.PARITY_EVEN,
    "M": serial.PARITY_MARK,
    "S": serial.PARITY_SPACE,
    "NONE": serial.PARITY_NONE,
    "ODD": serial.PARITY_ODD,
    "EVEN": serial.PARITY_EVEN,
    "MARK": serial.PARITY_MARK,
    "SPACE": serial.PARITY_SPACE,
}


def map_stop_bits(stop_bits):
    """
    Maps a configured stop bits value to the pyserial constant. Unrecognized values map to one stop bit.

    >>> map_stop_bits("1.5")
    1.5
    >>> map_stop_bits("3")
    1
    """
    try:
        return _stop_bits.get(float(stop_bits), serial.STOPBITS_ONE)
    except (TypeError, ValueError):
        return serial.STOPBITS_ONE


def map_parity(parity):
    """
    Maps a configured parity to the pyserial constant. Both the short codes (N, O, E, M, S) and
    the names (none, odd, even, mark, space) are recognized. Anything else maps to no parity.

    >>> map_parity("even")
    'E'
    >>> map_parity("?")
    'N'
    >>> map_parity("oops")
    'N'
    """
    code = parity.strip().upper() if isinstance(parity, str) else ""
    return _parity.get(code, serial.PARITY_NONE)


class SerialConduit(Conduit):
    """
    A conduit that provides comms via a serial port.
    """
    kind = "serial"

    def __init__(self, ser: serial.SerialBase, device=None):
        self.ser = ser
        self.device = device if device is not None else ser.port

    @property
    def target(self):
        return self.ser

    @property
    def open(self) -> bool:
        return self.ser.is_open

    def write(self, data) -> int:
        return self.ser.write(data)

    def read(self, size, timeout=None) -> bytes:
        if timeout is not None and self.ser.timeout != timeout:
            self.ser.timeout = timeout
        return self.ser.read(size)

    def close(self):
        if self.ser.is_open:
            self.ser.close()

    def describe(self):
        return self.device


class SerialConduitFactory(ConduitFactory):
    """
    Opens a serial conduit from a SerialConfig.
    The device may be an OS port name or any URL understood by `serial.serial_for_url`, e.g. loop://

    The flow control setting is not applied to the port.
    """

    def __init__(self, read_timeout=0.1, write_timeout=None):
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout

    def __call__(self, config) -> SerialConduit:
        ser = serial.serial_for_url(config.device,
                                    baudrate=config.baudrate,
                                    bytesize=int(config.databits),
                                    stopbits=map_stop_bits(config.stopbits),
                                    parity=map_parity(config.parity),
                                    timeout=self.read_timeout,
                                    write_timeout=self.write_timeout)
        logger.info("opened serial port %s at %s baud" % (config.device, config.baudrate))
        return SerialConduit(ser, config.device)


class SerialPortDescriptor(CommonEqualityMixin, ReprMixin):
    """
    Describes a serial port present on this host.
    :param device: the device identifier, e.g. COM3 or /dev/ttyUSB0
    :param description: a human readable description. Falls back to the device name.
    :param is_open: True if this is the port of the currently open serial conduit
    """
    def __init__(self, device, description=None, is_open=False, hwid=None):
        self.device = device
        self.description = description or device
        self.is_open = is_open
        self.hwid = hwid


def serial_port_info():
    """
    :return: a tuple of pyserial ListPortInfo instances for the ports presently available.
    """
    return tuple(list_ports.comports())


def serial_ports():
    """
    Returns a generator for all available serial port device names.
    """
    for port in serial_port_info():
        yield port.device


def describe_port(info):
    """
    Best-effort human readable description of a port.
    pyserial reports 'n/a' when the platform has no description.
    """
    description = getattr(info, "description", None)
    if not description or description == "n/a":
        return info.device
    return description


class SerialEnumerator:
    """ Lists the serial ports currently available. Each call enumerates the ports afresh. """

    def list(self):
        """
        :return: a list of SerialPortDescriptor, sorted by device name. None are marked as open.
        """
        ports = [SerialPortDescriptor(info.device, describe_port(info), hwid=_hwid(info))
                 for info in self._fetch_ports()]
        return sorted(ports, key=lambda p: p.device)

    def _fetch_ports(self):
        return serial_port_info()


def _hwid(info):
    hwid = getattr(info, "hwid", None)
    return None if hwid == "n/a" else hwid
