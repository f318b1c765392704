"""
Connection configurations. Each describes the endpoint to open for one kind of transport.
"""
from linkbox.connector.base import SERIAL, TCP, UDP
from linkbox.support.mixins import CommonEqualityMixin, ReprMixin


class SerialConfig(CommonEqualityMixin, ReprMixin):
    """
    Describes a serial port and its line settings.
    :param device: the OS port name (COM3, /dev/ttyUSB0) or a pyserial URL
    :param baudrate: the baud rate, e.g. 9600
    :param databits: 5, 6, 7 or 8
    :param stopbits: "1", "1.5" or "2"
    :param parity: "N", "O", "E", "M" or "S"
    :param flow_control: "none", "hardware" or "software". Recorded only; it is not applied to the port.
    """
    kind = SERIAL

    def __init__(self, device, baudrate=9600, databits=8, stopbits="1", parity="N", flow_control="none"):
        self.device = device
        self.baudrate = baudrate
        self.databits = databits
        self.stopbits = stopbits
        self.parity = parity
        self.flow_control = flow_control

    @property
    def endpoint(self):
        return self.device

    @classmethod
    def from_conf(cls, conf, device=None):
        """
        Builds a config from a validated [serial] configuration section.
        :param device: overrides the device given in the section
        """
        return cls(device if device is not None else conf.get('device'),
                   baudrate=conf['baudrate'], databits=conf['databits'],
                   stopbits=conf['stopbits'], parity=conf['parity'],
                   flow_control=conf['flowcontrol'])


class SocketConfig(CommonEqualityMixin, ReprMixin):
    """
    :param address: the remote endpoint as host:port
    """
    kind = None

    def __init__(self, address):
        self.address = address

    @property
    def endpoint(self):
        return self.address

    @classmethod
    def from_conf(cls, conf, address=None):
        return cls(address if address is not None else conf.get('address'))


class TCPConfig(SocketConfig):
    kind = TCP


class UDPConfig(SocketConfig):
    kind = UDP
