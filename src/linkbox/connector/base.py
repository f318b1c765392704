"""
Errors raised by the connection manager, and the event topics it fires.
"""

SERIAL = "serial"
TCP = "tcp"
UDP = "udp"

transport_kinds = (SERIAL, TCP, UDP)

SERIAL_CONNECTED = "serial:connected"
SERIAL_DISCONNECTED = "serial:disconnected"
SERIAL_DATA = "serial:data"


class ConnectorError(Exception):
    """ Indicates an error condition with a connection. """


class OpenFailedError(ConnectorError):
    """ The device or address could not be opened, or the OS rejected the parameters. """


class NotConnectedError(ConnectorError):
    """ Indicates there is no open connection when one is required. """


class WrongTransportError(ConnectorError):
    """ The open connection is of a different kind than the one requested. """


class UnknownTransportKindError(ConnectorError):
    """ The transport kind is not one of serial, tcp or udp. """


class WriteFailedError(ConnectorError):
    """ The transport reported an error while writing. """


class CloseFailedError(ConnectorError):
    """ The transport reported an error while closing. """


class EnumerationFailedError(ConnectorError):
    """ The serial ports could not be listed. """
