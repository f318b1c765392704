"""
The conduit package provides an abstraction of a single open channel to an endpoint.
Concrete implementations are serial ports, TCP sockets and connected UDP sockets.

Serial port enumeration lists the serial devices currently present on the host.
"""
