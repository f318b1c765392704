from abc import abstractmethod


class Conduit:
    """
    A conduit is an open, two-way channel over one medium. Bytes are written with write()
    and read with read(). A conduit is opened by its factory and can be closed exactly once;
    closing it again is harmless.
    """

    kind = None
    """ the transport kind, one of 'serial', 'tcp' or 'udp' """

    @property
    @abstractmethod
    def target(self):
        """ the underlying OS-level handle """
        raise NotImplementedError

    @property
    @abstractmethod
    def open(self) -> bool:
        """ determines if this conduit is open. When open, it can be read from and written to."""
        raise NotImplementedError

    @abstractmethod
    def write(self, data) -> int:
        """
        Writes the given bytes to the channel.
        :return: the number of bytes written
        """
        raise NotImplementedError

    @abstractmethod
    def read(self, size, timeout=None) -> bytes:
        """
        Reads up to size bytes, waiting at most timeout seconds.
        :return: the bytes read, which is empty if the timeout elapsed first.
        """
        raise NotImplementedError

    @abstractmethod
    def close(self):
        raise NotImplementedError

    @abstractmethod
    def describe(self) -> str:
        """ the identifier of the endpoint, such as a device name or host:port """
        raise NotImplementedError

    def __str__(self):
        return "%s(%s)" % (self.kind, self.describe())


class ConduitFactory:
    """
    A factory knows how to open a conduit given a connection configuration.
    """
    @abstractmethod
    def __call__(self, config) -> Conduit:
        """
        Opens the conduit described by config.
        Raises an exception from the underlying transport when the endpoint cannot be opened.
        """
        raise NotImplementedError()
