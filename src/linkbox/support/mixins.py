class CommonEqualityMixin(object):
    """  value equality for simple objects: same class and same attributes. """

    def __eq__(self, other):
        return isinstance(other, self.__class__) and self.__dict__ == other.__dict__

    def __ne__(self, other):
        return not self.__eq__(other)

    def __hash__(self):
        return hash((self.__class__, tuple(sorted(self.__dict__.items()))))


class ReprMixin:

    def __repr__(self):
        """
        outputs the class name and the attributes in key sorted order, e.g.
        TCPConfig(address='localhost:8080')
        """
        items = ", ".join("%s=%r" % (key, val) for key, val in sorted(self.__dict__.items()))
        return "%s(%s)" % (type(self).__name__, items)
