from zope.interface import implementer

from .interfaces import IProfilingContext


@implementer(IProfilingContext)
class ConnectionContext(object):
    """
    Profiling context for requests sent by a
    :py:class:`.connection.Connection`.
    """
    type = 'connection'

    def __init__(self, method):
        self.method = method
        self.exception = None

    def set_exception(self, exc):
        self.exception = exc
        return self

    def as_dict(self):
        return {
            'method': self.method,
            'exception': self.exception,
        }
