from zope.interface import (
    Interface,
    Attribute,
    )


class IProfilingContext(Interface):
    """
    Information handed to a profiler alongside a token.
    """

    type = Attribute("Kind of operation being profiled")
    method = Attribute("Name of the method that issued the request")
    exception = Attribute("The exception that ended the request, if any")

    def set_exception(exc):
        """
        Record the exception that ended the profiled operation.
        """

    def as_dict():
        """
        Return the context as a ``{'method': ..., 'exception': ...}`` dict.
        """


class IProfiler(Interface):
    """
    Profiler sink. Register an implementation as a utility to have it attached
    to the connection built by ``includeme``.
    """

    def begin(token, context):
        """
        Start measuring the operation identified by ``token``.
        """

    def end(token, context):
        """
        Stop measuring the operation identified by ``token``.
        """
