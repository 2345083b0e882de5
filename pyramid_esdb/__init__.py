# Defined before the submodule imports: connection.py reads it.
__version__ = '0.1.dev0'

from pyramid.settings import asbool, aslist
from pyramid.threadlocal import get_current_registry

from .command import Command
from .connection import Connection
from .exceptions import ConfigError
from .interfaces import IProfiler


def _number(settings, key, cast):
    value = settings.get(key)
    if value is None or value == '':
        return None
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise ConfigError('Invalid value for %s: %r' % (key, value))


def connection_from_config(settings, prefix='elastic.'):
    """
    Instantiate and configure an Elasticsearch connection from settings.

    In typical Pyramid usage, you shouldn't use this directly: instead, just
    include ``pyramid_esdb`` and use the :py:func:`get_connection` function
    to get access to the shared :py:class:`.connection.Connection` instance.
    """
    nodes = [{'http_address': address}
             for address in aslist(settings.get(prefix + 'nodes', ''))]

    auth = None
    username = settings.get(prefix + 'username')
    password = settings.get(prefix + 'password')
    if username or password:
        auth = {'username': username, 'password': password}

    dsl_version = _number(settings, prefix + 'dsl_version', int)

    transport_options = {}
    if prefix + 'verify' in settings:
        transport_options['verify'] = asbool(settings[prefix + 'verify'])

    return Connection(
        nodes=nodes or None,
        autodetect_cluster=asbool(
            settings.get(prefix + 'autodetect_cluster', True)),
        default_protocol=settings.get(prefix + 'default_protocol', 'http'),
        dsl_version=dsl_version if dsl_version is not None else 8,
        auth=auth,
        timeout=_number(settings, prefix + 'timeout', float),
        data_timeout=_number(settings, prefix + 'data_timeout', float),
        transport_options=transport_options)


def includeme(config):
    registry = config.registry
    settings = registry.settings

    connection = connection_from_config(settings)
    connection.profiler = registry.queryUtility(IProfiler)

    registry.pyramid_esdb_connection = connection


def get_connection(request):
    """
    Get the registered Elasticsearch connection. The supplied argument can be
    either a ``Request`` instance or a ``Registry``.
    """
    registry = getattr(request, 'registry', None)
    if registry is None:
        registry = request
    if not hasattr(registry, 'pyramid_esdb_connection'):
        registry = get_current_registry()
    return registry.pyramid_esdb_connection


__all__ = [
    'Command',
    'Connection',
    'connection_from_config',
    'get_connection',
    'includeme',
]
