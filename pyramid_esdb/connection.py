import copy
import json
import logging
from enum import Enum
from urllib.parse import quote, urlencode

import requests

from . import __version__
from .command import Command
from .exceptions import (
    AuthConfigError,
    ClusterDiscoveryError,
    ElasticError,
    IncompleteResponseError,
    RequestError,
    TransportError,
    UnsupportedContentTypeError,
    )
from .nodes import (
    NodeRegistry,
    nodes_from_cluster_info,
    unwrap_address,
    )
from .profiler import ConnectionContext
from .response import ResponseAccumulator


log = logging.getLogger(__name__)


USER_AGENT = 'pyramid_esdb/%s' % __version__


class ConnectionState(Enum):
    CLOSED = 'closed'
    OPEN = 'open'


def _to_query(value):
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (list, tuple)):
        return ','.join(_to_query(v) for v in value)
    return str(value)


def _encode_segment(segment):
    if isinstance(segment, (list, tuple)):
        segment = ','.join(str(s) for s in segment)
    return quote(str(segment), safe='')


def _error_code(exc):
    """
    Dig the errno of the socket-level failure out of a ``requests``
    exception, following ``reason`` attributes and exception chaining.
    """
    seen = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        code = getattr(exc, 'errno', None)
        if isinstance(code, int):
            return code
        nested = getattr(exc, 'reason', None)
        if not isinstance(nested, BaseException) and exc.args:
            nested = exc.args[0]
        if not isinstance(nested, BaseException):
            nested = exc.__cause__ or exc.__context__
        exc = nested
    return None


class Connection(object):
    """
    Connection to an Elasticsearch cluster.

    A connection talks to a single, randomly chosen node of the cluster for
    as long as it stays open. It is opened on demand by the HTTP verb methods
    and, when ``autodetect_cluster`` is true, replaces the configured nodes
    with the members the first of them reports.

    :arg nodes: node dicts, see :py:class:`.nodes.NodeRegistry`
    :arg autodetect_cluster: query ``/_nodes/_all/http`` on open
    :arg default_protocol: protocol for nodes that don't name one, and for
        every autodetected node
    :arg dsl_version: major version of the server's REST conventions
    :arg auth: ``{'username': ..., 'password': ...}`` sent with every request
        unless a node overrides it
    :arg timeout: seconds to wait for a TCP connection
    :arg data_timeout: seconds to wait for response data
    :arg transport_options: extra keyword arguments for
        ``requests.Session.request`` (``verify``, ``cert``, ``proxies``,
        ``headers``...)
    :arg logger: a ``logging.Logger`` to use instead of the module logger
    :arg profiler: an :py:class:`.interfaces.IProfiler` provider
    """
    driver_name = 'elasticsearch'

    def __init__(self, nodes=None, autodetect_cluster=True,
                 default_protocol='http', dsl_version=8, auth=None,
                 timeout=None, data_timeout=None, transport_options=None,
                 logger=None, profiler=None):
        self.registry = NodeRegistry(nodes, default_protocol)
        self.autodetect_cluster = autodetect_cluster
        self.dsl_version = int(dsl_version)
        self.auth = auth or {}
        self.timeout = timeout
        self.data_timeout = data_timeout
        self.transport_options = dict(transport_options or {})
        self.log = logger or log
        self.profiler = profiler
        self.state = ConnectionState.CLOSED
        self.session = None

    @property
    def default_protocol(self):
        return self.registry.default_protocol

    @default_protocol.setter
    def default_protocol(self, value):
        self.registry.default_protocol = value

    @property
    def nodes(self):
        return self.registry.nodes

    @property
    def is_active(self):
        return self.state is ConnectionState.OPEN

    def set_node_value(self, key, value):
        self.registry.set_value(key, value)
        return self

    def get_node_value(self, key=None):
        return self.registry.get_value(key)

    def open(self):
        """
        Establish the connection. Does nothing if it is already open.

        Raises :py:class:`.exceptions.ClusterDiscoveryError` when
        autodetection finds no usable node.
        """
        if self.state is ConnectionState.OPEN:
            return
        self.session = requests.Session()
        if self.autodetect_cluster:
            try:
                self._populate_nodes()
            except Exception:
                self._release_session()
                raise
        self.registry.select_active()
        self.state = ConnectionState.OPEN

    def close(self):
        """
        Close the connection. Does nothing if it is already closed.
        """
        if self.state is ConnectionState.CLOSED:
            return
        self.log.info(
            'Closing connection to Elasticsearch. Active node was: %s',
            self.registry.get_value('http.publish_address') or
            self.registry.get_value('http_address'))
        self.registry.clear_active()
        self.state = ConnectionState.CLOSED
        self._release_session()

    def _release_session(self):
        if self.session is not None:
            self.session.close()
            self.session = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_value, tb):
        self.close()

    def __del__(self):
        session = getattr(self, 'session', None)
        if session is not None:
            session.close()

    def __getstate__(self):
        # Only configuration is persisted; an unpickled connection is closed
        # and reopens on first use.
        state = self.__dict__.copy()
        registry = copy.copy(self.registry)
        registry.active = None
        state['registry'] = registry
        state['state'] = ConnectionState.CLOSED
        state['session'] = None
        state['profiler'] = None
        return state

    def __setstate__(self, state):
        self.__dict__.update(state)
        self.registry.clear_active()
        self.state = ConnectionState.CLOSED
        self.session = None

    def _populate_nodes(self):
        """
        Replace the configured nodes with the cluster members reported by the
        first of them.
        """
        seed = self.registry.seed
        protocol = seed.get('protocol') or self.default_protocol
        url = '%s://%s/_nodes/_all/http' % (
            protocol, unwrap_address(seed['http_address']))
        response = self._http_request('GET', url, node=seed,
                                      caller='_populate_nodes')
        nodes = nodes_from_cluster_info(response)
        if not nodes:
            self._release_session()
            raise ClusterDiscoveryError(
                'Cluster autodetection did not find any active node. Make '
                'sure a GET /_nodes request on the hosts defined in the '
                'config returns the "http_address" field for each node.')
        self.registry.replace(nodes)
        self.log.debug('Autodetected %d Elasticsearch node(s)', len(nodes))

    def create_command(self):
        self.open()
        return Command(self)

    def get_cluster_state(self):
        return self.get(['_cluster', 'state'])

    def get_node_info(self):
        return self.get([])

    def get(self, url, options=None, body=None, raw=False):
        self.open()
        return self._http_request('GET', self.create_url(url, options), body,
                                  raw)

    def head(self, url, options=None, body=None):
        self.open()
        return self._http_request('HEAD', self.create_url(url, options), body)

    def post(self, url, options=None, body=None, raw=False):
        self.open()
        return self._http_request('POST', self.create_url(url, options), body,
                                  raw)

    def put(self, url, options=None, body=None, raw=False):
        self.open()
        return self._http_request('PUT', self.create_url(url, options), body,
                                  raw)

    def delete(self, url, options=None, body=None, raw=False):
        self.open()
        return self._http_request('DELETE', self.create_url(url, options),
                                  body, raw)

    def create_url(self, path, options=None):
        """
        Return a ``(protocol, host, path)`` tuple addressing the active node.

        ``path`` is either a string used as is, or a sequence of segments
        which are percent-encoded and joined with ``/``; a segment that is
        itself a list is comma-joined first, ``None`` and empty segments are
        left out. ``options`` become the query string.
        """
        node = self.registry.active_node
        if node is None:
            raise ElasticError('The connection to Elasticsearch is not open.')

        query = ''
        if options:
            query = urlencode([(key, _to_query(value))
                               for key, value in options.items()
                               if value is not None])

        if isinstance(path, str):
            url = path
            if query:
                url += ('&' if '?' in url else '?') + query
        else:
            url = '/'.join(_encode_segment(segment) for segment in path
                           if segment is not None and segment != '')
            if query:
                url += '?' + query

        protocol = node.get('protocol') or self.default_protocol
        return protocol, node['http_address'], url

    def _credentials(self, node):
        auth = node.get('auth') if node is not None else None
        if auth is False:
            return None
        if not auth:
            auth = self.auth
        if not auth:
            return None
        if isinstance(auth, (list, tuple)):
            username, password = auth
        else:
            username, password = auth.get('username'), auth.get('password')
        if not username:
            raise AuthConfigError('Username is required to use authentication')
        if not password:
            raise AuthConfigError('Password is required to use authentication')
        return username, password

    def _request_options(self, node, body):
        options = {'allow_redirects': False}
        options.update(self.transport_options)

        # requests drops headers whose value is None
        headers = {
            'User-Agent': USER_AGENT,
            'Accept-Encoding': 'identity',
            'Expect': None,
        }
        headers.update(options.pop('headers', None) or {})
        headers['Content-Type'] = 'application/json'
        options['headers'] = headers
        options['stream'] = True

        credentials = self._credentials(node)
        if credentials is not None:
            options['auth'] = credentials
        if self.timeout is not None or self.data_timeout is not None:
            options['timeout'] = (self.timeout, self.data_timeout)
        if body is not None:
            options['data'] = body.encode('utf-8') if isinstance(body, str) \
                else body
        return options

    def _profile(self, action, context):
        if self.profiler is not None:
            getattr(self.profiler, action)(USER_AGENT, context)

    def _http_request(self, method, url, body=None, raw=False, node=None,
                      caller=None):
        if self.session is None:
            raise ElasticError('The connection to Elasticsearch is not open.')
        method = method.upper()
        if node is None:
            node = self.registry.active_node
        if isinstance(url, tuple):
            protocol, host, path = url
            url = '%s://%s/%s' % (protocol, unwrap_address(host), path)

        options = self._request_options(node, body)
        context = ConnectionContext(
            '%s.%s' % (type(self).__name__, caller or method.lower()))

        self.log.info('Sending request to Elasticsearch node: %s %s\n%s',
                      method, url, body if body is not None else '')
        self._profile('begin', context)

        accumulator = ResponseAccumulator()
        # Session state must not carry over from the previous request.
        self.session.cookies.clear()
        try:
            response = self.session.request(method, url, **options)
            accumulator.capture(response, read_body=method != 'HEAD')
        except requests.exceptions.RequestException as exc:
            context.set_exception(exc)
            self._profile('end', context)
            code = _error_code(exc)
            raise TransportError(
                code if code is not None else type(exc).__name__,
                str(exc)) from exc

        self._profile('end', context)
        return self._decode(method, accumulator, raw)

    def _decode(self, method, accumulator, raw):
        status = accumulator.status
        if status is not None and 200 <= status < 300:
            if method == 'HEAD':
                return True

            expected = accumulator.content_length
            body = accumulator.body
            if expected is not None and len(body) < expected:
                raise IncompleteResponseError(len(body), expected)

            content_type = accumulator.content_type or ''
            if content_type.startswith('application/json'):
                return accumulator.text if raw else json.loads(body)
            if content_type.startswith('text/plain'):
                if raw:
                    return accumulator.text
                return [line for line in accumulator.text.split('\n') if line]
            raise UnsupportedContentTypeError(accumulator.content_type)

        if status == 404:
            return False

        raise RequestError(status, accumulator.text)
