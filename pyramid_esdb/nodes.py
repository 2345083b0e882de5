import logging
import random

from .exceptions import ConfigError


log = logging.getLogger(__name__)


PROTOCOLS = ('http', 'https')

DEFAULT_NODES = [{'http_address': 'inet[/127.0.0.1:9200]'}]


def unwrap_address(address):
    """
    Strip the ``inet[...]`` wrapper some nodes report their addresses in, so
    that ``inet[/127.0.0.1:9200]`` and ``inet[es1/127.0.0.1:9200]`` both
    become ``127.0.0.1:9200``. Plain addresses are returned as is.
    """
    if not address.startswith('inet['):
        return address
    address = address[5:]
    if address.endswith(']'):
        address = address[:-1]
    _, sep, tail = address.partition('/')
    if sep:
        address = tail
    return address


def nodes_from_cluster_info(response):
    """
    Turn the answer of a ``GET /_nodes/_all/http`` request into node entries.

    Nodes that don't advertise an HTTP publish address are skipped: some
    hosted providers leave the field out, and such a node can't be addressed
    anyway.
    """
    nodes = []
    if not isinstance(response, dict):
        return nodes
    for key, info in (response.get('nodes') or {}).items():
        address = (info.get('http') or {}).get('publish_address')
        if not address:
            log.debug("Skipping node %s without http.publish_address", key)
            continue
        node = dict(info)
        node['http_address'] = address
        nodes.append(node)
    return nodes


class NodeRegistry(object):
    """
    The Elasticsearch nodes a connection may talk to, and which of them is
    currently active.

    Each node is a dict with at least an ``http_address``. Optional keys:

    - ``protocol``: ``'http'`` or ``'https'``, defaults to ``default_protocol``
    - ``auth``: ``{'username': ..., 'password': ...}`` overriding the
      connection credentials, or ``False`` to send this node no credentials
    """

    def __init__(self, nodes=None, default_protocol='http'):
        self.default_protocol = default_protocol
        if nodes is None:
            nodes = DEFAULT_NODES
        self.nodes = self.configure(nodes)
        self.active = None

    def configure(self, nodes, protocol=None):
        """
        Return validated copies of ``nodes``. When ``protocol`` is given it
        replaces whatever protocol the entries carry.
        """
        nodes = [dict(node) for node in nodes]
        if not nodes:
            raise ConfigError('Elasticsearch needs at least one node to operate.')
        for node in nodes:
            if not node.get('http_address'):
                raise ConfigError(
                    'Elasticsearch node needs at least a http_address configured.')
            if protocol is not None:
                node['protocol'] = protocol
            else:
                node.setdefault('protocol', self.default_protocol)
            if node['protocol'] not in PROTOCOLS:
                raise ConfigError(
                    'Valid node protocol settings are "http" and "https", got %r.'
                    % (node['protocol'],))
        return nodes

    def replace(self, nodes):
        """
        Swap the whole node list for ``nodes``, stamping the default protocol
        onto each of them. The current list is kept if validation fails.
        """
        self.nodes = self.configure(nodes, protocol=self.default_protocol)
        self.active = None

    def __len__(self):
        return len(self.nodes)

    def __iter__(self):
        return iter(self.nodes)

    @property
    def seed(self):
        return self.nodes[0]

    @property
    def active_node(self):
        if self.active is None:
            return None
        return self.nodes[self.active]

    def select_active(self):
        self.active = random.randrange(len(self.nodes))
        return self.active_node

    def clear_active(self):
        self.active = None

    def set_value(self, key, value):
        """
        Set ``key`` on the active node, or on the seed node while no node is
        active.
        """
        node = self.active_node
        if node is None:
            node = self.seed
        node[key] = value

    def get_value(self, key=None):
        """
        Read ``key`` from the active node. ``key`` may be a dotted path such
        as ``'http.publish_address'``; without a key the whole node is
        returned. Returns ``None`` while no node is active.
        """
        node = self.active_node
        if node is None or key is None:
            return node
        if key in node:
            return node[key]
        value = node
        for part in key.split('.'):
            if not isinstance(value, dict) or part not in value:
                return None
            value = value[part]
        return value
