import json


class ElasticError(Exception):
    """
    Base class for every error raised by ``pyramid_esdb``.
    """


class ConfigError(ElasticError, ValueError):
    """
    A node entry or a setting is malformed.
    """


class AuthConfigError(ElasticError, ValueError):
    """
    Authentication was requested without a username or a password.
    """


class ClusterDiscoveryError(ElasticError):
    """
    Cluster autodetection did not find any usable node.
    """


class TransportError(ElasticError):
    """
    The HTTP transport could not complete the request (connection refused,
    DNS failure, socket timeout...).
    """

    def __init__(self, code, message):
        self.code = code
        self.message = message
        super(TransportError, self).__init__(
            'Elasticsearch request failed: %s - %s' % (code, message))


class RequestError(ElasticError):
    """
    The node answered with a status that is neither 2xx nor 404.
    """

    def __init__(self, status, body):
        self.status = status
        self.body = body
        super(RequestError, self).__init__(
            'Elasticsearch request failed with code %s. Response body:\n%s' %
            (status, body))

    @property
    def error(self):
        """
        The ``error`` member of a JSON error body, or the raw body when it
        can't be decoded.
        """
        try:
            decoded = json.loads(self.body)
        except ValueError:
            return self.body
        if isinstance(decoded, dict) and 'error' in decoded:
            return decoded['error']
        return decoded


class IncompleteResponseError(ElasticError):
    """
    Fewer bytes than the advertised ``content-length`` were received.
    ``received`` is a lower bound: the transport may drop a partial chunk
    when the connection breaks.
    """

    def __init__(self, received, expected):
        self.received = received
        self.expected = expected
        super(IncompleteResponseError, self).__init__(
            'Incomplete data received from Elasticsearch: %d < %d' %
            (received, expected))


class UnsupportedContentTypeError(ElasticError):

    def __init__(self, content_type):
        self.content_type = content_type
        super(UnsupportedContentTypeError, self).__init__(
            'Unsupported data received from Elasticsearch: %s' % content_type)
