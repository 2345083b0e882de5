from requests.exceptions import ChunkedEncodingError


class ResponseAccumulator(object):
    """
    Collects the status, headers and body of a single response. A fresh
    accumulator is used for every request so nothing leaks between calls.
    """
    chunk_size = 8192

    def __init__(self):
        self.status = None
        self.headers = {}
        self.chunks = []

    def capture(self, response, read_body=True):
        self.status = response.status_code
        self.headers = dict((name.lower(), value.strip())
                            for name, value in response.headers.items())
        if read_body:
            try:
                for chunk in response.iter_content(self.chunk_size):
                    self.chunks.append(chunk)
            except ChunkedEncodingError:
                # Short reads against an advertised length are reported by
                # the caller as an incomplete response. urllib3 may discard
                # the last partial chunk, so the body can be shorter than
                # what actually arrived.
                if self.content_length is None:
                    raise
        response.close()
        return self

    @property
    def body(self):
        return b''.join(self.chunks)

    @property
    def text(self):
        return self.body.decode('utf-8', 'replace')

    @property
    def content_length(self):
        value = self.headers.get('content-length')
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @property
    def content_type(self):
        return self.headers.get('content-type')
