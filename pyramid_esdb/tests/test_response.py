from unittest import TestCase

import mock
from requests.exceptions import ChunkedEncodingError


def broken_response(headers):
    def iter_content(chunk_size):
        yield b'{"hits": '
        raise ChunkedEncodingError('Connection broken: IncompleteRead')

    response = mock.Mock(status_code=200, headers=headers)
    response.iter_content = iter_content
    return response


class TestResponseAccumulator(TestCase):

    def test_headers_are_lowercased(self):
        from ..response import ResponseAccumulator
        response = mock.Mock(status_code=201,
                             headers={'Content-Type': 'application/json ',
                                      'Content-Length': '2'})
        response.iter_content.return_value = [b'{', b'}']
        accumulator = ResponseAccumulator().capture(response)
        self.assertEqual(201, accumulator.status)
        self.assertEqual('application/json', accumulator.content_type)
        self.assertEqual(2, accumulator.content_length)
        self.assertEqual(b'{}', accumulator.body)
        response.close.assert_called_once_with()

    def test_body_not_read(self):
        from ..response import ResponseAccumulator
        response = mock.Mock(status_code=200, headers={})
        accumulator = ResponseAccumulator().capture(response, read_body=False)
        self.assertFalse(response.iter_content.called)
        self.assertEqual(b'', accumulator.body)
        self.assertIsNone(accumulator.content_length)

    def test_short_read_with_advertised_length(self):
        from ..response import ResponseAccumulator
        accumulator = ResponseAccumulator().capture(
            broken_response({'Content-Length': '64'}))
        self.assertEqual(b'{"hits": ', accumulator.body)
        self.assertEqual(64, accumulator.content_length)

    def test_short_read_without_advertised_length(self):
        from ..response import ResponseAccumulator
        with self.assertRaises(ChunkedEncodingError):
            ResponseAccumulator().capture(broken_response({}))

    def test_invalid_content_length(self):
        from ..response import ResponseAccumulator
        response = mock.Mock(status_code=200,
                             headers={'content-length': 'many'})
        accumulator = ResponseAccumulator().capture(response, read_body=False)
        self.assertIsNone(accumulator.content_length)
