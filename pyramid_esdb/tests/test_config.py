from unittest import TestCase

import mock
from pyramid import testing


class TestConnectionFromConfig(TestCase):

    def test_defaults(self):
        from pyramid_esdb import connection_from_config
        conn = connection_from_config({})
        self.assertEqual([{'http_address': 'inet[/127.0.0.1:9200]',
                           'protocol': 'http'}], conn.nodes)
        self.assertTrue(conn.autodetect_cluster)
        self.assertEqual(8, conn.dsl_version)
        self.assertEqual({}, conn.auth)
        self.assertIsNone(conn.timeout)
        self.assertIsNone(conn.data_timeout)
        self.assertEqual({}, conn.transport_options)

    def test_settings(self):
        from pyramid_esdb import connection_from_config
        conn = connection_from_config({
            'elastic.nodes': 'es1:9200\nes2:9200',
            'elastic.autodetect_cluster': 'false',
            'elastic.default_protocol': 'https',
            'elastic.dsl_version': '6',
            'elastic.username': 'elastic',
            'elastic.password': 'secret',
            'elastic.timeout': '1.5',
            'elastic.data_timeout': '30',
            'elastic.verify': 'false',
        })
        self.assertEqual([{'http_address': 'es1:9200', 'protocol': 'https'},
                          {'http_address': 'es2:9200', 'protocol': 'https'}],
                         conn.nodes)
        self.assertFalse(conn.autodetect_cluster)
        self.assertEqual(6, conn.dsl_version)
        self.assertEqual({'username': 'elastic', 'password': 'secret'},
                         conn.auth)
        self.assertEqual(1.5, conn.timeout)
        self.assertEqual(30.0, conn.data_timeout)
        self.assertEqual({'verify': False}, conn.transport_options)

    def test_custom_prefix(self):
        from pyramid_esdb import connection_from_config
        conn = connection_from_config({'search.nodes': 'es:9200'},
                                      prefix='search.')
        self.assertEqual('es:9200', conn.nodes[0]['http_address'])

    def test_invalid_number(self):
        from pyramid_esdb import connection_from_config
        from pyramid_esdb.exceptions import ConfigError
        with self.assertRaises(ConfigError):
            connection_from_config({'elastic.timeout': 'soon'})

    def test_invalid_protocol(self):
        from pyramid_esdb import connection_from_config
        from pyramid_esdb.exceptions import ConfigError
        with self.assertRaises(ConfigError):
            connection_from_config({'elastic.default_protocol': 'ftp'})


class TestIncludeme(TestCase):

    def setUp(self):
        self.config = testing.setUp(settings={
            'elastic.nodes': 'es:9200',
            'elastic.autodetect_cluster': 'false',
        })

    def tearDown(self):
        testing.tearDown()

    def test_includeme(self):
        from pyramid_esdb import get_connection
        self.config.include('pyramid_esdb')
        conn = get_connection(self.config.registry)
        self.assertEqual('es:9200', conn.nodes[0]['http_address'])
        self.assertIsNone(conn.profiler)
        self.assertFalse(conn.is_active)

    def test_includeme_attaches_profiler(self):
        from pyramid_esdb import get_connection
        from pyramid_esdb.interfaces import IProfiler
        profiler = mock.Mock()
        self.config.registry.registerUtility(profiler, IProfiler)
        self.config.include('pyramid_esdb')
        request = testing.DummyRequest()
        request.registry = self.config.registry
        self.assertIs(profiler, get_connection(request).profiler)


class TestGetConnection(TestCase):

    def test_connection_no_pyramid_esdb_connection(self):
        from pyramid.testing import DummyRequest
        fake_request = DummyRequest()

        self.assertFalse(hasattr(fake_request, 'pyramid_esdb_connection'))
        self.assertTrue(hasattr(fake_request, 'registry'))
        self.assertFalse(hasattr(fake_request.registry,
                                 'pyramid_esdb_connection'))

        from pyramid_esdb import get_connection
        with mock.patch('pyramid_esdb.get_current_registry') as current_reg:
            current_reg.return_value = mock.Mock(pyramid_esdb_connection=1)
            fake_connection = get_connection(fake_request)
        self.assertEqual(1, fake_connection)

    def test_connection_no_pyramid_esdb_connection_no_registry(self):
        class FakeRequest:
            pass
        fake_request = FakeRequest()

        self.assertFalse(hasattr(fake_request, 'pyramid_esdb_connection'))
        self.assertFalse(hasattr(fake_request, 'registry'))

        from pyramid_esdb import get_connection
        with mock.patch('pyramid_esdb.get_current_registry') as current_reg:
            current_reg.return_value = mock.Mock(pyramid_esdb_connection=1)
            fake_connection = get_connection(fake_request)
        self.assertEqual(1, fake_connection)
