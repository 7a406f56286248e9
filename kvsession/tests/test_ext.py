"""Tests for :mod:`kvsession.ext`."""

from unittest import TestCase, mock
import threading
import time

from flask import Flask, request, make_response

from .. import ext, registry
from ..exceptions import ConfigurationError
from ..serializers import JSONSerializer
from ..store import SessionStore
from .util import FakeRedis, SECRET, OTHER_SECRET


def create_app() -> Flask:
    app = Flask('test_kvsession_app')
    app.config['KVSESSION_SECRETS'] = f'{SECRET}, {OTHER_SECRET}'
    ext.init_app(app)
    return app


class TestInitApp(TestCase):
    """Configuration defaults are applied to the app."""

    def test_defaults(self):
        """Parameters that are already set are kept."""
        app = create_app()
        self.assertEqual(app.config['KVSESSION_SECRETS'],
                         f'{SECRET}, {OTHER_SECRET}')
        self.assertEqual(app.config['KVSESSION_KEY_PREFIX'], 'session_')
        self.assertEqual(app.config['KVSESSION_REDIS_ADDRESSES'],
                         'localhost:6379')
        self.assertEqual(app.config['KVSESSION_SERIALIZER'], 'pickle')


class TestGetStore(TestCase):
    """A store is configured from the app."""

    @mock.patch(f'{ext.__name__}.SessionStore.from_addresses')
    def test_from_addresses(self, mock_from_addresses):
        """Addresses and credentials are passed to the store."""
        mock_from_addresses.return_value = SessionStore(FakeRedis(), SECRET)
        app = create_app()
        app.config.update({
            'KVSESSION_REDIS_ADDRESSES': 'redis1:7000,redis2:7001',
            'KVSESSION_REDIS_PASSWORD': 'pass',
            'KVSESSION_KEY_PREFIX': 'sess-',
            'KVSESSION_MAX_AGE': '3600',
            'KVSESSION_MAX_LENGTH': '1024',
            'KVSESSION_SERIALIZER': 'json',
        })
        store = ext.get_store(app)
        mock_from_addresses.assert_called_once_with(
            ['redis1:7000', 'redis2:7001'], '', 'pass', SECRET, OTHER_SECRET,
            db=0
        )
        self.assertEqual(store.key_prefix, 'sess-')
        self.assertEqual(store.options.max_age, 3600)
        self.assertEqual(store.max_length, 1024)
        self.assertIsInstance(store.serializer, JSONSerializer)

    @mock.patch(f'{ext.__name__}.SessionStore.from_url')
    def test_from_url(self, mock_from_url):
        """A URL takes precedence over addresses."""
        mock_from_url.return_value = SessionStore(FakeRedis(), SECRET)
        app = create_app()
        app.config['KVSESSION_REDIS_URL'] = 'redis://redis:6379/1'
        ext.get_store(app)
        mock_from_url.assert_called_once_with('redis://redis:6379/1', SECRET,
                                              OTHER_SECRET)

    def test_missing_secrets(self):
        """At least one secret is required."""
        app = create_app()
        app.config['KVSESSION_SECRETS'] = ''
        with self.assertRaises(ConfigurationError):
            ext.get_store(app)

    def test_bad_max_age(self):
        """Numeric parameters must be numbers."""
        app = create_app()
        app.config['KVSESSION_MAX_AGE'] = 'forever'
        with self.assertRaises(ConfigurationError):
            ext.get_store(app)

    @mock.patch(f'{ext.__name__}.SessionStore.from_addresses')
    def test_unknown_serializer(self, mock_from_addresses):
        """Only known serializers may be configured."""
        mock_from_addresses.return_value = SessionStore(FakeRedis(), SECRET)
        app = create_app()
        app.config['KVSESSION_SERIALIZER'] = 'yaml'
        with self.assertRaises(ConfigurationError):
            ext.get_store(app)


class TestCurrentStore(TestCase):
    """One store is used per application."""

    @mock.patch(f'{ext.__name__}.get_store')
    def test_current_store(self, mock_get_store):
        """The store is created once, and used in views."""
        mock_get_store.return_value = SessionStore(FakeRedis(), SECRET)
        app = create_app()

        @app.route('/')
        def index():
            session = ext.current_store().get(request, 'sid')
            session.values['count'] = session.values.get('count', 0) + 1
            response = make_response(str(session.values['count']))
            registry.save_all(request, response)
            return response

        client = app.test_client()
        self.assertEqual(client.get('/').data, b'1')
        self.assertEqual(client.get('/').data, b'2')
        self.assertEqual(mock_get_store.call_count, 1)

    @mock.patch(f'{ext.__name__}.get_store')
    def test_concurrent_first_use(self, mock_get_store):
        """Threads starting at once share a single store."""
        def slow_get_store(app):
            time.sleep(0.05)
            return SessionStore(FakeRedis(), SECRET)

        mock_get_store.side_effect = slow_get_store
        app = create_app()
        stores = []

        def worker():
            with app.app_context():
                stores.append(ext.current_store())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(mock_get_store.call_count, 1)
        self.assertEqual(len(stores), 8)
        self.assertTrue(all(s is stores[0] for s in stores))
