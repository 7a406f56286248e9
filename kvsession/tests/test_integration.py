"""Integration tests for the session store with Redis."""

from unittest import TestCase
import os

import redis
from werkzeug.wrappers import Response

from .. import store
from .util import SECRET, make_request, cookie_value


class TestSessionStoreIntegration(TestCase):
    """Test integration with Redis."""

    __test__ = int(bool(os.environ.get('WITH_INTEGRATION', False)))

    @classmethod
    def setUpClass(self):
        """Connect to Redis, e.g. ``docker run -p 6379:6379 valkey/valkey``."""
        self.url = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')
        self.store = store.SessionStore.from_url(self.url, SECRET)
        self.store.set_key_prefix('kvsession-test-')
        self.r = redis.Redis.from_url(self.url)

    @classmethod
    def tearDownClass(self):
        """Close connections."""
        self.store.close()
        self.r.close()

    def test_save_load_delete(self):
        """A session is stored with a TTL, loaded, and removed."""
        session = self.store.new(make_request(), 'sid')
        session.values['foo'] = 'bar'
        response = Response()
        self.store.save(make_request(), response, session)

        key = f'kvsession-test-{session.id}'
        ttl = self.r.ttl(key)
        self.assertGreater(ttl, 0)
        self.assertLessEqual(ttl, 86400 * 30)

        request = make_request(sid=cookie_value(response, 'sid'))
        loaded = self.store.new(request, 'sid')
        self.assertFalse(loaded.is_new)
        self.assertEqual(loaded.values, {'foo': 'bar'})

        self.store.delete(request, Response(), loaded)
        self.assertIsNone(self.r.get(key))
