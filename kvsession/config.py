"""Flask configuration for the key-value session store."""

import os

KVSESSION_REDIS_URL = os.environ.get('KVSESSION_REDIS_URL', '')
"""If set, used instead of the addresses below."""

KVSESSION_REDIS_ADDRESSES = os.environ.get('KVSESSION_REDIS_ADDRESSES',
                                           'localhost:6379')
"""Comma-separated ``host:port`` addresses. Several imply a cluster."""

KVSESSION_REDIS_USERNAME = os.environ.get('KVSESSION_REDIS_USERNAME', '')
KVSESSION_REDIS_PASSWORD = os.environ.get('KVSESSION_REDIS_PASSWORD', '')
KVSESSION_REDIS_DATABASE = os.environ.get('KVSESSION_REDIS_DATABASE', '0')

KVSESSION_SECRETS = os.environ.get('KVSESSION_SECRETS', '')
"""Comma-separated cookie signing secrets, newest first."""

KVSESSION_KEY_PREFIX = os.environ.get('KVSESSION_KEY_PREFIX', 'session_')
KVSESSION_MAX_AGE = os.environ.get('KVSESSION_MAX_AGE', str(86400 * 30))
KVSESSION_MAX_LENGTH = os.environ.get('KVSESSION_MAX_LENGTH', '4096')
KVSESSION_SERIALIZER = os.environ.get('KVSESSION_SERIALIZER', 'pickle')
"""Either ``pickle`` or ``json``."""
