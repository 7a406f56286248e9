"""Integration with Flask applications."""

from typing import List, Optional
import logging
import threading

from flask import Flask, current_app

from . import config
from .exceptions import ConfigurationError
from .serializers import SessionSerializer, PickleSerializer, JSONSerializer
from .store import SessionStore

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'kvsession'

_lock = threading.Lock()

SERIALIZERS = {
    'pickle': PickleSerializer,
    'json': JSONSerializer,
}


def init_app(app: Flask) -> None:
    """Set default configuration parameters for an application instance."""
    for key in dir(config):
        if key.startswith('KVSESSION_'):
            app.config.setdefault(key, getattr(config, key))


def _split(value: str) -> List[str]:
    return [part.strip() for part in value.split(',') if part.strip()]


def _get_serializer(name: str) -> SessionSerializer:
    try:
        return SERIALIZERS[name.lower()]()
    except KeyError as e:
        raise ConfigurationError(f'Unknown serializer: {name}') from e


def get_store(app: Optional[Flask] = None) -> SessionStore:
    """Get a new :class:`.SessionStore` configured from ``app``."""
    if app is None:
        app = current_app
    cfg = app.config
    try:
        secrets = _split(cfg['KVSESSION_SECRETS'])
        max_age = int(cfg.get('KVSESSION_MAX_AGE', 86400 * 30))
        max_length = int(cfg.get('KVSESSION_MAX_LENGTH', 4096))
        db = int(cfg.get('KVSESSION_REDIS_DATABASE', 0))
    except (KeyError, ValueError) as e:
        raise ConfigurationError('Missing or invalid config parameter') from e
    if not secrets:
        raise ConfigurationError('At least one cookie secret is required')

    url = cfg.get('KVSESSION_REDIS_URL')
    if url:
        store = SessionStore.from_url(url, *secrets)
    else:
        addresses = _split(cfg.get('KVSESSION_REDIS_ADDRESSES',
                                   'localhost:6379'))
        store = SessionStore.from_addresses(
            addresses,
            cfg.get('KVSESSION_REDIS_USERNAME'),
            cfg.get('KVSESSION_REDIS_PASSWORD'),
            *secrets,
            db=db
        )
    store.set_key_prefix(cfg.get('KVSESSION_KEY_PREFIX', 'session_'))
    store.set_max_age(max_age)
    store.set_max_length(max_length)
    store.set_serializer(_get_serializer(cfg.get('KVSESSION_SERIALIZER',
                                                 'pickle')))
    return store


def current_store() -> SessionStore:
    """Get the :class:`.SessionStore` for the current application."""
    app = current_app._get_current_object()     # type: ignore
    store = app.extensions.get(EXTENSION_KEY)
    if store is None:
        with _lock:
            store = app.extensions.get(EXTENSION_KEY)
            if store is None:
                logger.debug('Creating session store for %s', app.name)
                store = get_store(app)
                app.extensions[EXTENSION_KEY] = store
    return store    # type: ignore
