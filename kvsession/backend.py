"""
Commands against the key-value store.

The :class:`redis.Redis` client is thread safe, and connections are attached
at the time a command is executed. :class:`RedisBackend` issues exactly one
round-trip per call, and translates client errors into
:class:`.BackendError`. Valkey speaks the same protocol, so the same client
is used for both.
"""

from typing import Any, Optional, Sequence, Tuple
import logging

import redis
from redis.cluster import RedisCluster, ClusterNode

from .exceptions import BackendError, BackendUnavailable, ConfigurationError

logger = logging.getLogger(__name__)


class RedisBackend(object):
    """Container for a redis client."""

    def __init__(self, client: Any) -> None:
        self.r = client

    def set_with_expiry(self, key: str, seconds: int, payload: bytes) -> None:
        """Store ``payload`` under ``key``, expiring after ``seconds``."""
        try:
            self.r.setex(key, seconds, payload)
        except redis.exceptions.ConnectionError as e:
            raise BackendUnavailable(f'Connection failed: {e}') from e
        except redis.exceptions.RedisError as e:
            raise BackendError(f'Failed to store {key}: {e}') from e

    def get(self, key: str) -> Optional[bytes]:
        """
        Get the payload stored under ``key``.

        Returns
        -------
        bytes or None
            ``None`` if there is no such key.

        """
        try:
            data = self.r.get(key)
        except redis.exceptions.ConnectionError as e:
            raise BackendUnavailable(f'Connection failed: {e}') from e
        except redis.exceptions.RedisError as e:
            raise BackendError(f'Failed to get {key}: {e}') from e
        if data is None:
            return None
        if isinstance(data, str):
            return data.encode('utf-8')
        return bytes(data)

    def delete(self, key: str) -> None:
        """Delete ``key``. Deleting a missing key is not an error."""
        try:
            self.r.delete(key)
        except redis.exceptions.ConnectionError as e:
            raise BackendUnavailable(f'Connection failed: {e}') from e
        except redis.exceptions.RedisError as e:
            raise BackendError(f'Failed to delete {key}: {e}') from e

    def health_check(self) -> bool:
        """Ping the server. True if it responds with PONG."""
        try:
            response = self.r.ping()
        except redis.exceptions.ConnectionError as e:
            raise BackendUnavailable(f'Connection failed: {e}') from e
        except redis.exceptions.RedisError as e:
            raise BackendError(f'Ping failed: {e}') from e
        if isinstance(response, bytes):
            response = response.decode('utf-8')
        return response is True or response == 'PONG'

    def close(self) -> None:
        """Release the client's connections."""
        self.r.close()


def _parse_address(address: str) -> Tuple[str, int]:
    host, _, port = address.rpartition(':')
    if not host:
        return port, 6379
    try:
        return host, int(port)
    except ValueError as e:
        raise ConfigurationError(f'Invalid address: {address}') from e


def client_from_addresses(addresses: Sequence[str], username: Optional[str],
                          password: Optional[str], db: int = 0) -> Any:
    """
    Get a new client for the servers at ``addresses``.

    A single address yields a standalone client; several addresses are
    treated as startup nodes of a cluster.
    """
    if not addresses:
        raise ConfigurationError('At least one address is required')
    nodes = [_parse_address(address) for address in addresses]
    username = username or None
    password = password or None
    if len(nodes) == 1:
        host, port = nodes[0]
        logger.debug('New Redis connection at %s, port %s', host, port)
        return redis.Redis(host=host, port=port, db=db, username=username,
                           password=password)
    if db != 0:
        raise ConfigurationError('A cluster only supports database 0')
    logger.debug('New Redis cluster connection at %s', addresses)
    return RedisCluster(
        startup_nodes=[ClusterNode(host, port) for host, port in nodes],
        username=username,
        password=password
    )


def client_from_url(url: str) -> Any:
    """Get a new client from a ``redis://`` or ``rediss://`` URL."""
    logger.debug('New Redis connection from URL')
    return redis.Redis.from_url(url)
