"""
Session store backed by Redis or Valkey.

Session values are kept in the key-value store under ``prefix + session ID``,
and the client holds only a signed cookie containing the session ID. Use
:meth:`SessionStore.get` to obtain the session for a request, mutate
:attr:`.Session.values`, and then :meth:`SessionStore.save` it onto the
response.

.. code-block:: python

   store = SessionStore.from_url('redis://localhost:6379/0', secret)
   session = store.get(request, 'sid')
   session.values['foo'] = 'bar'
   store.save(request, response, session)

"""

from typing import Any, Optional, Sequence
from base64 import b32encode
import secrets
import logging

from redis.exceptions import RedisError
from werkzeug.wrappers import Request, Response

from . import cookies
from .backend import RedisBackend, client_from_addresses, client_from_url
from .cookies import KeyPair
from .domain import Options, Session
from .exceptions import BackendUnavailable, SessionStoreError, \
    SessionTooLarge
from .registry import get_registry
from .serializers import SessionSerializer, PickleSerializer

logger = logging.getLogger(__name__)

SESSION_EXPIRE = 86400 * 30
"""Default lifetime of cookies and keys, in seconds."""

DEFAULT_TTL = 60 * 20
"""TTL of stored sessions whose max-age is zero."""

DEFAULT_MAX_LENGTH = 4096
DEFAULT_KEY_PREFIX = 'session_'


def generate_session_id() -> str:
    """Generate an alphanumeric session ID from 32 random bytes."""
    return b32encode(secrets.token_bytes(32)).decode('ascii').rstrip('=')


class SessionStore(object):
    """
    Stores sessions in a key-value store.

    Configuration is shared by every request handled by the store, and is
    expected to be set up once at startup. Setters are not synchronized with
    sessions being loaded or saved at the same time.
    """

    def __init__(self, client: Any, *key_pairs: KeyPair,
                 codecs: Optional[Sequence[Any]] = None) -> None:
        """
        Wrap ``client`` and check that the server is alive.

        Parameters
        ----------
        client : :class:`redis.Redis`
        key_pairs : str, bytes, or tuple
            Keys used to sign session cookies. The first is used to sign new
            cookies; all are accepted when decoding. See
            :func:`.cookies.codecs_from_pairs`.
        codecs : list
            Custom cookie codecs, used instead of ``key_pairs``.

        Raises
        ------
        :class:`BackendUnavailable`
            Raised if the server cannot be reached or does not answer PONG.

        """
        self.backend = RedisBackend(client)
        if codecs is None:
            codecs = cookies.codecs_from_pairs(*key_pairs,
                                               max_age=SESSION_EXPIRE)
        self.codecs = list(codecs)
        self.options = Options(path='/', max_age=SESSION_EXPIRE)
        self.default_max_age = DEFAULT_TTL
        self._max_length = DEFAULT_MAX_LENGTH
        self._key_prefix = DEFAULT_KEY_PREFIX
        self._serializer: SessionSerializer = PickleSerializer()
        if not self.backend.health_check():
            raise BackendUnavailable('Server did not respond to PING')

    @classmethod
    def from_addresses(cls, addresses: Sequence[str],
                       username: Optional[str], password: Optional[str],
                       *key_pairs: KeyPair, db: int = 0) -> 'SessionStore':
        """Connect to the server(s) at ``addresses``, e.g. ``host:6379``."""
        client = client_from_addresses(addresses, username, password, db=db)
        return cls._connect(client, *key_pairs)

    @classmethod
    def from_url(cls, url: str, *key_pairs: KeyPair) -> 'SessionStore':
        """Connect using a URL, e.g. ``redis://:password@host:6379/0``."""
        return cls._connect(client_from_url(url), *key_pairs)

    @classmethod
    def _connect(cls, client: Any, *key_pairs: KeyPair) -> 'SessionStore':
        """Create a store that owns ``client``, closing it on failure."""
        try:
            return cls(client, *key_pairs)
        except SessionStoreError:
            try:
                client.close()
            except RedisError as e:
                logger.debug('Failed to close client: %s', e)
            raise

    @property
    def key_prefix(self) -> str:
        """Prefix of the keys under which sessions are stored."""
        return self._key_prefix

    @property
    def max_length(self) -> int:
        """Maximum length of a serialized session. Zero means no limit."""
        return self._max_length

    @property
    def serializer(self) -> SessionSerializer:
        """The serializer used for all sessions."""
        return self._serializer

    def set_key_prefix(self, prefix: str) -> None:
        """Set the prefix of the keys under which sessions are stored."""
        self._key_prefix = prefix

    def set_max_length(self, length: int) -> None:
        """
        Restrict the length of serialized sessions to ``length`` bytes.

        Zero removes the limit, which should be used with caution: Redis
        accepts values of up to 512MB. Negative values are ignored.
        """
        if length >= 0:
            self._max_length = length

    def set_serializer(self, serializer: SessionSerializer) -> None:
        """Set the serializer used for all sessions."""
        self._serializer = serializer

    def set_max_age(self, age: int) -> None:
        """
        Set the default max-age of sessions, in seconds.

        The max-age also limits the age of signed cookies, so the freshness
        window of every cookie codec is updated to match. To remove a single
        session instead, set ``session.options.max_age`` to -1 and save it.
        """
        self.options.max_age = age
        for codec in self.codecs:
            if hasattr(codec, 'set_max_age'):
                codec.set_max_age(age)
            else:
                logger.warning("Can't change max-age on codec %r", codec)

    def close(self) -> None:
        """Close the connection to the key-value store."""
        self.backend.close()

    def get(self, request: Request, name: str) -> Session:
        """Get the session for ``name``, registering it on the request."""
        return get_registry(request).get(self, name)

    def new(self, request: Request, name: str) -> Session:
        """
        Get the session for ``name`` without registering it.

        If the request carries a cookie for ``name``, the session is loaded
        from the store; otherwise a new session is returned.

        Raises
        ------
        :class:`.CookieError`
            Raised if the cookie cannot be decoded.
        :class:`.BackendError`
            Raised if the session cannot be loaded.
        :class:`.SerializationError`
            Raised if the stored session cannot be decoded.

        The raised exception carries a new session as ``session``.

        """
        session = Session(name=name, options=self.options.copy(), store=self)
        session.is_new = True
        cookie = request.cookies.get(name)
        if cookie is None:
            return session
        try:
            session.id = cookies.decode_multi(name, cookie, self.codecs)
            found = self.load(session)
        except SessionStoreError as e:
            e.session = session
            raise
        # Not new only if data was found.
        session.is_new = not found
        return session

    def save(self, request: Request, response: Response,
             session: Session) -> None:
        """
        Save ``session``, and set its cookie on ``response``.

        A session with a max-age of zero or less is deleted instead.
        """
        if session.options.max_age <= 0:
            self.backend.delete(self._key(session))
            _set_cookie(response, session.name, '', _expired(session.options))
            return

        if not session.id:
            session.id = generate_session_id()
        self._write(session)
        encoded = cookies.encode_multi(session.name, session.id, self.codecs)
        _set_cookie(response, session.name, encoded, session.options)

    def delete(self, request: Request, response: Response,
               session: Session) -> None:
        """Remove ``session`` from the store, and expire its cookie."""
        self.backend.delete(self._key(session))
        _set_cookie(response, session.name, '', _expired(session.options))
        session.values.clear()

    def load(self, session: Session) -> bool:
        """
        Load the stored values of ``session``.

        Returns
        -------
        bool
            True if there was data in the store.

        """
        data = self.backend.get(self._key(session))
        if data is None:
            return False
        self._serializer.deserialize(data, session.values)
        return True

    def ttl(self, session: Session) -> int:
        """The TTL with which ``session`` is stored."""
        if session.options.max_age == 0:
            return self.default_max_age
        return session.options.max_age

    def _key(self, session: Session) -> str:
        return self._key_prefix + session.id

    def _write(self, session: Session) -> None:
        if not session.id:
            raise SessionStoreError('Cannot store a session without an ID')
        payload = self._serializer.serialize(session.values)
        if self._max_length != 0 and len(payload) > self._max_length:
            raise SessionTooLarge('The value to store is too big')
        self.backend.set_with_expiry(self._key(session), self.ttl(session),
                                     payload)


def _expired(options: Options) -> Options:
    expired = options.copy()
    expired.max_age = -1
    return expired


def _set_cookie(response: Response, name: str, value: str,
                options: Options) -> None:
    expires: Optional[int] = None
    max_age = options.max_age
    if max_age < 0:
        max_age, expires = 0, 0     # Expire now.
    response.set_cookie(name, value, max_age=max_age, expires=expires,
                        path=options.path, domain=options.domain,
                        secure=options.secure, httponly=options.http_only,
                        samesite=options.same_site)
