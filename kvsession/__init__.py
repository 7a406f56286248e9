"""
Server-side sessions stored in Redis or Valkey.

Session values are held in a key-value store, and the client holds only a
signed cookie with the session ID. See :mod:`.store`.
"""

from .domain import Options, Session
from .exceptions import SessionStoreError, CookieError, InvalidCookie, \
    ExpiredCookie, CookieEncodeError, BackendError, BackendUnavailable, \
    SerializationError, NonStringKeyError, SessionTooLarge, \
    ConfigurationError
from .cookies import Codec, SecureCookie, codecs_from_pairs
from .serializers import SessionSerializer, PickleSerializer, JSONSerializer
from .registry import get_registry, save_all
from .store import SessionStore, generate_session_id
