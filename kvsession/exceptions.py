"""Exceptions."""

from typing import Any, Optional


class SessionStoreError(RuntimeError):
    """Base for errors raised by the session store."""

    session: Optional[Any] = None
    """
    The fresh session produced by a failed lookup, if any.

    Set by :meth:`.SessionStore.new` and :meth:`.SessionStore.get` so that
    callers may treat the session as new rather than failing the request.
    """


class ConfigurationError(SessionStoreError):
    """Raised when a required configuration parameter is missing."""


class CookieError(SessionStoreError):
    """Failed to encode or decode a session cookie."""


class InvalidCookie(CookieError):
    """Session cookie is malformed, forged, or signed with an unknown key."""


class ExpiredCookie(InvalidCookie):
    """Session cookie is older than the configured max-age."""


class CookieEncodeError(CookieError):
    """Failed to produce a signed session cookie value."""


class BackendError(SessionStoreError):
    """A command against the key-value store failed."""


class BackendUnavailable(BackendError):
    """The key-value store could not be reached."""


class SerializationError(SessionStoreError):
    """Failed to serialize or deserialize session values."""


class NonStringKeyError(SerializationError):
    """A session key cannot be represented as a string."""


class SessionTooLarge(SessionStoreError):
    """The serialized session exceeds the configured maximum length."""
