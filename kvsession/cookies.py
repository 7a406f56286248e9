"""
Signed cookie values for session identifiers.

Each :class:`SecureCookie` wraps one key-pair and produces a JSON web token
that carries the cookie name, the session ID, and the time at which the
token was issued. Several codecs may be active at once, so that keys can be
rotated: new cookies are signed with the first codec, and cookies signed by
any of the codecs are accepted.
"""

from typing import Any, Optional, Sequence, Tuple, Union
import time
import logging

import jwt

from .exceptions import CookieError, CookieEncodeError, InvalidCookie, \
    ExpiredCookie

logger = logging.getLogger(__name__)

Key = Union[str, bytes]
KeyPair = Union[Key, Tuple[Any, Any]]

MAX_COOKIE_LENGTH = 4096
"""Browsers reject cookies larger than this."""


class Codec(object):
    """
    Interface of a cookie codec.

    A codec that rejects a value raises :class:`.CookieError`. Codecs may
    also provide ``set_max_age(age)``, which the store calls whenever its
    max-age changes; codecs without it manage freshness themselves.
    """

    def encode(self, name: str, value: str) -> str:
        """Produce an authenticated cookie value for ``value``."""
        raise NotImplementedError('Implemented in subclass')

    def decode(self, name: str, token: str) -> str:
        """Verify ``token`` and return the value it carries."""
        raise NotImplementedError('Implemented in subclass')


class SecureCookie(Codec):
    """
    Encodes and decodes authenticated cookie values.

    Parameters
    ----------
    key : str or bytes
        The signing key. For HMAC algorithms this is also the verification
        key.
    algorithm : str
        Any algorithm supported by :mod:`jwt`. Defaults to ``HS256``.
    verify_key : object
        Verification key for asymmetric algorithms.
    max_age : int
        Maximum age of a token, in seconds. Zero disables the check.

    """

    def __init__(self, key: Any, algorithm: str = 'HS256',
                 verify_key: Optional[Any] = None, max_age: int = 86400 * 30,
                 max_length: int = MAX_COOKIE_LENGTH) -> None:
        if not key:
            raise CookieError('Signing key is required')
        self._key = key
        self._verify_key = verify_key if verify_key is not None else key
        self._algorithm = algorithm
        self._max_age = max_age
        self._max_length = max_length

    @property
    def max_age(self) -> int:
        """Maximum age of an accepted token, in seconds."""
        return self._max_age

    def set_max_age(self, age: int) -> None:
        """Restrict the maximum age of accepted tokens to ``age`` seconds."""
        self._max_age = age

    def encode(self, name: str, value: str) -> str:
        """
        Generate a signed cookie value.

        Parameters
        ----------
        name : str
            Cookie name. Bound into the token, so that a value cannot be
            replayed under another cookie name.
        value : str

        Returns
        -------
        str

        Raises
        ------
        :class:`CookieEncodeError`

        """
        claims = {'name': name, 'value': value, 'iat': int(time.time())}
        try:
            token = jwt.encode(claims, self._key, algorithm=self._algorithm)
        except (jwt.exceptions.PyJWTError, TypeError, ValueError) as e:
            raise CookieEncodeError(f'Failed to sign cookie: {e}') from e
        if isinstance(token, bytes):
            token = token.decode('ascii')
        if self._max_length and len(token) > self._max_length:
            raise CookieEncodeError('The encoded value is too long')
        return token

    def decode(self, name: str, token: str) -> str:
        """
        Verify a signed cookie value and extract the value.

        Raises
        ------
        :class:`InvalidCookie`
            Raised if the token is malformed, forged, or issued for another
            cookie name.
        :class:`ExpiredCookie`
            Raised if the token is older than :attr:`max_age`.

        """
        if self._max_length and len(token) > self._max_length:
            raise InvalidCookie('The cookie value is too long')
        try:
            claims = jwt.decode(token, self._verify_key,
                                algorithms=[self._algorithm],
                                options={'require': ['iat']})
        except jwt.exceptions.PyJWTError as e:
            raise InvalidCookie(f'Session cookie is malformed: {e}') from e

        if claims.get('name') != name:
            raise InvalidCookie('Cookie was issued under another name')
        value = claims.get('value')
        if not isinstance(value, str):
            raise InvalidCookie('Token payload malformed')

        issued_at = claims['iat']
        now = time.time()
        if issued_at > now + 1:
            raise InvalidCookie('Cookie was issued in the future')
        if self._max_age > 0 and issued_at < now - self._max_age:
            raise ExpiredCookie('Session cookie has expired')
        return value


def codecs_from_pairs(*key_pairs: KeyPair, algorithm: str = 'HS256',
                      max_age: int = 86400 * 30) -> Tuple[SecureCookie, ...]:
    """
    Build one codec per key-pair.

    A key-pair is either a shared secret (HMAC), or a tuple of
    ``(signing_key, verify_key)``.
    """
    codecs = []
    for pair in key_pairs:
        if isinstance(pair, tuple):
            key, verify_key = pair
        else:
            key, verify_key = pair, None
        codecs.append(SecureCookie(key, algorithm=algorithm,
                                   verify_key=verify_key, max_age=max_age))
    return tuple(codecs)


def encode_multi(name: str, value: str, codecs: Sequence[Codec]) -> str:
    """
    Encode ``value`` with the first codec that succeeds.

    Raises the error from the last codec if none of them succeed. Errors
    other than :class:`.CookieError` are raised as
    :class:`.CookieEncodeError`.
    """
    error: CookieError = CookieError('No codecs were provided')
    for codec in codecs:
        try:
            return str(codec.encode(name, value))
        except CookieError as e:
            error = e
        except Exception as e:
            logger.debug('Codec %r failed to encode: %s', codec, e)
            error = CookieEncodeError(f'Codec failed to encode: {e}')
            error.__cause__ = e
    raise error


def decode_multi(name: str, token: str, codecs: Sequence[Codec]) -> str:
    """
    Decode ``token`` with the first codec that accepts it.

    Raises the error from the last codec if none of them accept the token.
    Errors other than :class:`.CookieError` are raised as
    :class:`.InvalidCookie`, after the remaining codecs have been tried.
    """
    error: CookieError = CookieError('No codecs were provided')
    for codec in codecs:
        try:
            return str(codec.decode(name, token))
        except CookieError as e:
            error = e
        except Exception as e:
            logger.debug('Codec %r failed to decode: %s', codec, e)
            error = InvalidCookie(f'Codec failed to decode: {e}')
            error.__cause__ = e
    raise error
