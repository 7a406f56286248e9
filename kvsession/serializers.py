"""
Serializers for session values.

A store holds exactly one active serializer. :class:`PickleSerializer` is
the default, and can represent keys and values of the builtin types and
of any classes it is told to allow.
:class:`JSONSerializer` produces human-readable payloads, but requires that
every key be a string.
"""

from typing import Any, Dict, FrozenSet, Iterable, Tuple
import io
import json
import pickle
import logging

from .exceptions import SerializationError, NonStringKeyError

logger = logging.getLogger(__name__)


class SessionSerializer(object):
    """Converts session values to and from a byte payload."""

    def serialize(self, values: Dict[Any, Any]) -> bytes:
        """Encode ``values`` as bytes."""
        raise NotImplementedError('Implemented in subclass')

    def deserialize(self, data: bytes, values: Dict[Any, Any]) -> None:
        """
        Decode ``data`` and merge the result into ``values``.

        Existing entries in ``values`` are kept unless the payload contains
        the same key.
        """
        raise NotImplementedError('Implemented in subclass')


SAFE_CLASSES = frozenset([
    ('builtins', 'set'),
    ('builtins', 'frozenset'),
    ('builtins', 'complex'),
    ('builtins', 'bytearray'),
    ('collections', 'OrderedDict'),
    ('datetime', 'date'),
    ('datetime', 'time'),
    ('datetime', 'datetime'),
    ('datetime', 'timedelta'),
    ('datetime', 'timezone'),
    ('decimal', 'Decimal'),
    ('uuid', 'UUID'),
])
"""Globals that may be loaded from a stored session."""


class _RestrictedUnpickler(pickle.Unpickler):
    """Refuses to load any global that is not explicitly allowed."""

    def __init__(self, data: bytes, allowed: FrozenSet[Tuple[str, str]]) \
            -> None:
        super().__init__(io.BytesIO(data))
        self._allowed = allowed

    def find_class(self, module: str, name: str) -> Any:
        if (module, name) not in self._allowed:
            raise pickle.UnpicklingError(f'Forbidden global {module}.{name}')
        return super().find_class(module, name)


class PickleSerializer(SessionSerializer):
    """
    Uses :mod:`pickle` to encode the session values.

    Loading a payload may only construct the types in :data:`SAFE_CLASSES`,
    plus any ``allowed_classes`` passed in. Anything else stored under a
    session key is rejected rather than executed.

    Parameters
    ----------
    allowed_classes : iterable
        Additional classes that may appear in session values.

    """

    def __init__(self, allowed_classes: Iterable[type] = ()) -> None:
        extra = {(cls.__module__, cls.__qualname__) for cls in allowed_classes}
        self._allowed = SAFE_CLASSES | frozenset(extra)

    def serialize(self, values: Dict[Any, Any]) -> bytes:
        try:
            return pickle.dumps(dict(values), protocol=pickle.HIGHEST_PROTOCOL)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise SerializationError(f'Cannot pickle session: {e}') from e

    def deserialize(self, data: bytes, values: Dict[Any, Any]) -> None:
        try:
            decoded = _RestrictedUnpickler(data, self._allowed).load()
        except Exception as e:
            raise SerializationError(f'Cannot unpickle session: {e}') from e
        if not isinstance(decoded, dict):
            raise SerializationError('Session payload is not a mapping')
        values.update(decoded)


class JSONSerializer(SessionSerializer):
    """Encodes the session values as JSON."""

    def serialize(self, values: Dict[Any, Any]) -> bytes:
        """
        Serialize to JSON.

        Raises
        ------
        :class:`NonStringKeyError`
            Raised if any key is not a string. Keys are never coerced.
        :class:`SerializationError`
            Raised if a value cannot be represented in JSON.

        """
        for key in values:
            if not isinstance(key, str):
                raise NonStringKeyError(
                    f'Non-string key, cannot serialize session to JSON: {key!r}'
                )
        try:
            return json.dumps(values).encode('utf-8')
        except (TypeError, ValueError) as e:
            raise SerializationError(f'Cannot encode session: {e}') from e

    def deserialize(self, data: bytes, values: Dict[Any, Any]) -> None:
        try:
            decoded = json.loads(data)
        except (ValueError, TypeError) as e:
            raise SerializationError(f'Cannot decode session: {e}') from e
        if not isinstance(decoded, dict):
            raise SerializationError('Session payload is not a JSON object')
        values.update(decoded)
