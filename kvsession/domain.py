"""Defines session concepts for the key-value session store."""

from typing import Any, Dict, Optional
from dataclasses import dataclass, field, replace
import logging

logger = logging.getLogger(__name__)


@dataclass
class Options:
    """Cookie and expiry settings for a session."""

    path: str = '/'
    """Cookie path."""

    domain: Optional[str] = None
    """Cookie domain. If ``None``, the cookie is host-only."""

    max_age: int = 86400 * 30
    """
    Lifetime of the session in seconds.

    A value less than or equal to zero marks the session for deletion when it
    is saved. Zero is also the marker for "use the store's default TTL" on
    the write path.
    """

    secure: bool = False
    http_only: bool = True
    same_site: Optional[str] = None

    def copy(self) -> 'Options':
        """Make an independent copy of these options."""
        return replace(self)


@dataclass
class Session:
    """A server-side session, referenced by a signed client cookie."""

    name: str
    """Name of the cookie that references this session."""

    options: Options
    store: Optional[Any] = field(default=None, repr=False, compare=False)
    """The :class:`.SessionStore` that produced this session."""

    id: str = ''
    """Session ID. Empty until the session is first saved."""

    is_new: bool = True
    """False only after existing data was loaded from the store."""

    values: Dict[Any, Any] = field(default_factory=dict)

    def save(self, request: Any, response: Any) -> None:
        """Save this session using the store that produced it."""
        if self.store is None:
            raise RuntimeError(f'Session {self.name} has no store')
        self.store.save(request, response, self)
