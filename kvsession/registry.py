"""Request-scoped registry of sessions."""

from typing import Any, Dict, Optional, Tuple
import logging

from werkzeug.wrappers import Request, Response

from .domain import Session
from .exceptions import SessionStoreError

logger = logging.getLogger(__name__)

REGISTRY_KEY = 'kvsession.registry'
"""Key in the WSGI environ under which the registry is kept."""


class Registry(object):
    """
    Stores the sessions used during a request.

    The registry lives in the WSGI environ of the request, so repeated
    lookups of the same session name return the same :class:`.Session`.
    """

    def __init__(self, request: Request) -> None:
        self.request = request
        self._sessions: Dict[str, Tuple[Session, Optional[Exception]]] = {}

    def get(self, store: Any, name: str) -> Session:
        """
        Get a session by name, creating it with ``store`` if necessary.

        If creating the session raised an error, the same error is raised on
        every lookup.
        """
        if name not in self._sessions:
            try:
                session = store.new(self.request, name)
                error: Optional[Exception] = None
            except SessionStoreError as e:
                if e.session is None:
                    raise
                session, error = e.session, e
            self._sessions[name] = (session, error)
        session, error = self._sessions[name]
        if error is not None:
            raise error
        return session

    def save(self, response: Response) -> None:
        """
        Save all sessions in the registry.

        Every session is attempted; the first error is raised afterwards.
        """
        first: Optional[Exception] = None
        for name, (session, _) in self._sessions.items():
            logger.debug('Saving session %s', name)
            try:
                session.save(self.request, response)
            except SessionStoreError as e:
                if first is None:
                    first = e
        if first is not None:
            raise first


def get_registry(request: Request) -> Registry:
    """Get the :class:`Registry` for ``request``, creating it if needed."""
    registry = request.environ.get(REGISTRY_KEY)
    if registry is None:
        registry = Registry(request)
        request.environ[REGISTRY_KEY] = registry
    return registry     # type: ignore


def save_all(request: Request, response: Response) -> None:
    """Save every session looked up during ``request``."""
    get_registry(request).save(response)
