"""
Session State
Process-wide observable holder for the current session
"""

from typing import Callable, List, Optional
import logging

from app.models.session import Session

logger = logging.getLogger(__name__)

SessionListener = Callable[[Optional[Session]], None]


class SessionState:
    """
    Single-writer, multi-reader holder for the current session.

    Only the session resolver calls publish() and clear(). Readers use get()
    or subscribe() to be told about every change.
    """

    def __init__(self):
        self._session: Optional[Session] = None
        self._listeners: List[SessionListener] = []

    def get(self) -> Optional[Session]:
        """Get the current session, or None when signed out"""
        return self._session

    @property
    def is_signed_in(self) -> bool:
        return self._session is not None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a listener called with the new value after every change

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, session: Session):
        """Replace the current session with a fully resolved one"""
        self._session = session
        logger.info(f"Session published for {session.email} (role={session.role.value})")
        self._notify()

    def clear(self):
        """Drop the current session"""
        self._session = None
        logger.info("Session cleared")
        self._notify()

    def _notify(self):
        value = self._session
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception as e:
                logger.error(f"Session listener failed: {e}", exc_info=True)
