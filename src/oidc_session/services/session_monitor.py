"""Detection of session changes at the authorization server."""

import logging
from typing import Optional

from ..core.exceptions import OidcSessionError
from ..entities.navigation import SessionStatus
from ..entities.user import User

logger = logging.getLogger(__name__)


class SessionMonitor:
    """Tracks the loaded user's session and compares it with the server's.
    
    Polling is done by the caller: each ``check_session`` call runs one silent
    session-status query. A different subject, no remote session, or a failed
    query raises ``user_signed_out``; the same subject with a new session state
    raises ``user_session_changed``.
    """
    
    def __init__(self, user_manager):
        """Initialize session monitor."""
        self._user_manager = user_manager
        self._started = False
        self._sub: Optional[str] = None
        self._session_state: Optional[str] = None
    
    @property
    def sub(self) -> Optional[str]:
        return self._sub
    
    @property
    def session_state(self) -> Optional[str]:
        return self._session_state
    
    @property
    def is_monitoring(self) -> bool:
        return self._sub is not None
    
    async def start(self) -> None:
        """Subscribe to user events and pick up an already stored user."""
        if self._started:
            return
        
        events = self._user_manager.events
        events.add_user_loaded(self._on_user_loaded)
        events.add_user_unloaded(self._on_user_unloaded)
        self._started = True
        logger.info("Session monitor started")
        
        user = await self._user_manager.get_user()
        if user:
            self._track(user)
    
    def stop(self) -> None:
        """Unsubscribe from user events and forget the tracked session."""
        if not self._started:
            return
        
        events = self._user_manager.events
        events.remove_user_loaded(self._on_user_loaded)
        events.remove_user_unloaded(self._on_user_unloaded)
        self._started = False
        self._clear()
        logger.info("Session monitor stopped")
    
    async def check_session(self) -> Optional[SessionStatus]:
        """Query the authorization server once and raise change events."""
        if not self._sub:
            logger.debug("No session to check")
            return None
        
        try:
            status = await self._user_manager.query_session_status()
        except OidcSessionError as e:
            logger.error(f"Error querying session status, raising signed out event: {e}")
            await self._user_manager.events.raise_user_signed_out()
            return None
        
        if status is None:
            logger.info("No session at the authorization server, raising signed out event")
            await self._user_manager.events.raise_user_signed_out()
            return None
        
        if status.sub != self._sub:
            logger.info("Different subject signed into the authorization server, raising signed out event")
            await self._user_manager.events.raise_user_signed_out()
            return status
        
        if status.session_state != self._session_state:
            logger.info("Same subject still signed in, session state changed")
            self._session_state = status.session_state
            await self._user_manager.events.raise_user_session_changed()
        
        return status
    
    def _on_user_loaded(self, user: User) -> None:
        self._track(user)
    
    def _on_user_unloaded(self) -> None:
        logger.debug("User unloaded, stopping session tracking")
        self._clear()
    
    def _track(self, user: User) -> None:
        sub = (user.profile or {}).get("sub")
        if user.session_state and sub:
            self._sub = sub
            self._session_state = user.session_state
            logger.debug(f"Tracking session for subject {sub}")
        else:
            logger.debug("User has no session state, not tracking")
            self._clear()
    
    def _clear(self) -> None:
        self._sub = None
        self._session_state = None
