"""Automatic silent renewal of the access token."""

import logging

logger = logging.getLogger(__name__)


class SilentRenewService:
    """Runs ``signin_silent`` whenever the access token is about to expire."""
    
    def __init__(self, user_manager):
        """Initialize silent renew service."""
        self._user_manager = user_manager
        self._started = False
    
    @property
    def is_started(self) -> bool:
        return self._started
    
    async def start(self) -> None:
        """Subscribe to access token expiring notifications."""
        if self._started:
            return
        
        self._user_manager.events.add_access_token_expiring(self._token_expiring)
        self._started = True
        logger.info("Silent renew service started")
    
    def stop(self) -> None:
        """Unsubscribe from access token expiring notifications."""
        if not self._started:
            return
        
        self._user_manager.events.remove_access_token_expiring(self._token_expiring)
        self._started = False
        logger.info("Silent renew service stopped")
    
    async def _token_expiring(self) -> None:
        logger.info("Access token expiring, starting silent renew")
        
        try:
            await self._user_manager.signin_silent()
            logger.info("Silent token renewal successful")
        
        except Exception as e:
            # Background task: the error is reported through the events instead
            logger.error(f"Error from signin_silent: {e}")
            await self._user_manager.events.raise_silent_renew_error(e)
