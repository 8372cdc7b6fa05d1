"""In-process event notifier for user lifecycle and access-token expiry."""

import asyncio
import inspect
import logging
from typing import Any, Callable, List, Optional

from ..entities.user import User

logger = logging.getLogger(__name__)

EventCallback = Callable[..., Any]


class Event:
    """Named list of callbacks; callbacks may be plain or coroutine functions."""

    def __init__(self, name: str):
        self.name = name
        self._callbacks: List[EventCallback] = []

    def add_handler(self, callback: EventCallback) -> None:
        self._callbacks.append(callback)

    def remove_handler(self, callback: EventCallback) -> None:
        try:
            self._callbacks.remove(callback)
        except ValueError:
            logger.debug(f"Handler not registered for {self.name}")

    @property
    def handler_count(self) -> int:
        return len(self._callbacks)

    async def raise_event(self, *args: Any) -> None:
        logger.debug(f"Raising event: {self.name}")
        for callback in list(self._callbacks):
            result = callback(*args)
            if inspect.isawaitable(result):
                await result


def _log_task_failure(task: "asyncio.Task") -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(f"Event handler failed: {error}", exc_info=error)


class UserManagerEvents:
    """Event notifier owned by one ``UserManager``.

    Shared by reference with the optional background services. Besides the
    user load/unload notifications it schedules ``access_token_expiring`` and
    ``access_token_expired`` on the running event loop whenever a user with an
    access token is loaded.
    """

    def __init__(self, access_token_expiring_notification_time: int = 60):
        self.access_token_expiring_notification_time = access_token_expiring_notification_time

        self.user_loaded = Event("User loaded")
        self.user_unloaded = Event("User unloaded")
        self.silent_renew_error = Event("Silent renew error")
        self.user_signed_out = Event("User signed out")
        self.user_session_changed = Event("User session changed")
        self.access_token_expiring = Event("Access token expiring")
        self.access_token_expired = Event("Access token expired")

        self._expiring_timer: Optional[asyncio.TimerHandle] = None
        self._expired_timer: Optional[asyncio.TimerHandle] = None

    async def load(self, user: User, from_storage: bool = False) -> None:
        """Track ``user``'s access token; raise ``user_loaded`` for fresh results."""
        self._schedule_token_timers(user)

        if not from_storage:
            await self.user_loaded.raise_event(user)

    async def unload(self) -> None:
        """Cancel token timers and raise ``user_unloaded``."""
        self.cancel_timers()
        await self.user_unloaded.raise_event()

    def cancel_timers(self) -> None:
        for timer in (self._expiring_timer, self._expired_timer):
            if timer is not None:
                timer.cancel()
        self._expiring_timer = None
        self._expired_timer = None

    @property
    def has_pending_timers(self) -> bool:
        return self._expiring_timer is not None or self._expired_timer is not None

    def _schedule_token_timers(self, user: User) -> None:
        self.cancel_timers()

        expires_in = user.expires_in
        if not user.access_token or expires_in is None:
            logger.debug("No access token expiry to track")
            return

        loop = asyncio.get_running_loop()

        if expires_in > 0:
            expiring = expires_in - self.access_token_expiring_notification_time
            if expiring <= 0:
                expiring = 1
            logger.debug(f"Access token expiring notification in {expiring}s")
            self._expiring_timer = loop.call_later(
                expiring, self._fire, self.access_token_expiring
            )

        expired = max(expires_in + 1, 0)
        logger.debug(f"Access token expired notification in {expired}s")
        self._expired_timer = loop.call_later(expired, self._fire, self.access_token_expired)

    def _fire(self, event: Event) -> None:
        if event is self.access_token_expiring:
            self._expiring_timer = None
        else:
            self._expired_timer = None

        task = asyncio.get_running_loop().create_task(event.raise_event())
        task.add_done_callback(_log_task_failure)

    # Registration helpers

    def add_user_loaded(self, callback: EventCallback) -> None:
        self.user_loaded.add_handler(callback)

    def remove_user_loaded(self, callback: EventCallback) -> None:
        self.user_loaded.remove_handler(callback)

    def add_user_unloaded(self, callback: EventCallback) -> None:
        self.user_unloaded.add_handler(callback)

    def remove_user_unloaded(self, callback: EventCallback) -> None:
        self.user_unloaded.remove_handler(callback)

    def add_silent_renew_error(self, callback: EventCallback) -> None:
        self.silent_renew_error.add_handler(callback)

    def remove_silent_renew_error(self, callback: EventCallback) -> None:
        self.silent_renew_error.remove_handler(callback)

    async def raise_silent_renew_error(self, error: Exception) -> None:
        await self.silent_renew_error.raise_event(error)

    def add_user_signed_out(self, callback: EventCallback) -> None:
        self.user_signed_out.add_handler(callback)

    def remove_user_signed_out(self, callback: EventCallback) -> None:
        self.user_signed_out.remove_handler(callback)

    async def raise_user_signed_out(self) -> None:
        await self.user_signed_out.raise_event()

    def add_user_session_changed(self, callback: EventCallback) -> None:
        self.user_session_changed.add_handler(callback)

    def remove_user_session_changed(self, callback: EventCallback) -> None:
        self.user_session_changed.remove_handler(callback)

    async def raise_user_session_changed(self) -> None:
        await self.user_session_changed.raise_event()

    def add_access_token_expiring(self, callback: EventCallback) -> None:
        self.access_token_expiring.add_handler(callback)

    def remove_access_token_expiring(self, callback: EventCallback) -> None:
        self.access_token_expiring.remove_handler(callback)

    def add_access_token_expired(self, callback: EventCallback) -> None:
        self.access_token_expired.add_handler(callback)

    def remove_access_token_expired(self, callback: EventCallback) -> None:
        self.access_token_expired.remove_handler(callback)
