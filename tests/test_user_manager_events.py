"""Tests for Event and UserManagerEvents."""

import asyncio
import time
from unittest.mock import AsyncMock, MagicMock

import pytest

from oidc_session.entities.protocols import EventNotifierProtocol
from oidc_session.entities.user import User
from oidc_session.services.user_manager_events import Event, UserManagerEvents


class TestEvent:
    """Tests for a single named event."""

    @pytest.mark.asyncio
    async def test_raise_calls_handlers_in_order(self):
        """Test handlers run in registration order with the event arguments."""
        event = Event("test")
        calls = []
        event.add_handler(lambda value: calls.append(("first", value)))
        event.add_handler(lambda value: calls.append(("second", value)))

        await event.raise_event(42)

        assert calls == [("first", 42), ("second", 42)]

    @pytest.mark.asyncio
    async def test_coroutine_handlers_are_awaited(self):
        """Test coroutine handlers are awaited."""
        event = Event("test")
        handler = AsyncMock()
        event.add_handler(handler)

        await event.raise_event("x")

        handler.assert_awaited_once_with("x")

    @pytest.mark.asyncio
    async def test_removed_handler_is_not_called(self):
        """Test a removed handler no longer receives events."""
        event = Event("test")
        handler = MagicMock()
        event.add_handler(handler)
        event.remove_handler(handler)

        await event.raise_event()

        handler.assert_not_called()
        assert event.handler_count == 0

    def test_remove_unknown_handler(self):
        """Test removing an unregistered handler is ignored."""
        event = Event("test")

        event.remove_handler(MagicMock())

        assert event.handler_count == 0

    @pytest.mark.asyncio
    async def test_handler_error_propagates(self):
        """Test a failing handler's error reaches the raiser."""
        event = Event("test")
        event.add_handler(MagicMock(side_effect=RuntimeError("boom")))

        with pytest.raises(RuntimeError, match="boom"):
            await event.raise_event()


class TestUserManagerEvents:
    """Tests for load/unload notifications and token timers."""

    def test_satisfies_protocol(self):
        assert isinstance(UserManagerEvents(), EventNotifierProtocol)

    @pytest.mark.asyncio
    async def test_load_raises_user_loaded(self):
        """Test a fresh load notifies user_loaded with the user."""
        events = UserManagerEvents()
        handler = MagicMock()
        events.add_user_loaded(handler)
        user = User(profile={"sub": "u1"})

        await events.load(user)

        handler.assert_called_once_with(user)

    @pytest.mark.asyncio
    async def test_load_from_storage_does_not_raise_user_loaded(self):
        """Test reloading a stored user only schedules timers."""
        events = UserManagerEvents()
        handler = MagicMock()
        events.add_user_loaded(handler)
        user = User(access_token="tok", expires_at=int(time.time()) + 3600)

        await events.load(user, from_storage=True)

        handler.assert_not_called()
        assert events.has_pending_timers
        events.cancel_timers()

    @pytest.mark.asyncio
    async def test_unload_cancels_timers_and_notifies(self):
        """Test unload clears timers and raises user_unloaded."""
        events = UserManagerEvents()
        handler = MagicMock()
        events.add_user_unloaded(handler)
        await events.load(User(access_token="tok", expires_at=int(time.time()) + 3600))

        await events.unload()

        handler.assert_called_once_with()
        assert not events.has_pending_timers

    @pytest.mark.asyncio
    async def test_no_timers_without_expiry(self):
        """Test a user without token expiry schedules nothing."""
        events = UserManagerEvents()

        await events.load(User(access_token="tok"))
        assert not events.has_pending_timers

        await events.load(User(expires_at=int(time.time()) + 3600))
        assert not events.has_pending_timers

    @pytest.mark.asyncio
    async def test_expired_token_fires_expired_event(self):
        """Test an already expired token raises access_token_expired promptly."""
        events = UserManagerEvents()
        expired = asyncio.Event()
        expiring = MagicMock()
        events.add_access_token_expired(lambda: expired.set())
        events.add_access_token_expiring(expiring)

        await events.load(User(access_token="tok", expires_at=int(time.time()) - 10))
        await asyncio.wait_for(expired.wait(), timeout=2)

        expiring.assert_not_called()
        assert not events.has_pending_timers

    @pytest.mark.asyncio
    async def test_fire_raises_expiring_event(self):
        """Test a fired expiring timer notifies its handlers."""
        events = UserManagerEvents()
        handler = AsyncMock()
        events.add_access_token_expiring(handler)

        events._fire(events.access_token_expiring)
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        handler.assert_awaited_once_with()

    @pytest.mark.asyncio
    async def test_reload_replaces_timers(self):
        """Test loading a new user reschedules the timers."""
        events = UserManagerEvents()
        await events.load(User(access_token="a", expires_at=int(time.time()) + 3600))
        first = events._expired_timer

        await events.load(User(access_token="b", expires_at=int(time.time()) + 7200))

        assert first.cancelled()
        assert events._expired_timer is not first
        events.cancel_timers()

    @pytest.mark.asyncio
    async def test_notification_helpers(self):
        """Test the raise helpers reach their events."""
        events = UserManagerEvents()
        renew_error = MagicMock()
        signed_out = MagicMock()
        session_changed = MagicMock()
        events.add_silent_renew_error(renew_error)
        events.add_user_signed_out(signed_out)
        events.add_user_session_changed(session_changed)
        error = RuntimeError("renew failed")

        await events.raise_silent_renew_error(error)
        await events.raise_user_signed_out()
        await events.raise_user_session_changed()

        renew_error.assert_called_once_with(error)
        signed_out.assert_called_once_with()
        session_changed.assert_called_once_with()
