"""Services for oidc-session."""

from .session_monitor import SessionMonitor
from .silent_renew_service import SilentRenewService
from .user_manager import UserManager
from .user_manager_events import Event, UserManagerEvents

__all__ = [
    "UserManager",
    "UserManagerEvents",
    "Event",
    "SilentRenewService",
    "SessionMonitor",
]
