"""Entities and protocol interfaces for oidc-session."""

from .navigation import (
    NavigationResponse,
    NavigatorParams,
    SessionStatus,
    SigninRequest,
    SigninResponse,
    SignoutRequest,
    SignoutResponse,
)
from .protocols import (
    BackgroundServiceProtocol,
    EventNotifierProtocol,
    NavigatorHandleProtocol,
    NavigatorProtocol,
    ProtocolClientProtocol,
    RevocationClientFactory,
    RevocationClientProtocol,
    StateStoreProtocol,
)
from .user import User

__all__ = [
    "User",
    "NavigatorParams",
    "NavigationResponse",
    "SigninRequest",
    "SigninResponse",
    "SignoutRequest",
    "SignoutResponse",
    "SessionStatus",
    "StateStoreProtocol",
    "NavigatorProtocol",
    "NavigatorHandleProtocol",
    "ProtocolClientProtocol",
    "RevocationClientProtocol",
    "RevocationClientFactory",
    "EventNotifierProtocol",
    "BackgroundServiceProtocol",
]
