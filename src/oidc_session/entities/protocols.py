"""Protocol interfaces for session lifecycle collaborators.

The orchestrator depends only on these capabilities. Concrete variants are
chosen at construction time and injected.
"""

from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

from .navigation import (
    NavigationResponse,
    NavigatorParams,
    SigninRequest,
    SigninResponse,
    SignoutRequest,
    SignoutResponse,
)
from .user import User


@runtime_checkable
class StateStoreProtocol(Protocol):
    """Asynchronous key/value persistence."""
    
    async def get(self, key: str) -> Optional[str]:
        """Get stored value, or None when absent."""
        ...
    
    async def set(self, key: str, value: str) -> None:
        """Store value under key."""
        ...
    
    async def remove(self, key: str) -> None:
        """Remove key if present."""
        ...


@runtime_checkable
class NavigatorHandleProtocol(Protocol):
    """An acquired navigation surface (window, frame or current page)."""
    
    async def navigate(self, params: NavigatorParams) -> NavigationResponse:
        """Navigate to ``params.url`` and resolve with the callback URL."""
        ...


@runtime_checkable
class NavigatorProtocol(Protocol):
    """One of the redirect, popup or iframe navigation strategies."""
    
    @property
    def url(self) -> Optional[str]:
        """URL of the page that received a redirect callback."""
        ...
    
    async def prepare(self, params: NavigatorParams) -> NavigatorHandleProtocol:
        """Acquire a navigation surface."""
        ...
    
    async def callback(self, url: str) -> NavigationResponse:
        """Hand a callback URL back to the waiting opener."""
        ...


@runtime_checkable
class ProtocolClientProtocol(Protocol):
    """Builds OIDC requests and parses their callbacks."""
    
    async def create_signin_request(self, args: Dict[str, Any]) -> SigninRequest:
        """Build an authorization request."""
        ...
    
    async def process_signin_response(self, url: str) -> SigninResponse:
        """Parse and validate an authorization callback URL."""
        ...
    
    async def create_signout_request(self, args: Dict[str, Any]) -> SignoutRequest:
        """Build an end-session request."""
        ...
    
    async def process_signout_response(self, url: str) -> SignoutResponse:
        """Parse an end-session callback URL."""
        ...
    
    async def get_revocation_endpoint(self) -> Optional[str]:
        """Discovered revocation endpoint, or None when not advertised."""
        ...


@runtime_checkable
class RevocationClientProtocol(Protocol):
    """Client bound to one revocation endpoint and client id."""
    
    async def revoke(self, token: str) -> None:
        """Revoke an opaque access token."""
        ...


@runtime_checkable
class EventNotifierProtocol(Protocol):
    """Receives user lifecycle notifications."""
    
    async def load(self, user: User, from_storage: bool = False) -> None:
        """A user was loaded, either fresh from a protocol exchange or from storage."""
        ...
    
    async def unload(self) -> None:
        """The user was removed."""
        ...


@runtime_checkable
class BackgroundServiceProtocol(Protocol):
    """Optional service wired to a user manager."""
    
    async def start(self) -> None:
        """Start the service."""
        ...
    
    def stop(self) -> None:
        """Stop the service."""
        ...


RevocationClientFactory = Callable[..., RevocationClientProtocol]
