"""oidc-session - session lifecycle orchestration for OpenID Connect clients.

Coordinates the redirect, popup and hidden-frame navigators to sign a user in,
renew, persist, revoke and sign out, keeping the locally stored user in step
with what the authorization server granted.

Key Components:
- UserManager: Main orchestration service
- UserManagerEvents: User lifecycle and access token notifications
- SilentRenewService / SessionMonitor: Optional background services
- KeycloakProtocolClient: Request building and callback parsing against Keycloak
- InMemoryStateStore / RedisStateStore: Session stores
- TokenRevocationClient: Revocation endpoint client

Usage Example:
```python
from oidc_session import (
    KeycloakProtocolClient,
    RedisStateStore,
    UserManager,
    UserManagerSettings,
)

settings = UserManagerSettings(
    authority="https://sso.example.com/realms/acme",
    client_id="web",
    popup_redirect_uri="https://app.example.com/popup-callback",
    silent_redirect_uri="https://app.example.com/silent-callback",
)

async with RedisStateStore(redis_url="redis://localhost:6379") as store:
    manager = UserManager(
        settings,
        protocol_client=KeycloakProtocolClient(settings, store),
        user_store=store,
        popup_navigator=popup_navigator,
        iframe_navigator=iframe_navigator,
    )
    async with manager:
        user = await manager.signin_popup()
```
"""

from .__version__ import __version__

from .adapters import (
    InMemoryStateStore,
    KeycloakProtocolClient,
    RedisStateStore,
    TokenRevocationClient,
)
from .config import LoggingConfig, UserManagerSettings, setup_logging
from .core.exceptions import (
    ConfigurationError,
    NavigationError,
    NavigationTimeoutError,
    OidcSessionError,
    ProtocolError,
    RevocationError,
    StorageError,
    UnsupportedOperationError,
)
from .entities import (
    NavigationResponse,
    NavigatorHandleProtocol,
    NavigatorParams,
    NavigatorProtocol,
    ProtocolClientProtocol,
    RevocationClientProtocol,
    SessionStatus,
    SigninRequest,
    SigninResponse,
    SignoutRequest,
    SignoutResponse,
    StateStoreProtocol,
    User,
)
from .services import (
    SessionMonitor,
    SilentRenewService,
    UserManager,
    UserManagerEvents,
)

__all__ = [
    "__version__",
    # Orchestrator
    "UserManager",
    "UserManagerEvents",
    "SilentRenewService",
    "SessionMonitor",
    # Configuration
    "UserManagerSettings",
    "LoggingConfig",
    "setup_logging",
    # Entities
    "User",
    "NavigatorParams",
    "NavigationResponse",
    "SigninRequest",
    "SigninResponse",
    "SignoutRequest",
    "SignoutResponse",
    "SessionStatus",
    # Protocols
    "StateStoreProtocol",
    "NavigatorProtocol",
    "NavigatorHandleProtocol",
    "ProtocolClientProtocol",
    "RevocationClientProtocol",
    # Adapters
    "InMemoryStateStore",
    "RedisStateStore",
    "KeycloakProtocolClient",
    "TokenRevocationClient",
    # Exceptions
    "OidcSessionError",
    "ConfigurationError",
    "NavigationError",
    "NavigationTimeoutError",
    "ProtocolError",
    "UnsupportedOperationError",
    "RevocationError",
    "StorageError",
]
