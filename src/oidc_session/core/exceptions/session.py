"""Session lifecycle exceptions for oidc-session."""

from .base import OidcSessionError


class ConfigurationError(OidcSessionError):
    """Raised when a required setting (such as a redirect URI) is missing."""
    pass


class NavigationError(OidcSessionError):
    """Raised when a navigator fails (popup blocked or closed, frame load failure)."""
    pass


class NavigationTimeoutError(OidcSessionError):
    """Raised when a silent or popup navigation exceeds its timeout."""
    pass


class ProtocolError(OidcSessionError):
    """Raised when an authorization server response is malformed or invalid."""
    pass


class UnsupportedOperationError(OidcSessionError):
    """Raised when the authorization server does not advertise a capability."""
    pass


class RevocationError(OidcSessionError):
    """Raised when the revocation endpoint rejects or fails a request."""
    pass


class StorageError(OidcSessionError):
    """Raised when the session store backend fails."""
    pass
