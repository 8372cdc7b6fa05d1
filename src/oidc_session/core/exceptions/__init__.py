"""Exceptions module for oidc-session.

This module provides the complete exception hierarchy for oidc-session.
"""

from .base import (
    OidcSessionError,
    create_error_response,
)

from .session import (
    ConfigurationError,
    NavigationError,
    NavigationTimeoutError,
    ProtocolError,
    UnsupportedOperationError,
    RevocationError,
    StorageError,
)

__all__ = [
    "OidcSessionError",
    "create_error_response",
    "ConfigurationError",
    "NavigationError",
    "NavigationTimeoutError",
    "ProtocolError",
    "UnsupportedOperationError",
    "RevocationError",
    "StorageError",
]
