"""Base exceptions for oidc-session.

This module defines the base exception hierarchy for the oidc-session library.
All exceptions inherit from OidcSessionError and carry an error code and a
details mapping so callers can log or report them in a structured way.
"""

from typing import Any, Dict, Optional


class OidcSessionError(Exception):
    """Base exception for all oidc-session errors.
    
    All exceptions in the oidc-session library inherit from this base class
    and include structured error information for better debugging.
    """
    
    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        *args,
        **kwargs
    ):
        super().__init__(message, *args, **kwargs)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}


def create_error_response(exception: OidcSessionError) -> Dict[str, Any]:
    """Create standardized error payload from exception.
    
    Args:
        exception: The oidc-session exception
        
    Returns:
        Error payload dictionary
    """
    return {
        "error": {
            "code": exception.error_code,
            "message": exception.message,
            "details": exception.details,
            "type": exception.__class__.__name__,
        }
    }
