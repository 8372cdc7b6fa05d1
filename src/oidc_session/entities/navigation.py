"""Value objects for a single navigation round trip.

These are transient and owned by the call stack of one flow invocation.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class NavigatorParams:
    """Parameters handed to a navigator's ``prepare`` and ``navigate``."""
    
    start_url: Optional[str] = None
    url: Optional[str] = None
    
    # Popup navigator
    popup_window_features: Optional[str] = None
    popup_window_target: Optional[str] = None
    
    # Popup and iframe navigators (seconds)
    timeout: Optional[float] = None


@dataclass(frozen=True)
class NavigationResponse:
    """Final URL a navigation resolved with."""
    
    url: str


@dataclass(frozen=True)
class SigninRequest:
    """Authorization request built by the protocol client."""
    
    url: str
    state: Optional[str] = None


@dataclass(frozen=True)
class SigninResponse:
    """Parsed authorization callback."""
    
    profile: Dict[str, Any] = field(default_factory=dict)
    access_token: Optional[str] = None
    id_token: Optional[str] = None
    token_type: Optional[str] = None
    expires_at: Optional[int] = None
    session_state: Optional[str] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    state: Any = None


@dataclass(frozen=True)
class SignoutRequest:
    """End-session request built by the protocol client."""
    
    url: str
    state: Optional[str] = None


@dataclass(frozen=True)
class SignoutResponse:
    """Parsed end-session callback."""
    
    state: Any = None
    error: Optional[str] = None
    error_description: Optional[str] = None


@dataclass(frozen=True)
class SessionStatus:
    """Compact result of a silent session-status query."""
    
    session_state: str
    sub: str
