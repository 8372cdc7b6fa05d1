"""User session entity."""

import json
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from ..core.exceptions import StorageError


@dataclass
class User:
    """Locally held authenticated identity and its tokens.
    
    Persisted whole or not at all. The only in-place mutation is clearing the
    access-token fields after revocation.
    """
    
    id_token: Optional[str] = None
    session_state: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None
    profile: Dict[str, Any] = field(default_factory=dict)
    expires_at: Optional[int] = None
    state: Any = None
    
    @property
    def expires_in(self) -> Optional[int]:
        """Seconds until the access token expires (negative once expired)."""
        if self.expires_at is None:
            return None
        return self.expires_at - int(time.time())
    
    @property
    def expired(self) -> Optional[bool]:
        """Whether the access token has expired, or None without an expiry."""
        expires_in = self.expires_in
        if expires_in is None:
            return None
        return expires_in <= 0
    
    @property
    def scopes(self) -> List[str]:
        """Granted scopes as a list."""
        return (self.scope or "").split()
    
    def clear_access_token(self) -> None:
        """Drop access-token fields while keeping the identity."""
        self.access_token = None
        self.expires_at = None
        self.token_type = None
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert user to dictionary."""
        return asdict(self)
    
    def to_storage_string(self) -> str:
        """Serialize for the session store."""
        return json.dumps(self.to_dict())
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        """Create user from dictionary."""
        return cls(
            id_token=data.get('id_token'),
            session_state=data.get('session_state'),
            access_token=data.get('access_token'),
            refresh_token=data.get('refresh_token'),
            token_type=data.get('token_type'),
            scope=data.get('scope'),
            profile=data.get('profile') or {},
            expires_at=data.get('expires_at'),
            state=data.get('state'),
        )
    
    @classmethod
    def from_storage_string(cls, storage_string: str) -> 'User':
        """Deserialize a value written by ``to_storage_string``."""
        try:
            data = json.loads(storage_string)
        except json.JSONDecodeError as e:
            raise StorageError(f"Stored user is not valid JSON: {e}") from e
        
        if not isinstance(data, dict):
            raise StorageError("Stored user is not a JSON object")
        
        return cls.from_dict(data)
    
    @classmethod
    def from_signin_response(cls, response) -> 'User':
        """Create user from a processed signin response."""
        return cls(
            id_token=response.id_token,
            session_state=response.session_state,
            access_token=response.access_token,
            refresh_token=response.refresh_token,
            token_type=response.token_type,
            scope=response.scope,
            profile=dict(response.profile or {}),
            expires_at=response.expires_at,
            state=response.state,
        )
