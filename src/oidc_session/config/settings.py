"""
Settings for the OIDC session lifecycle orchestrator.

Plain configuration values consumed by ``UserManager`` and the shipped
collaborators. Values can be passed explicitly or read from ``OIDC_*``
environment variables / a ``.env`` file.
"""
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_POPUP_WINDOW_FEATURES = "location=no,toolbar=no,width=500,height=500,left=100,top=100"
DEFAULT_POPUP_WINDOW_TARGET = "_blank"


class UserManagerSettings(BaseSettings):
    """Configuration surface of a relying-party client."""
    
    model_config = SettingsConfigDict(
        env_prefix="OIDC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )
    
    # Client identity
    authority: str = Field(min_length=1)
    client_id: str = Field(min_length=1)
    client_secret: Optional[SecretStr] = None
    
    # Protocol defaults
    redirect_uri: Optional[str] = None
    post_logout_redirect_uri: Optional[str] = None
    response_type: str = "code"
    scope: str = "openid"
    
    # Popup navigator
    popup_redirect_uri: Optional[str] = None
    popup_window_features: str = DEFAULT_POPUP_WINDOW_FEATURES
    popup_window_target: str = DEFAULT_POPUP_WINDOW_TARGET
    popup_request_timeout: Optional[float] = Field(default=None, gt=0)
    
    # Iframe navigator
    silent_redirect_uri: Optional[str] = None
    silent_request_timeout: float = Field(default=10.0, gt=0)
    
    # Background services
    automatic_silent_renew: bool = False
    monitor_session: bool = True
    access_token_expiring_notification_time: int = Field(default=60, ge=0)
    
    # Revocation endpoint
    revocation_timeout: float = Field(default=30.0, gt=0)
    
    @property
    def client_secret_value(self) -> Optional[str]:
        """Get the client secret as plain text, if configured."""
        if self.client_secret is None:
            return None
        return self.client_secret.get_secret_value()
