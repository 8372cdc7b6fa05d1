"""Configuration for oidc-session."""

from .logging_config import LoggingConfig, setup_logging
from .settings import UserManagerSettings

__all__ = [
    "LoggingConfig",
    "setup_logging",
    "UserManagerSettings",
]
