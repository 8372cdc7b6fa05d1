"""Version information for oidc-session."""

__version__ = "0.1.0"
