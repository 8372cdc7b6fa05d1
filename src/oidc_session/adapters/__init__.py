"""Concrete collaborators for the session lifecycle orchestrator."""

from .keycloak_protocol_client import KeycloakProtocolClient
from .memory_state_store import InMemoryStateStore
from .redis_state_store import RedisStateStore
from .token_revocation_client import TokenRevocationClient

__all__ = [
    "KeycloakProtocolClient",
    "InMemoryStateStore",
    "RedisStateStore",
    "TokenRevocationClient",
]
