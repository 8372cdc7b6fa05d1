"""Redis implementation of the state store protocol."""

import logging
from typing import List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from ..core.exceptions import StorageError

logger = logging.getLogger(__name__)


class RedisStateStore:
    """Redis-backed key/value store for users and protocol state.
    
    Unlike a cache, a session store must not hide failures: every backend
    error is raised as ``StorageError``.
    """
    
    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        redis_password: Optional[str] = None,
        redis_db: int = 0,
        key_prefix: str = "oidc_session",
        ttl: Optional[int] = None,
        client: Optional[redis.Redis] = None,
    ):
        """Initialize Redis state store."""
        self.redis_url = redis_url
        self.redis_password = redis_password
        self.redis_db = redis_db
        self.key_prefix = key_prefix
        self.ttl = ttl
        
        self._redis: Optional[redis.Redis] = client
    
    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self
    
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()
    
    async def connect(self) -> None:
        """Connect to Redis."""
        try:
            if self._redis is None:
                self._redis = redis.from_url(
                    self.redis_url,
                    password=self.redis_password,
                    db=self.redis_db,
                    decode_responses=True,
                )
            
            # Test connection
            await self._redis.ping()
            logger.info("Connected to Redis for session store")
        
        except RedisError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise StorageError(f"Redis connection failed: {e}") from e
    
    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            logger.info("Disconnected from Redis")
    
    def _ensure_connected(self) -> redis.Redis:
        """Ensure Redis connection is active."""
        if not self._redis:
            raise StorageError("Redis not connected. Use async context manager or call connect().")
        return self._redis
    
    def _make_key(self, key: str) -> str:
        """Add prefix to store key."""
        return f"{self.key_prefix}:{key}"
    
    async def get(self, key: str) -> Optional[str]:
        """Get value from Redis."""
        redis_client = self._ensure_connected()
        
        try:
            value = await redis_client.get(self._make_key(key))
        except RedisError as e:
            logger.error(f"Failed to get key {key}: {e}")
            raise StorageError(f"Failed to get key {key}: {e}", details={"key": key}) from e
        
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value
    
    async def set(self, key: str, value: str) -> None:
        """Set value in Redis, with the configured TTL if any."""
        redis_client = self._ensure_connected()
        full_key = self._make_key(key)
        
        try:
            if self.ttl:
                await redis_client.setex(full_key, self.ttl, value)
            else:
                await redis_client.set(full_key, value)
            logger.debug(f"Stored key {key}")
        
        except RedisError as e:
            logger.error(f"Failed to set key {key}: {e}")
            raise StorageError(f"Failed to set key {key}: {e}", details={"key": key}) from e
    
    async def remove(self, key: str) -> None:
        """Delete key from Redis."""
        redis_client = self._ensure_connected()
        
        try:
            await redis_client.delete(self._make_key(key))
            logger.debug(f"Deleted key {key}")
        
        except RedisError as e:
            logger.error(f"Failed to delete key {key}: {e}")
            raise StorageError(f"Failed to delete key {key}: {e}", details={"key": key}) from e
    
    async def get_all_keys(self) -> List[str]:
        """List keys under this store's prefix."""
        redis_client = self._ensure_connected()
        prefix = self._make_key("")
        
        try:
            keys = [key async for key in redis_client.scan_iter(match=f"{prefix}*")]
        except RedisError as e:
            logger.error(f"Failed to list keys: {e}")
            raise StorageError(f"Failed to list keys: {e}") from e
        
        result = []
        for key in keys:
            if isinstance(key, bytes):
                key = key.decode("utf-8")
            result.append(key[len(prefix):])
        return result
