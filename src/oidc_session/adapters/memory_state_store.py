"""In-memory implementation of the state store protocol."""

import logging
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class InMemoryStateStore:
    """Process-local key/value store.
    
    Suitable for tests and single-process applications; nothing survives a
    restart.
    """
    
    def __init__(self, key_prefix: str = ""):
        """Initialize in-memory state store."""
        self.key_prefix = key_prefix
        self._data: Dict[str, str] = {}
    
    def _make_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"
    
    async def get(self, key: str) -> Optional[str]:
        logger.debug(f"InMemoryStateStore.get: {key}")
        return self._data.get(self._make_key(key))
    
    async def set(self, key: str, value: str) -> None:
        logger.debug(f"InMemoryStateStore.set: {key}")
        self._data[self._make_key(key)] = value
    
    async def remove(self, key: str) -> None:
        logger.debug(f"InMemoryStateStore.remove: {key}")
        self._data.pop(self._make_key(key), None)
    
    async def get_all_keys(self) -> List[str]:
        prefix_length = len(self.key_prefix)
        return [key[prefix_length:] for key in self._data if key.startswith(self.key_prefix)]
