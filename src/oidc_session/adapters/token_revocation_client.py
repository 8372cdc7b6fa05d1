"""Token revocation endpoint client (RFC 7009)."""

import logging
from typing import Optional

import httpx

from ..core.exceptions import RevocationError

logger = logging.getLogger(__name__)


class TokenRevocationClient:
    """Revokes access tokens at one discovered revocation endpoint."""
    
    def __init__(
        self,
        url: str,
        client_id: str,
        client_secret: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize revocation client."""
        if not url:
            raise ValueError("url is required")
        
        if not client_id:
            raise ValueError("client_id is required")
        
        self.url = url
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self._transport = transport
    
    async def revoke(self, token: str) -> None:
        """Revoke an access token."""
        if not token:
            raise RevocationError("No access token provided")
        
        data = {
            "client_id": self.client_id,
            "token": token,
            "token_type_hint": "access_token",
        }
        if self.client_secret:
            data["client_secret"] = self.client_secret
        
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, data=data)
        
        except httpx.HTTPError as e:
            logger.error(f"Token revocation request failed: {e}")
            raise RevocationError(f"Token revocation request failed: {e}") from e
        
        if response.status_code != 200:
            logger.error(f"Token revocation returned status {response.status_code}")
            raise RevocationError(
                f"Token revocation failed with status {response.status_code}",
                details={"status_code": response.status_code, "url": self.url},
            )
        
        logger.info("Access token revoked")
