"""
HTTP access to the key server.

Two read-only calls are needed: the shared prime and a user's public key.
Both values arrive base64-encoded inside a JSON object.
"""

import base64
import binascii
import logging
from typing import Optional, Protocol
import httpx

from .errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class ModulusSource(Protocol):
    async def fetch_prime(self) -> bytes:
        ...


class PublicKeyLookup(Protocol):
    async def resolve(self, user_id: int) -> bytes:
        ...


class ServerTransport:
    """
    httpx-based client for the key server endpoints.

    Implements both ModulusSource and PublicKeyLookup. Failures are raised
    as TransportError without retrying.
    """

    def __init__(self, base_url: str, http_client: Optional[httpx.AsyncClient] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize the transport.

        Args:
            base_url: Base URL of the key server
            http_client: Client to use; one is created (and owned) when omitted
            timeout: Request timeout for a created client, in seconds
        """
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self.http_client = http_client if http_client is not None else httpx.AsyncClient(timeout=timeout)

    async def fetch_prime(self) -> bytes:
        """Fetch the shared DH prime from GET /auth/prime"""
        return await self._get_base64_field("/auth/prime", "prime")

    async def resolve(self, user_id: int) -> bytes:
        """Fetch a user's public key from GET /users/{user_id}/publicKey"""
        return await self._get_base64_field(f"/users/{user_id}/publicKey", "publicKey")

    async def _get_base64_field(self, path: str, field: str) -> bytes:
        url = f"{self.base_url}{path}"
        try:
            response = await self.http_client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Request to %s failed: %s", url, e)
            raise TransportError(f"Request to {url} failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(f"Response from {url} is not JSON") from e

        value = data.get(field) if isinstance(data, dict) else None
        if not isinstance(value, str):
            raise TransportError(f"Response from {url} has no '{field}' string")

        try:
            return base64.b64decode(value, validate=True)
        except binascii.Error as e:
            raise TransportError(f"Field '{field}' from {url} is not valid base64") from e

    async def aclose(self):
        """Close the HTTP client if this transport created it"""
        if self._owns_client:
            await self.http_client.aclose()
