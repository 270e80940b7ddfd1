"""
Per-instance cache for the shared Diffie-Hellman prime.

The prime is fetched from the server on first use and reused for the lifetime
of the owning client. Concurrent first callers share a single in-flight fetch.
"""

import asyncio
import enum
import logging
from typing import Optional

from .transport import ModulusSource

logger = logging.getLogger(__name__)


class ModulusState(enum.Enum):
    UNFETCHED = "unfetched"
    FETCHING = "fetching"
    CACHED = "cached"


class ModulusCache:
    """
    Single-flight cache around a ModulusSource.

    A failed fetch is not cached: the error goes to every waiter and the next
    get() starts over. There is no retry.
    """

    def __init__(self, source: ModulusSource):
        """
        Initialize the cache.

        Args:
            source: Where to fetch the prime from
        """
        self.source = source
        self._value: Optional[bytes] = None
        self._inflight: Optional[asyncio.Task] = None

    @property
    def state(self) -> ModulusState:
        if self._value is not None:
            return ModulusState.CACHED
        if self._inflight is not None:
            return ModulusState.FETCHING
        return ModulusState.UNFETCHED

    @property
    def value(self) -> Optional[bytes]:
        return self._value

    async def get(self) -> bytes:
        """
        Return the prime, fetching it if this is the first call.

        Returns:
            The prime as big-endian bytes

        Raises:
            TransportError: If the fetch fails
        """
        if self._value is not None:
            return self._value

        if self._inflight is None:
            logger.debug("Prime not cached, fetching")
            self._inflight = asyncio.ensure_future(self._fetch())

        # shield so a cancelled waiter does not cancel the fetch other callers share
        return await asyncio.shield(self._inflight)

    async def _fetch(self) -> bytes:
        try:
            prime = await self.source.fetch_prime()
        except BaseException:
            self._inflight = None
            raise
        self._value = prime
        self._inflight = None
        logger.debug("Cached %d-byte prime", len(prime))
        return prime

    def invalidate(self):
        """Drop the cached prime so the next get() fetches again"""
        self._value = None
