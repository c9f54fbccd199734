"""
Carrier bearer-token cache.

One instance is created at startup and injected into every
ShiprocketConnector.
"""
import asyncio
from datetime import datetime
from typing import Callable, Optional, Tuple

from storefront.exceptions import TokenExpired
from storefront.utils.logger import log

# Returns (token, expiry) from durable storage, or None
TokenLoader = Callable[[], Optional[Tuple[Optional[str], Optional[datetime]]]]


class TokenCache:
    """In-memory token + expiry, backed by a loader for the persisted record."""

    def __init__(self):
        self.token: Optional[str] = None
        self.expires_at: Optional[datetime] = None
        self._inflight: Optional[asyncio.Future] = None

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.utcnow()
        return bool(self.token) and self.expires_at is not None and now < self.expires_at

    def store(self, token: str, expires_at: datetime) -> None:
        self.token = token
        self.expires_at = expires_at

    def invalidate(self) -> None:
        self.token = None
        self.expires_at = None

    async def get_token(self, loader: TokenLoader) -> str:
        """
        Return a valid token or raise TokenExpired.

        Memory first, then the persisted record. Concurrent callers that miss
        the memory cache share one in-flight load instead of each hitting storage.
        """
        if self.is_valid():
            return self.token

        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._load(loader))
        return await asyncio.shield(self._inflight)

    async def _load(self, loader: TokenLoader) -> str:
        record = loader()
        if not record:
            raise TokenExpired("Shiprocket integration is not configured. Authenticate first.")

        token, expires_at = record
        if not token or expires_at is None or datetime.utcnow() >= expires_at:
            log.warning("Persisted Shiprocket token is missing or expired")
            raise TokenExpired()

        self.store(token, expires_at)
        return token
