"""
Base connector class for outbound HTTP integrations
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple
from datetime import datetime
import asyncio
import aiohttp

from storefront.exceptions import StorefrontError
from storefront.utils.logger import log


class BaseConnector(ABC):
    """
    Base class for third-party API connectors.

    Every call goes through _send(), which performs exactly one HTTP request.
    No retries: upstream failures surface to the caller as `error_class`.
    """

    error_class = StorefrontError
    REQUEST_TIMEOUT = 30.0  # seconds

    def __init__(self, name: str):
        self.name = name
        self.last_request_at: Optional[datetime] = None
        self.request_count = 0
        self.error_count = 0

    @abstractmethod
    async def validate_connection(self) -> bool:
        """Validate connection is working"""
        pass

    async def _send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        auth: Optional[aiohttp.BasicAuth] = None,
    ) -> Tuple[int, Dict[str, Any]]:
        """
        Perform one request and return (status, decoded JSON body).

        Non-JSON bodies are wrapped as {"message": <text>}.
        """
        self.request_count += 1
        self.last_request_at = datetime.utcnow()
        timeout = aiohttp.ClientTimeout(total=self.REQUEST_TIMEOUT)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    method,
                    url,
                    headers=headers,
                    json=json,
                    params=params,
                    auth=auth,
                ) as response:
                    text = await response.text()
                    if not text.strip():
                        return response.status, {}
                    try:
                        payload = await response.json(content_type=None)
                    except ValueError:
                        payload = {"message": text}
                    return response.status, payload if isinstance(payload, dict) else {"data": payload}
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.error_count += 1
            log.error(f"{self.name} {method} {url} failed: {e}")
            raise self.error_class(f"{self.name} is unreachable: {type(e).__name__}")

    @staticmethod
    def _error_message(payload: Dict[str, Any], default: str) -> str:
        """Pull the most useful human-readable message out of an error body."""
        if not isinstance(payload, dict):
            return default
        error = payload.get("error")
        if isinstance(error, dict) and error.get("description"):
            return str(error["description"])
        for key in ("message", "error", "detail"):
            value = payload.get(key)
            if value and isinstance(value, str):
                return value
        errors = payload.get("errors")
        if isinstance(errors, dict) and errors:
            first = next(iter(errors.values()))
            if isinstance(first, list) and first:
                return str(first[0])
            return str(first)
        return default

    def get_status(self) -> Dict[str, Any]:
        """Get connector status"""
        return {
            "name": self.name,
            "last_request_at": self.last_request_at.isoformat() if self.last_request_at else None,
            "request_count": self.request_count,
            "error_count": self.error_count,
            "error_rate": self.error_count / max(self.request_count, 1),
        }
