"""
OpenTimestamps calendar client.

Two calls are used against a calendar server:

    POST {calendar_url}/digest            body: raw digest bytes
    GET  {calendar_url}/verify/{digest}

The body returned by /digest is kept verbatim as an opaque attestation;
it is not parsed or validated as a timestamp proof.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import httpx

from quillproof.protocol.errors import AnchorNetworkError, CalendarError

logger = logging.getLogger(__name__)

DEFAULT_CALENDAR_URL = "https://alice.btc.calendar.opentimestamps.org"


@dataclass
class Timestamp:
    """Anchor record returned by the calendar for one digest."""

    digest: str
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {"digest": self.digest, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Timestamp":
        return cls(digest=data["digest"], timestamp=data["timestamp"])


class AnchorClient(Protocol):
    async def stamp(self, hex_hash: str) -> Timestamp: ...

    async def verify(self, timestamp: Timestamp) -> bool: ...


class OpenTimestampsCalendar:
    """
    Async calendar client over httpx.

    Typical usage:

        calendar = OpenTimestampsCalendar()
        anchor = await calendar.stamp(tree.root_hash)
        ok = await calendar.verify(anchor)

    A pre-built httpx.AsyncClient may be injected (tests use one backed by
    httpx.MockTransport); otherwise a short-lived client is opened per call.
    """

    def __init__(
        self,
        calendar_url: str = DEFAULT_CALENDAR_URL,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._calendar_url = calendar_url.rstrip("/")
        self._timeout = timeout
        self._client = client

    @property
    def calendar_url(self) -> str:
        return self._calendar_url

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            if self._client is not None:
                return await self._client.request(method, url, timeout=self._timeout, **kwargs)
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise AnchorNetworkError(f"Network error: {e}") from e

    async def stamp(self, hex_hash: str) -> Timestamp:
        """Submit a hex digest to the calendar."""
        try:
            digest_bytes = bytes.fromhex(hex_hash)
        except (TypeError, ValueError) as e:
            raise CalendarError(f"Invalid hex digest: {e}") from e

        response = await self._send(
            "POST",
            f"{self._calendar_url}/digest",
            content=digest_bytes,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

        if not response.is_success:
            raise CalendarError(
                f"Calendar submission failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        logger.debug("Calendar accepted digest %s", hex_hash)
        return Timestamp(digest=hex_hash, timestamp=response.text)

    async def verify(self, timestamp: Timestamp) -> bool:
        response = await self._send("GET", f"{self._calendar_url}/verify/{timestamp.digest}")
        return response.is_success
