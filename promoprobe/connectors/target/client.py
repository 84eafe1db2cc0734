"""PromoProbe — Target Site Client.

Issues exactly one GET per probe. Never raises for network problems:
transport failures come back as ProbeTransportError.
"""

import asyncio
import time
from typing import Optional

import httpx

from promoprobe.config import settings
from promoprobe.core.logging import get_logger
from promoprobe.models.probe_models import (
    ProbeOutcome,
    ProbeResponse,
    ProbeTransportError,
    RequestSpec,
)

logger = get_logger("target.client")


class TargetClient:
    """Async HTTP client for the promo redemption page."""

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout or settings.probe_timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def execute(
        self, spec: RequestSpec, timeout: float | None = None
    ) -> ProbeOutcome:
        """Send one GET for `spec` and read the full body, whatever the status."""
        client = await self._get_client()
        deadline = timeout or self.timeout
        started = time.monotonic()

        try:
            # httpx timeouts are per phase; wait_for bounds the whole round-trip
            resp = await asyncio.wait_for(
                client.get(spec.url, headers=spec.headers, timeout=deadline),
                timeout=deadline,
            )
            body = resp.text
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            elapsed = (time.monotonic() - started) * 1000
            logger.warning(
                f"Probe timed out for {spec.code}: {e!r}",
                extra={"code": spec.code, "duration_ms": round(elapsed, 1)},
            )
            return ProbeTransportError(
                reason=f"Timed out after {deadline}s",
                timed_out=True,
                elapsed_ms=elapsed,
            )
        except httpx.RequestError as e:
            elapsed = (time.monotonic() - started) * 1000
            logger.warning(
                f"Probe failed for {spec.code}: {e!r}",
                extra={"code": spec.code, "duration_ms": round(elapsed, 1)},
            )
            return ProbeTransportError(
                reason=str(e) or type(e).__name__, elapsed_ms=elapsed
            )

        elapsed = (time.monotonic() - started) * 1000
        logger.info(
            f"Probe for {spec.code}: HTTP {resp.status_code}, {len(body)} chars",
            extra={
                "code": spec.code,
                "status_code": resp.status_code,
                "duration_ms": round(elapsed, 1),
            },
        )
        return ProbeResponse(
            http_status=resp.status_code, body=body, elapsed_ms=elapsed
        )
