"""HTTP client that fetches tree-form rules from the recognition API."""

from __future__ import annotations

import asyncio
import logging
import random

import httpx

from recognition.core.config import RuleApiConfig
from recognition.core.types import TreeRule

logger = logging.getLogger(__name__)


class RecognitionRuleClient:
    """Talks to the rules API on behalf of a disconnected client.

    Retries transport errors and 5xx responses with exponential backoff
    and jitter; 4xx responses fail immediately.
    """

    def __init__(
        self,
        config: RuleApiConfig | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or RuleApiConfig()
        self._http = http or httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=httpx.Timeout(self.config.timeout_seconds),
        )
        self._max_retries = self.config.max_retries

    # -- public API ----------------------------------------------------------

    async def list_active_rules_tree(self) -> list[TreeRule]:
        payload = await self._get(self.config.rules_path)
        if isinstance(payload, dict):
            payload = payload.get("items", [])
        return [TreeRule.model_validate(item) for item in payload]

    async def is_available(self) -> bool:
        try:
            r = await self._http.get("/api/health")
            return r.status_code == 200
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> RecognitionRuleClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -- internal ------------------------------------------------------------

    def _delay(self, attempt: int) -> float:
        base = self.config.backoff_seconds * 2**attempt
        return base + random.uniform(0, base / 2)

    async def _get(self, path: str) -> list | dict:
        last_exc: Exception | None = None
        for attempt in range(self._max_retries + 1):
            try:
                resp = await self._http.get(path)
                if resp.status_code >= 500 and attempt < self._max_retries:
                    last_exc = httpx.HTTPStatusError(
                        f"Server error {resp.status_code}",
                        request=resp.request,
                        response=resp,
                    )
                    logger.warning("Rules API returned %s, retrying", resp.status_code)
                    await asyncio.sleep(self._delay(attempt))
                    continue
                resp.raise_for_status()
                return resp.json()
            except httpx.TransportError as exc:
                last_exc = exc
                if attempt < self._max_retries:
                    logger.warning("Rules API unreachable (%s), retrying", exc)
                    await asyncio.sleep(self._delay(attempt))
                    continue
                raise
        raise last_exc  # type: ignore[misc]
