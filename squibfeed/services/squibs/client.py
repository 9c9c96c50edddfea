"""Squibs API client: lowest level, sends request only. No validation."""
import asyncio
import json
import logging
from typing import Any

import httpx

from squibfeed.services.squibs.config import SquibsConfig
from squibfeed.services.squibs.types import LocalSquibsRequest, UserSquibsRequest

logger = logging.getLogger(__name__)


class SquibsClient:
    """Local feed, user feed and delete calls against the Squibs backend."""

    def __init__(self, config: SquibsConfig | None = None, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._config = config or SquibsConfig()
        self._http = httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=self._config.timeout,
            headers=self._config.headers(),
            transport=transport,
        )

    @property
    def config(self) -> SquibsConfig:
        return self._config

    async def aclose(self) -> None:
        await self._http.aclose()

    @staticmethod
    def _unwrap_body(data: Any) -> Any:
        """Lambda proxy responses nest the payload under "body", sometimes as a JSON string. Raises ValueError."""
        if isinstance(data, dict) and "body" in data:
            body = data["body"]
            if isinstance(body, str):
                return json.loads(body)
            return body
        return data

    @staticmethod
    def _undecodable(r: httpx.Response, detail: Any) -> dict[str, Any]:
        logger.warning("Squibs %s: undecodable body (status=%s)", r.request.url.path, r.status_code)
        return {
            "error": "Squibs API error: undecodable body",
            "status_code": r.status_code,
            "detail": str(detail)[:500] if detail else None,
        }

    async def _post(self, path: str, json_body: dict[str, Any]) -> dict[str, Any]:
        try:
            r = await self._http.post(path, json=json_body)
        except httpx.HTTPError as e:
            return {"error": str(e) or type(e).__name__}
        if not r.is_success:
            return {
                "error": f"Squibs API error: {r.status_code}",
                "status_code": r.status_code,
                "detail": (r.text[:500] if r.text else None),
            }
        try:
            body = self._unwrap_body(r.json()) if r.content else {}
        except ValueError:
            return self._undecodable(r, r.text)
        if not isinstance(body, dict):
            return self._undecodable(r, body)
        return body

    async def _post_with_retry(self, path: str, json_body: dict[str, Any]) -> dict[str, Any]:
        """POST with linear backoff (retry_delay * attempt). Returns the last error after the final attempt."""
        attempts = self._config.retry_attempts
        raw: dict[str, Any] = {}
        for attempt in range(1, attempts + 1):
            raw = await self._post(path, json_body)
            if not raw.get("error"):
                return raw
            logger.info("Squibs %s attempt %s/%s failed: %s", path, attempt, attempts, raw["error"])
            if attempt < attempts:
                await asyncio.sleep(self._config.retry_delay * attempt)
        return raw

    async def local_squibs(self, body: LocalSquibsRequest) -> dict[str, Any]:
        """POST /local-squibs. lon/lat must already be 2-decimal strings."""
        return await self._post("/local-squibs", dict(body))

    async def user_squibs(self, body: UserSquibsRequest) -> dict[str, Any]:
        """POST /user-squibs with retry; network hiccups are common on mobile links."""
        return await self._post_with_retry("/user-squibs", dict(body))

    async def delete_squib(self, post_id: str) -> dict[str, Any]:
        """POST /delete-squib."""
        return await self._post("/delete-squib", {"uuid": post_id})
