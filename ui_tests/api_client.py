"""Direct HTTP access to the calculator API for deterministic setup and checks."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

import httpx

from ui_tests.config import UiTestConfig, settings

logger = logging.getLogger(__name__)


class CalculatorApi:
    """Async client for the endpoints the journeys rely on.

    Responses are returned as-is; callers judge the status. Transport errors
    propagate as ``httpx.HTTPError``.

    Usage:
        async with CalculatorApi() as api:
            response = await api.register(user.registration_payload())
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        config: Optional[UiTestConfig] = None,
    ) -> None:
        self.config = config or settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.config.url(""),
            timeout=self.config.api_timeout,
            follow_redirects=False,
        )

    async def __aenter__(self) -> "CalculatorApi":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @staticmethod
    def _auth_headers(token: Optional[str]) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def register(self, payload: Dict[str, Any]) -> httpx.Response:
        """POST /auth/register; 201 on success."""
        response = await self._client.post("/auth/register", json=payload)
        logger.debug("POST /auth/register (%s) -> %s", payload.get("username"), response.status_code)
        return response

    async def create_calculation(
        self,
        calc_type: str,
        inputs: Sequence[Any],
        token: Optional[str] = None,
    ) -> httpx.Response:
        """POST /calculations with an optional bearer token."""
        response = await self._client.post(
            "/calculations",
            json={"type": calc_type, "inputs": list(inputs)},
            headers=self._auth_headers(token),
        )
        logger.debug("POST /calculations %s %s -> %s", calc_type, list(inputs), response.status_code)
        return response

    async def is_reachable(self) -> bool:
        """True when the application answers at all (any status)."""
        try:
            await self._client.get("/login")
        except httpx.HTTPError as exc:
            logger.debug("Application at %s unreachable: %s", self.config.base_url, exc)
            return False
        return True


def calculation_id(response: httpx.Response) -> Optional[str]:
    """Extract the created calculation id from a creation response, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    value = body.get("id") or body.get("calculation_id")
    if value is None and isinstance(body.get("data"), dict):
        value = body["data"].get("id")
    return str(value) if value is not None else None
