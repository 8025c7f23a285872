"""REST API adapter — implements RemotePort over HTTP with httpx.

All HTTP-specific logic lives here. Core modules never import this directly;
they depend on the RemotePort protocol.

Every failure surfaces as RemoteError: transport problems carry status 0,
non-2xx responses carry their HTTP status and the server's error message.
There is no retry; callers decide how to degrade.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic.alias_generators import to_camel

from projectflow.ports.remote_port import COLLECTIONS, RemoteError

logger = logging.getLogger(__name__)


def _query_params(filters: dict[str, Any]) -> dict[str, str]:
    """Turn snake_case keyword filters into the API's camelCase query string."""
    params: dict[str, str] = {}
    for key, value in filters.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        params[to_camel(key)] = str(value)
    return params


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        return body.get("error") or body.get("message") or "Request failed"
    return "Request failed"


class HttpCollection:
    """CRUD endpoints of one collection under /api/<name>."""

    def __init__(self, client: HttpRemoteClient, name: str) -> None:
        self._client = client
        self.name = name

    @property
    def _path(self) -> str:
        return f"/api/{self.name}"

    async def get_all(self, **filters: Any) -> list[dict]:
        data = await self._client.request("GET", self._path, params=_query_params(filters))
        return data if isinstance(data, list) else []

    async def get_by_id(self, entity_id: str) -> dict:
        return await self._client.request("GET", f"{self._path}/{entity_id}")

    async def create(self, data: dict) -> dict:
        return await self._client.request("POST", self._path, json=data)

    async def update(self, entity_id: str, data: dict) -> dict:
        return await self._client.request("PUT", f"{self._path}/{entity_id}", json=data)

    async def delete(self, entity_id: str) -> None:
        await self._client.request("DELETE", f"{self._path}/{entity_id}")


class HttpRemoteClient:
    """httpx implementation of RemotePort."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        access_token: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if base_url is None or timeout is None:
            from projectflow.config import settings
            base_url = base_url or settings.API_URL
            timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS

        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )
        self._access_token = access_token
        self._collections = {name: HttpCollection(self, name) for name in COLLECTIONS}

    def set_access_token(self, token: str) -> None:
        self._access_token = token

    def collection(self, name: str) -> HttpCollection:
        try:
            return self._collections[name]
        except KeyError:
            raise ValueError(f"Unknown collection: {name!r}") from None

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        user_id: str | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (None when empty)."""
        headers: dict[str, str] = {}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        if user_id:
            headers["x-user-id"] = user_id

        try:
            resp = await self._http.request(
                method, path, params=params, json=json, headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.debug("%s %s transport error: %s", method, path, exc)
            raise RemoteError(0, f"{method} {path} failed: {exc}") from exc

        if resp.is_error:
            raise RemoteError(resp.status_code, _error_message(resp))

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise RemoteError(resp.status_code, f"Invalid JSON from {path}") from exc

    # ------------------------------------------------------------------
    # Consolidated fetch
    # ------------------------------------------------------------------

    async def get_initial_data(self, user_id: str | None = None) -> dict[str, list]:
        """All collections for one user in a single round trip."""
        data = await self.request(
            "GET", "/api/dashboard/initial-data", params=_query_params({"user_id": user_id}),
        )
        if not isinstance(data, dict):
            raise RemoteError(200, "initial-data response is not an object")
        return data

    # ------------------------------------------------------------------
    # Subscriptions (acting user travels in the x-user-id header)
    # ------------------------------------------------------------------

    async def get_subscription_status(self, user_id: str) -> dict:
        return await self.request("GET", "/api/subscriptions/status", user_id=user_id)

    async def check_access(self, user_id: str) -> dict:
        return await self.request("GET", "/api/subscriptions/check-access", user_id=user_id)

    async def get_billing_history(self, user_id: str) -> list[dict]:
        data = await self.request(
            "GET", "/api/subscriptions/billing-history", user_id=user_id,
        )
        return data if isinstance(data, list) else []

    async def cancel_subscription(self, user_id: str) -> dict:
        return await self.request("POST", "/api/subscriptions/cancel", user_id=user_id)

    async def redeem_coupon(self, code: str, user_id: str) -> dict:
        return await self.request(
            "POST", "/api/subscriptions/redeem-coupon", json={"code": code}, user_id=user_id,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> HttpRemoteClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
