"""Remote port — abstract interface for the REST data API.

Core modules depend on this protocol, never on a specific HTTP client.
"""

from __future__ import annotations

from typing import Any, Protocol

# Collection names as they appear in the URL path: /api/<collection>
COLLECTIONS = (
    "users",
    "projects",
    "tasks",
    "customers",
    "time-entries",
    "incomes",
    "notifications",
    "activities",
    "timers",
    "events",
)


class RemoteError(Exception):
    """Raised when any remote call fails.

    `status` is the HTTP status code, or 0 when the request never got a
    response (connection refused, timeout, DNS failure).
    """

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message

    def __repr__(self) -> str:
        return f"RemoteError(status={self.status}, message={self.message!r})"


class CollectionPort(Protocol):
    """CRUD calls for one entity collection."""

    async def get_all(self, **filters: Any) -> list[dict]: ...

    async def get_by_id(self, entity_id: str) -> dict: ...

    async def create(self, data: dict) -> dict: ...

    async def update(self, entity_id: str, data: dict) -> dict: ...

    async def delete(self, entity_id: str) -> None: ...


class RemotePort(Protocol):
    """Abstract REST API used by the store, sync queue and bootstrapper."""

    def collection(self, name: str) -> CollectionPort: ...

    def set_access_token(self, token: str) -> None: ...

    async def get_initial_data(self, user_id: str | None = None) -> dict[str, list]: ...

    async def get_subscription_status(self, user_id: str) -> dict: ...

    async def check_access(self, user_id: str) -> dict: ...

    async def get_billing_history(self, user_id: str) -> list[dict]: ...

    async def cancel_subscription(self, user_id: str) -> dict: ...

    async def redeem_coupon(self, code: str, user_id: str) -> dict: ...
