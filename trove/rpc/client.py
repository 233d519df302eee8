"""PostgREST client for the marketplace backend."""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = float(os.environ.get("RPC_TIMEOUT", 15.0))


class RpcError(RuntimeError):
    """A remote call failed: transport error, or a PostgREST error body."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        details: str | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details
        self.hint = hint

    @classmethod
    def from_response(cls, response: httpx.Response) -> "RpcError":
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = body.get("message") or response.reason_phrase or f"HTTP {response.status_code}"
        return cls(
            message,
            status_code=response.status_code,
            code=body.get("code"),
            details=body.get("details"),
            hint=body.get("hint"),
        )


class RpcClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        access_token: str | None = None,
        session: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.access_token = access_token
        self.session = session or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self.session.aclose()

    def with_token(self, access_token: str | None) -> "RpcClient":
        """Return a client for another user sharing the same connection pool."""
        return RpcClient(self.base_url, self.api_key, access_token=access_token, session=self.session)

    @property
    def headers(self) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token or self.api_key}",
        }

    async def rpc(self, function: str, params: Mapping[str, Any] | None = None) -> Any:
        url = f"{self.base_url}/rest/v1/rpc/{function}"
        logger.debug("RPC %s %s", function, params)
        response = await self._request("POST", url, json=dict(params or {}))
        return _decode(response)

    async def select(
        self,
        table: str,
        *,
        filters: Mapping[str, str] | None = None,
        order: str | None = None,
        columns: str = "*",
    ) -> list[dict[str, Any]]:
        params: dict[str, str] = {"select": columns, **(filters or {})}
        if order:
            params["order"] = order
        response = await self._request("GET", f"{self.base_url}/rest/v1/{table}", params=params)
        return _decode(response) or []

    async def select_page(
        self,
        table: str,
        *,
        filters: Mapping[str, str] | None = None,
        order: str | None = None,
        columns: str = "*",
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        """Select one window of rows plus the exact total matching the filters."""
        params: dict[str, Any] = {"select": columns, **(filters or {}), "limit": limit, "offset": offset}
        if order:
            params["order"] = order
        response = await self._request(
            "GET",
            f"{self.base_url}/rest/v1/{table}",
            params=params,
            headers={"Prefer": "count=exact"},
        )
        return _decode(response) or [], _total(response)

    async def count(self, table: str, *, filters: Mapping[str, str] | None = None) -> int:
        response = await self._request(
            "HEAD",
            f"{self.base_url}/rest/v1/{table}",
            params={"select": "*", **(filters or {})},
            headers={"Prefer": "count=exact"},
        )
        return _total(response)

    async def insert(self, table: str, row: Mapping[str, Any]) -> list[dict[str, Any]]:
        response = await self._request(
            "POST",
            f"{self.base_url}/rest/v1/{table}",
            json=dict(row),
            headers={"Prefer": "return=representation"},
        )
        return _decode(response) or []

    async def delete(self, table: str, *, filters: Mapping[str, str]) -> None:
        if not filters:
            raise ValueError("Refusing to delete without filters")
        await self._request("DELETE", f"{self.base_url}/rest/v1/{table}", params=dict(filters))

    async def _request(self, method: str, url: str, *, headers: Mapping[str, str] | None = None, **kwargs: Any) -> httpx.Response:
        merged = {**self.headers, **(headers or {})}
        try:
            response = await self.session.request(method, url, headers=merged, **kwargs)
        except httpx.TransportError as exc:
            raise RpcError(f"Backend unreachable: {exc}") from exc
        if response.status_code >= 400:
            error = RpcError.from_response(response)
            logger.debug("%s %s failed (%s): %s", method, url, response.status_code, error.message)
            raise error
        return response


def _decode(response: httpx.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return None
    return response.json()


def _total(response: httpx.Response) -> int:
    # Content-Range looks like "0-19/57", or "*/0" for an empty window.
    content_range = response.headers.get("Content-Range", "")
    _, _, total = content_range.partition("/")
    return int(total) if total.isdigit() else 0
