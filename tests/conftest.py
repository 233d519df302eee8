import json
from collections import defaultdict
from typing import Any, Callable

import httpx
import pytest
import pytest_asyncio
import respx

from trove.rpc.client import RpcClient
from trove.rpc.session import UserSession
from trove.state.cache import StatusCache, default_cache

BASE_URL = "https://trove.test"
HOST = "trove.test"

SIGNED_IN = UserSession(user_id="user-1", access_token="user-token")
ANONYMOUS = UserSession()


class FakeBackend:
    """In-memory PostgREST: RPC functions by name plus simple tables."""

    def __init__(self) -> None:
        self.handlers: dict[str, Callable[[dict[str, Any]], Any]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.table_calls: list[tuple[str, str, dict[str, str]]] = []

    def on(self, function: str, result: Any = None, *, handler: Callable[[dict[str, Any]], Any] | None = None) -> None:
        self.handlers[function] = handler or (lambda params: result)

    def fail(self, function: str, message: str = "Internal error", status: int = 500) -> None:
        self.handlers[function] = lambda params: httpx.Response(status, json={"message": message, "code": "XX000"})

    def calls_to(self, function: str) -> list[dict[str, Any]]:
        return [params for name, params in self.calls if name == function]

    def rpc_response(self, request: httpx.Request, fn: str) -> httpx.Response:
        params = json.loads(request.content or b"{}")
        self.calls.append((fn, params))
        handler = self.handlers.get(fn)
        if handler is None:
            return httpx.Response(404, json={"message": f"Could not find the function {fn}", "code": "PGRST202"})
        result = handler(params)
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, json=result)

    def table_response(self, request: httpx.Request, table: str) -> httpx.Response:
        params = dict(request.url.params)
        self.table_calls.append((request.method, table, params))
        rows = self.tables[table]
        if request.method == "POST":
            row = json.loads(request.content)
            row.setdefault("id", f"{table}-{len(rows) + 1}")
            rows.append(row)
            return httpx.Response(201, json=[row])
        matching = [row for row in rows if _matches(row, params)]
        if request.method == "DELETE":
            self.tables[table] = [row for row in rows if row not in matching]
            return httpx.Response(204)
        order = params.get("order")
        if order:
            column, _, direction = order.partition(".")
            matching.sort(key=lambda row: row[column], reverse=direction == "desc")
        total = len(matching)
        offset = int(params.get("offset", 0))
        if "limit" in params:
            matching = matching[offset : offset + int(params["limit"])]
        headers = {}
        if "count=exact" in request.headers.get("Prefer", ""):
            window = f"{offset}-{offset + len(matching) - 1}" if matching else "*"
            headers["Content-Range"] = f"{window}/{total}"
        if request.method == "HEAD":
            return httpx.Response(200, headers=headers)
        return httpx.Response(200, json=matching, headers=headers)


def _matches(row: dict[str, Any], params: dict[str, str]) -> bool:
    for key, value in params.items():
        if value.startswith("eq.") and _text(row.get(key)) != value[3:]:
            return False
    return True


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@pytest.fixture()
def backend():
    fake = FakeBackend()
    with respx.mock(assert_all_called=False) as router:
        router.route(host=HOST, path__regex=r"^/rest/v1/rpc/(?P<fn>\w+)$").mock(side_effect=fake.rpc_response)
        router.route(host=HOST, path__regex=r"^/rest/v1/(?P<table>\w+)$").mock(side_effect=fake.table_response)
        yield fake


@pytest_asyncio.fixture()
async def client(backend):
    client = RpcClient(BASE_URL, "anon-key", access_token=SIGNED_IN.access_token)
    yield client
    await client.close()


@pytest.fixture()
def cache():
    return StatusCache()


@pytest.fixture(autouse=True)
def clear_default_cache():
    yield
    default_cache.clear()
