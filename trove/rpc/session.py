"""Backend client construction and the user session capability."""

from __future__ import annotations

import os
from dataclasses import dataclass

from trove.rpc.client import RpcClient

DEFAULT_SUPABASE_URL = "http://localhost:54321"
AUTH_PATH = "/auth"


@dataclass(slots=True, frozen=True)
class UserSession:
    user_id: str | None = None
    access_token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)


ANONYMOUS = UserSession()


def create_client_from_env(access_token: str | None = None) -> RpcClient:
    """Create a client using SUPABASE_URL and SUPABASE_ANON_KEY."""
    url = os.environ.get("SUPABASE_URL", DEFAULT_SUPABASE_URL)
    key = os.environ.get("SUPABASE_ANON_KEY", "")
    return RpcClient(url, key, access_token=access_token)


def create_admin_client_from_env() -> RpcClient:
    """Create a service-role client. Raises KeyError when the key is unset."""
    url = os.environ.get("SUPABASE_URL", DEFAULT_SUPABASE_URL)
    key = os.environ["SUPABASE_SERVICE_ROLE_KEY"]
    return RpcClient(url, key)
