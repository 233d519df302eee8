"""Home page recommendation rails."""

from __future__ import annotations

import pathlib
from dataclasses import dataclass

import yaml

from trove.logic.recommendations import RecommendationRail
from trove.rpc.client import RpcClient
from trove.rpc.session import UserSession

RAILS_PATH = pathlib.Path(__file__).with_name("rails.yml")


@dataclass(slots=True)
class RailConfig:
    kind: str
    limit: int = 10
    title: str | None = None


def load_rails(path: pathlib.Path = RAILS_PATH) -> list[RailConfig]:
    data = yaml.safe_load(path.read_text()) or []
    return [RailConfig(**item) for item in data]


def build_rails(client: RpcClient, session: UserSession, configs: list[RailConfig] | None = None) -> list[RecommendationRail]:
    return [
        RecommendationRail(client, session, config.kind, limit=config.limit, title=config.title)
        for config in (configs if configs is not None else load_rails())
    ]
