from __future__ import annotations

import pytest

from scoreboard.app import create_app
from scoreboard.config import ServerConfig
from scoreboard.storage.base import StoreError


class BrokenStore:
    """Backend whose every operation fails like a dropped connection."""

    mode = "postgres"

    def __init__(self, fail_init: bool = False):
        self.fail_init = fail_init
        self.calls = 0
        self.closed = False

    def init(self):
        if self.fail_init:
            raise StoreError("connection refused")

    def close(self):
        self.closed = True

    def _fail(self, *args, **kwargs):
        self.calls += 1
        raise StoreError("server closed the connection unexpectedly")

    seed = best = list = upsert = _fail


@pytest.fixture
def config() -> ServerConfig:
    return ServerConfig(seed_defaults=False)


@pytest.fixture
def seeded_config() -> ServerConfig:
    return ServerConfig(seed_defaults=True)


@pytest.fixture
def make_client(aiohttp_client):
    async def _make(cfg: ServerConfig, store=None):
        return await aiohttp_client(create_app(cfg, store=store))

    return _make
