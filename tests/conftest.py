import json
from dataclasses import replace
from typing import Any, Dict, List, Optional

import httpx
import pytest

from src.api.kv import KVBackend
from src.api.settings import Settings


def make_settings(tmp_path, **overrides) -> Settings:
    base = Settings(
        admin_token="abc",
        kv_rest_api_url=None,
        kv_rest_api_token=None,
        kv_announcements_key="announcements",
        kv_timeout_seconds=5.0,
        announcements_file=str(tmp_path / "data" / "announcements.json"),
        ephemeral_filesystem=False,
        cors_allow_origins=["*"],
        log_level="INFO",
        log_json=False,
    )
    return replace(base, **overrides)


class FakeKV:
    """In-process stand-in for a REST key-value service, served through httpx.MockTransport."""

    def __init__(self, token: str = "kv-token") -> None:
        self.token = token
        self.values: Dict[str, Any] = {}
        self.fail_reads = False
        self.fail_writes = False
        self.commands: List[list] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.headers.get("authorization") != f"Bearer {self.token}":
            return httpx.Response(401, json={"error": "Unauthorized"})
        command = json.loads(request.content)
        self.commands.append(command)
        op, key = command[0].upper(), command[1]
        if op == "GET":
            if self.fail_reads:
                return httpx.Response(503, json={"error": "Service unavailable"})
            return httpx.Response(200, json={"result": self.values.get(key)})
        if op == "SET":
            if self.fail_writes:
                return httpx.Response(200, json={"error": "ERR max requests limit exceeded"})
            self.values[key] = command[2]
            return httpx.Response(200, json={"result": "OK"})
        return httpx.Response(400, json={"error": f"unknown command {op}"})

    def stored(self, key: str = "announcements") -> Optional[list]:
        raw = self.values.get(key)
        return None if raw is None else json.loads(raw)

    def backend(self, key: str = "announcements", token: Optional[str] = None) -> KVBackend:
        return KVBackend(
            url="https://kv.example.test",
            token=token or self.token,
            key=key,
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def fake_kv() -> FakeKV:
    return FakeKV()


@pytest.fixture
def settings_factory(tmp_path):
    def factory(**overrides) -> Settings:
        return make_settings(tmp_path, **overrides)

    return factory


@pytest.fixture
def settings(settings_factory) -> Settings:
    return settings_factory()
