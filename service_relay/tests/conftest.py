"""
Shared fixtures for relay tests.

Collaborators are replaced with in-memory subclasses of the real adapters so
serialization and key handling still run through production code.
"""

from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from shared.config import get_config
from service_relay.app.adapters.gateway_client import GatewayClient
from service_relay.app.adapters.translation_source import SheetTranslationSource
from service_relay.app.caching.response_cache import ResponseCache
from service_relay.app.main import RelayService


GATEWAY_URL = "https://gateway.example.com/v1/chat/completions"


class InMemoryCache(ResponseCache):
    """ResponseCache storing raw values in a dict instead of Redis."""

    def __init__(self):
        super().__init__("redis://unused:6379/0")
        self.entries: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.operations: List[tuple] = []
        self.fail_writes = False

    async def _get_raw(self, key: str) -> Optional[str]:
        self.operations.append(("get", key))
        return self.entries.get(key)

    async def _set_raw(self, key: str, value: str, ttl: int) -> bool:
        self.operations.append(("set", key))
        if self.fail_writes:
            raise RuntimeError("redis unavailable")
        self.entries[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, key: str) -> bool:
        self.operations.append(("delete", key))
        self.entries.pop(key, None)
        return True

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class StubGateway(GatewayClient):
    """GatewayClient recording the messages it is asked to complete."""

    def __init__(self, reply: str = "Ahoy there!"):
        super().__init__(GATEWAY_URL, "sk-test", gateway_token="gw-token")
        self.reply = reply
        self.calls: List[List[Dict[str, str]]] = []
        self.error: Optional[Exception] = None

    async def complete(self, messages):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return self.reply


class StubSheet(SheetTranslationSource):
    """Translation source serving a fixed mapping."""

    def __init__(self, mapping: Dict[str, str], sheet_name: str = "fr"):
        super().__init__("sheet-123", sheet_name, '{"type": "service_account"}')
        self.mapping = mapping
        self.fetches = 0
        self.error: Optional[Exception] = None

    async def fetch(self):
        self.fetches += 1
        if self.error is not None:
            raise self.error
        return {self.sheet_name: dict(self.mapping)}


@pytest.fixture
def relay_config():
    """Relay configuration isolated from the process environment."""
    return get_config(
        "relay",
        8000,
        env="test",
        system_prompt="You are a helpful assistant.",
        ai_gateway_url=GATEWAY_URL,
        openai_api_key="sk-test",
        ai_gateway_token="gw-token",
        spreadsheet_id=None,
        sheet_name=None,
        speech_api_key=None,
        default_voice_id=None,
        redis_url="redis://unused:6379/0",
    )


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def gateway():
    return StubGateway()


@pytest.fixture
def sheet():
    return StubSheet({
        "SYSTEM_PROMPT": "You are a pirate.",
        "GREETING": "Bonjour",
        "hello": "salut",
    })


@pytest.fixture
def make_client(relay_config, cache, gateway):
    """Build a TestClient around a RelayService with injected collaborators."""

    def _make(config=None, **collaborators):
        collaborators.setdefault("cache", cache)
        collaborators.setdefault("gateway_client", gateway)
        service = RelayService(config or relay_config, **collaborators)
        return TestClient(service.app)

    return _make


@pytest.fixture
def client(make_client):
    return make_client()
