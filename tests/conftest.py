"""Shared fixtures for grounded_proxy tests."""

from __future__ import annotations

import json

import pytest

from grounded_proxy.llm.client import UpstreamClient
from grounded_proxy.llm.provider_config import ProxySettings

UPSTREAM_HOST = "upstream.test"
UPSTREAM_PATH = "/v1beta/models/test-model:generateContent"


def make_settings(**overrides) -> ProxySettings:
    values = {
        "api_key": "test-key",
        "model_name": "test-model",
        "api_base_url": f"https://{UPSTREAM_HOST}/v1beta",
        "system_instruction": "You are a test coach.",
        "backoff_seconds": 0.5,
        "jitter_seconds": 0.25,
        "timeout_seconds": 5.0,
        "deadline_seconds": None,
    }
    values.update(overrides)
    return ProxySettings(**values)


def gemini_body(text: str = "Hello", attributions: list | None = None) -> dict:
    candidate: dict = {"content": {"parts": [{"text": text}]}}
    if attributions is not None:
        candidate["groundingMetadata"] = {"groundingAttributions": attributions}
    return {"candidates": [candidate]}


class SleepRecorder:
    """Async stand-in for `asyncio.sleep` that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def settings() -> ProxySettings:
    return make_settings()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def upstream_client(settings: ProxySettings, sleeper: SleepRecorder) -> UpstreamClient:
    return UpstreamClient(settings, sleep=sleeper, uniform=lambda low, high: high)


@pytest.fixture
def upstream_route(respx_mock):
    """Route matching the upstream generateContent endpoint (any query string)."""
    return respx_mock.post(host=UPSTREAM_HOST, path=UPSTREAM_PATH)


@pytest.fixture
def prompt_body() -> str:
    return json.dumps({"prompt": "How much protein do I need?"})
