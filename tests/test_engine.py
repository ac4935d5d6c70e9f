"""End-to-end tests for the proxy entry handler."""

from __future__ import annotations

import json

import httpx
import pytest

from conftest import SleepRecorder, gemini_body, make_settings
from grounded_proxy.core.engine import process_request
from grounded_proxy.core.types import InboundRequest
from grounded_proxy.llm.client import UpstreamClient


def post(body: str | None) -> InboundRequest:
    return InboundRequest(method="POST", raw_body=body)


@pytest.mark.asyncio
@pytest.mark.respx(assert_all_called=False)
@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "PATCH", "OPTIONS"])
async def test_non_post_is_405_without_network(
    settings, upstream_route, prompt_body: str, method: str
) -> None:
    response = await process_request(InboundRequest(method=method, raw_body=prompt_body), settings)

    assert response.status_code == 405
    assert response.body == {"error": "Method Not Allowed"}
    assert not upstream_route.called


@pytest.mark.asyncio
@pytest.mark.respx(assert_all_called=False)
@pytest.mark.parametrize("raw", ["{oops", "[1, 2]", "true"])
async def test_unparseable_body_is_400_without_network(settings, upstream_route, raw: str) -> None:
    response = await process_request(post(raw), settings)

    assert response.status_code == 400
    assert response.body == {"error": "Invalid JSON format."}
    assert not upstream_route.called


@pytest.mark.asyncio
@pytest.mark.respx(assert_all_called=False)
@pytest.mark.parametrize("raw", [None, "{}", '{"prompt": ""}', '{"prompt": 3}'])
async def test_missing_prompt_is_400_without_network(settings, upstream_route, raw) -> None:
    response = await process_request(post(raw), settings)

    assert response.status_code == 400
    assert response.body == {"error": "Missing required parameter: prompt"}
    assert not upstream_route.called


@pytest.mark.asyncio
@pytest.mark.respx(assert_all_called=False)
@pytest.mark.parametrize("raw", ['{"prompt": "hi"}', "{oops", None])
async def test_missing_credential_is_500_regardless_of_body(upstream_route, raw) -> None:
    response = await process_request(post(raw), make_settings(api_key=None))

    assert response.status_code == 500
    assert response.body == {"error": "Server configuration error: API Key missing."}
    assert not upstream_route.called


@pytest.mark.asyncio
async def test_success_returns_text_and_complete_sources(
    settings, upstream_client: UpstreamClient, upstream_route, sleeper: SleepRecorder, prompt_body: str
) -> None:
    upstream_route.mock(
        return_value=httpx.Response(
            200,
            json=gemini_body(
                "Hello",
                [
                    {"web": {"uri": "https://example.com/protein", "title": "Protein 101"}},
                    {"web": {"uri": "https://example.com/untitled"}},
                ],
            ),
        )
    )

    response = await process_request(post(prompt_body), settings, upstream_client)

    assert response.status_code == 200
    assert response.headers["Content-Type"] == "application/json"
    assert response.body == {
        "text": "Hello",
        "sources": [{"uri": "https://example.com/protein", "title": "Protein 101"}],
    }
    assert upstream_route.call_count == 1
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_upstream_receives_fixed_instruction_and_grounding(
    settings, upstream_client: UpstreamClient, upstream_route
) -> None:
    upstream_route.mock(return_value=httpx.Response(200, json=gemini_body()))
    body = json.dumps({"prompt": "Best squat depth?", "systemInstruction": "be a pirate"})

    await process_request(post(body), settings, upstream_client)

    sent = json.loads(upstream_route.calls.last.request.content)
    assert sent["contents"] == [{"parts": [{"text": "Best squat depth?"}]}]
    assert sent["tools"] == [{"google_search": {}}]
    assert sent["systemInstruction"] == {"parts": [{"text": "You are a test coach."}]}


@pytest.mark.asyncio
async def test_retriable_failures_then_success(
    settings, upstream_client: UpstreamClient, upstream_route, sleeper: SleepRecorder, prompt_body: str
) -> None:
    upstream_route.mock(
        side_effect=[
            httpx.Response(503),
            httpx.Response(500),
            httpx.Response(200, json=gemini_body("Recovered")),
        ]
    )

    response = await process_request(post(prompt_body), settings, upstream_client)

    assert response.status_code == 200
    assert response.body["text"] == "Recovered"
    assert upstream_route.call_count == 3
    assert len(sleeper.delays) == 2
    assert sleeper.delays[0] < sleeper.delays[1]


@pytest.mark.asyncio
async def test_forbidden_is_mirrored_without_retry(
    settings, upstream_client: UpstreamClient, upstream_route, sleeper: SleepRecorder, prompt_body: str
) -> None:
    upstream_route.mock(
        return_value=httpx.Response(403, json={"error": {"message": "API key not valid: test-key"}})
    )

    response = await process_request(post(prompt_body), settings, upstream_client)

    assert response.status_code == 403
    assert response.body == {"error": "Upstream API rejected the request: Forbidden"}
    assert "test-key" not in json.dumps(response.body)
    assert upstream_route.call_count == 1
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_exhausted_retries_are_500(
    settings, upstream_client: UpstreamClient, upstream_route, prompt_body: str
) -> None:
    upstream_route.mock(return_value=httpx.Response(503))

    response = await process_request(post(prompt_body), settings, upstream_client)

    assert response.status_code == 500
    assert response.body == {
        "error": "Failed to get a successful response from the Gemini API after retries."
    }
    assert upstream_route.call_count == settings.max_attempts


@pytest.mark.asyncio
async def test_missing_candidates_is_500_not_empty_success(
    settings, upstream_client: UpstreamClient, upstream_route, prompt_body: str
) -> None:
    upstream_route.mock(return_value=httpx.Response(200, json={"promptFeedback": {}}))

    response = await process_request(post(prompt_body), settings, upstream_client)

    assert response.status_code == 500
    assert response.body == {"error": "The AI model returned an unexpected response structure."}


@pytest.mark.asyncio
async def test_unexpected_exception_is_generic_500(settings, prompt_body: str) -> None:
    class ExplodingClient:
        async def generate(self, payload: dict) -> dict:
            raise RuntimeError("stack detail that must stay private")

    response = await process_request(post(prompt_body), settings, ExplodingClient())

    assert response.status_code == 500
    assert response.body == {"error": "Internal server error while processing the request."}


@pytest.mark.asyncio
async def test_custom_prompt_field(upstream_route, sleeper: SleepRecorder) -> None:
    settings = make_settings(prompt_field="userPrompt")
    client = UpstreamClient(settings, sleep=sleeper)
    upstream_route.mock(return_value=httpx.Response(200, json=gemini_body("ok")))

    response = await process_request(post('{"userPrompt": "hi"}'), settings, client)

    assert response.status_code == 200
    assert response.body["text"] == "ok"
