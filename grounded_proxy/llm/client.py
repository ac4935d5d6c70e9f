"""Upstream transport client for Gemini `generateContent` requests.

Architectural role:
    Executes the single upstream HTTP call per invocation, classifies failures,
    and retries transient ones with exponential backoff and jitter.

Model invocation flow:
    `engine.process_request` -> `UpstreamClient.generate(payload)` ->
    POST `{base}/models/{model}:generateContent?key=...` -> parsed JSON dict.

Retry behavior:
    Driven by `retry_policy.next_state`. Attempts are strictly sequential. The loop
    suspends only while awaiting the network call and during backoff sleeps.
    An optional overall deadline clips each attempt's timeout and ends the loop
    early when the next backoff would cross it.

Failure handling model:
    - 400/403 -> `UpstreamRejected` immediately.
    - Other statuses and `httpx.RequestError` -> retried, then `UpstreamExhausted`.
    - 2xx with a non-object body -> `UnexpectedUpstreamShape`.

Security considerations:
    The credential travels as the `key` query parameter and is never included in
    log lines or exception messages raised from this module.
"""

import asyncio
import logging
import random
import time
from typing import Awaitable, Callable

import httpx

from grounded_proxy.core.errors import (
    MissingCredential,
    UnexpectedUpstreamShape,
    UpstreamExhausted,
    UpstreamRejected,
)
from grounded_proxy.llm.provider_config import ProxySettings
from grounded_proxy.llm.retry_policy import (
    TERMINAL_STATES,
    RetryState,
    backoff_delay,
    next_state,
)


logger = logging.getLogger(__name__)


class UpstreamClient:
    """Retrying client for the fixed upstream endpoint.

    Args:
        settings: Endpoint, credential, and retry configuration.
        transport: Optional httpx transport (tests, custom TLS setups).
        sleep: Awaitable sleep used between attempts.
        clock: Monotonic clock used for the overall deadline.
        uniform: Random source for jitter.
    """

    def __init__(
        self,
        settings: ProxySettings,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        uniform: Callable[[float, float], float] = random.uniform,
    ) -> None:
        self.settings = settings
        self._transport = transport
        self._sleep = sleep
        self._clock = clock
        self._uniform = uniform

    def _remaining(self, started: float) -> float | None:
        if self.settings.deadline_seconds is None:
            return None
        return self.settings.deadline_seconds - (self._clock() - started)

    async def generate(self, payload: dict) -> dict:
        """Send `payload` upstream, retrying transient failures.

        Returns:
            Parsed upstream JSON object from the first successful attempt.

        Raises:
            MissingCredential: No API key configured.
            UpstreamRejected: Upstream answered 400 or 403.
            UpstreamExhausted: Attempts or deadline used up.
            UnexpectedUpstreamShape: Success status with a non-object body.
        """
        if not self.settings.api_key:
            raise MissingCredential()

        max_attempts = self.settings.max_attempts
        started = self._clock()
        state = RetryState.ATTEMPTING
        attempt = 0
        status_code: int | None = None
        response: httpx.Response | None = None

        async with httpx.AsyncClient(transport=self._transport) as client:
            while state not in TERMINAL_STATES:
                if state is RetryState.BACKING_OFF:
                    delay = backoff_delay(
                        attempt - 1,
                        self.settings.backoff_seconds,
                        self.settings.jitter_seconds,
                        self._uniform,
                    )
                    remaining = self._remaining(started)
                    if remaining is not None and delay >= remaining:
                        logger.warning(
                            "Upstream deadline reached after %d attempt(s); not retrying",
                            attempt,
                        )
                        state = RetryState.EXHAUSTED
                        continue
                    await self._sleep(delay)
                    state = RetryState.ATTEMPTING

                timeout = self.settings.timeout_seconds
                remaining = self._remaining(started)
                if remaining is not None:
                    timeout = max(0.001, min(timeout, remaining))

                try:
                    response = await client.post(
                        self.settings.generate_url,
                        params={"key": self.settings.api_key},
                        headers={"Content-Type": "application/json"},
                        json=payload,
                        timeout=timeout,
                    )
                    status_code = response.status_code
                except httpx.RequestError as exc:
                    response = None
                    status_code = None
                    logger.warning(
                        "Attempt %d/%d failed with network error: %s",
                        attempt + 1,
                        max_attempts,
                        type(exc).__name__,
                    )

                state = next_state(status_code, attempt, max_attempts)
                attempt += 1

                if response is not None and state is not RetryState.SUCCEEDED:
                    logger.warning(
                        "Attempt %d/%d failed. Status: %s %s",
                        attempt,
                        max_attempts,
                        status_code,
                        response.reason_phrase,
                    )
                    if self.settings.debug:
                        logger.debug("Upstream error body: %s", response.text[:2000])

        if state is RetryState.REJECTED_TERMINAL:
            raise UpstreamRejected(status_code, response.reason_phrase)

        if state is RetryState.EXHAUSTED:
            raise UpstreamExhausted(attempts=attempt, last_status=status_code)

        try:
            data = response.json()
        except ValueError:
            raise UnexpectedUpstreamShape("upstream success body is not JSON") from None

        if not isinstance(data, dict):
            raise UnexpectedUpstreamShape("upstream success body is not a JSON object")

        return data
