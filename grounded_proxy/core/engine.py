"""Entry handler for one proxy invocation.

Architectural role:
    Provides the runtime-neutral pipeline used by the HTTP adapter and the CLI to
    turn one inbound call into a `ProxyResponse`.

Control-flow model:
    1. Method check (405 on anything but POST).
    2. Credential presence check (500 configuration fault).
    3. Body validation and prompt extraction (400).
    4. Payload construction with the fixed system instruction and grounding tool.
    5. Retrying upstream call.
    6. Response normalization to `{text, sources}`.

Error handling strategy:
    Every stage raises; this module is the single place that catches. All
    exceptions, classified or not, are converted by `translate_error`, so callers
    always receive a `ProxyResponse`.

Side effects:
    Network I/O through `UpstreamClient`; diagnostic logging.
"""

import logging

from grounded_proxy.api.validation import check_method, parse_prompt
from grounded_proxy.core.errors import MissingCredential, translate_error
from grounded_proxy.core.normalizer import normalize_response
from grounded_proxy.core.types import InboundRequest, NormalizedResult, ProxyResponse
from grounded_proxy.llm.client import UpstreamClient
from grounded_proxy.llm.provider_config import ProxySettings
from grounded_proxy.prompting.payload_builder import build_payload


logger = logging.getLogger(__name__)


async def run_pipeline(
    request: InboundRequest,
    settings: ProxySettings,
    client: UpstreamClient | None = None,
) -> NormalizedResult:
    """Run all stages and return the normalized result; raises on any failure."""
    check_method(request.method)

    if not settings.has_credential:
        raise MissingCredential()

    prompt = parse_prompt(request.raw_body, settings.prompt_field)
    if settings.debug:
        logger.debug("Validated prompt (%d chars)", len(prompt))

    payload = build_payload(prompt, settings.system_instruction)

    if client is None:
        client = UpstreamClient(settings)
    raw = await client.generate(payload)

    result = normalize_response(raw)
    logger.info(
        "Generated %d chars with %d source(s)", len(result.text), len(result.sources)
    )
    return result


async def process_request(
    request: InboundRequest,
    settings: ProxySettings,
    client: UpstreamClient | None = None,
) -> ProxyResponse:
    """Handle one invocation end to end.

    Args:
        request: Method and raw body from the hosting runtime.
        settings: Read-only process configuration.
        client: Optional pre-built upstream client (tests inject fakes here).

    Returns:
        `200 {text, sources}` on success, otherwise the translated error envelope.
    """
    try:
        result = await run_pipeline(request, settings, client)
    except Exception as exc:
        envelope = translate_error(exc)
        return ProxyResponse(status_code=envelope.status_code, body=envelope.body())

    return ProxyResponse(status_code=200, body=result.model_dump())
