"""Upstream response normalization.

Extraction rules:
    - Only `candidates[0]` is read; further candidates are ignored.
    - `content.parts[0].text` must be a non-empty string, otherwise the response
      is a contract violation (`UnexpectedUpstreamShape`), not an empty answer.
    - `groundingMetadata.groundingAttributions[].web.{uri,title}` become sources;
      attributions missing either value are dropped.
    - Source order follows the upstream. Duplicate URIs are kept as-is.
"""

from grounded_proxy.core.errors import UnexpectedUpstreamShape
from grounded_proxy.core.types import NormalizedResult, Source


def _first(items):
    if isinstance(items, list) and items:
        return items[0]
    return None


def extract_sources(candidate: dict) -> list[Source]:
    """Project grounding attributions of one candidate to complete `Source`s."""
    metadata = candidate.get("groundingMetadata")
    if not isinstance(metadata, dict):
        return []

    attributions = metadata.get("groundingAttributions")
    if not isinstance(attributions, list):
        return []

    sources: list[Source] = []
    for attribution in attributions:
        web = attribution.get("web") if isinstance(attribution, dict) else None
        if not isinstance(web, dict):
            continue
        uri = web.get("uri")
        title = web.get("title")
        if isinstance(uri, str) and uri and isinstance(title, str) and title:
            sources.append(Source(uri=uri, title=title))
    return sources


def normalize_response(raw: dict) -> NormalizedResult:
    """Convert a successful upstream body into `NormalizedResult`.

    Raises:
        UnexpectedUpstreamShape: No candidate, or no text in its first part.
    """
    candidate = _first(raw.get("candidates")) if isinstance(raw, dict) else None
    if not isinstance(candidate, dict):
        raise UnexpectedUpstreamShape("response has no candidates")

    content = candidate.get("content")
    part = _first(content.get("parts")) if isinstance(content, dict) else None
    text = part.get("text") if isinstance(part, dict) else None
    if not isinstance(text, str) or not text:
        raise UnexpectedUpstreamShape("first candidate has no text part")

    return NormalizedResult(text=text, sources=extract_sources(candidate))
