"""Per-invocation data contracts shared by the proxy pipeline.

Architectural role:
    Defines the inbound request, normalized result, and outbound response shapes
    exchanged between the API adapter, `core.engine`, and `core.normalizer`.

Lifecycle:
    Every instance is created and discarded within a single invocation. Nothing
    here is persisted or shared across requests.
"""

from dataclasses import dataclass, field

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class InboundRequest:
    """Raw invocation as handed over by the hosting runtime.

    Attributes:
        method: HTTP method as received (case is normalized during validation).
        raw_body: Request body exactly as received (bytes are decoded during
            validation), or `None` when absent.
    """

    method: str
    raw_body: str | bytes | None = None


class Source(BaseModel):
    """One grounding citation. Both fields are required and non-empty."""

    uri: str = Field(min_length=1)
    title: str = Field(min_length=1)


class NormalizedResult(BaseModel):
    """Generated text plus filtered citation sources, in upstream order."""

    text: str
    sources: list[Source] = Field(default_factory=list)


@dataclass(frozen=True)
class ProxyResponse:
    """Runtime-neutral outcome of one invocation.

    Attributes:
        status_code: HTTP status to return to the caller.
        body: JSON-serializable body (`{text, sources}` or `{error}`).
        headers: Response headers.
    """

    status_code: int
    body: dict
    headers: dict[str, str] = field(
        default_factory=lambda: {"Content-Type": "application/json"}
    )
