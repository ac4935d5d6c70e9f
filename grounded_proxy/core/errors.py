"""Failure taxonomy and translation to caller-facing error envelopes.

Architectural role:
    Every failure the pipeline can produce is a `ProxyError` subclass carrying the
    HTTP status it maps to and a public, human-readable message. Components raise;
    only `core.engine` catches and calls `translate_error`.

Error classes:
    - Caller errors: `MethodNotAllowed`, `MalformedBody`, `MissingField` (never retried).
    - Configuration errors: `MissingCredential` (fatal, surfaced as 500).
    - Upstream terminal errors: `UpstreamRejected` (status mirrored).
    - Upstream transient errors after retries: `UpstreamExhausted`.
    - Shape errors: `UnexpectedUpstreamShape`.

Security considerations:
    Envelope messages are fixed strings or upstream reason phrases. Exception
    detail, tracebacks, and the credential are only written to server-side logs.
"""

import logging
from dataclasses import dataclass


logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Internal server error while processing the request."


@dataclass(frozen=True)
class ErrorEnvelope:
    """Status code plus public error message for one failed invocation."""

    status_code: int
    error: str

    def body(self) -> dict:
        return {"error": self.error}


class ProxyError(Exception):
    """Base class for all classified pipeline failures."""

    status_code = 500
    public_message = GENERIC_ERROR_MESSAGE

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.public_message)
        self.detail = detail


class MethodNotAllowed(ProxyError):
    status_code = 405
    public_message = "Method Not Allowed"


class MalformedBody(ProxyError):
    status_code = 400
    public_message = "Invalid JSON format."


class MissingField(ProxyError):
    status_code = 400

    def __init__(self, field_name: str):
        super().__init__(f"missing or empty field {field_name!r}")
        self.field_name = field_name
        self.public_message = f"Missing required parameter: {field_name}"


class MissingCredential(ProxyError):
    status_code = 500
    public_message = "Server configuration error: API Key missing."


class UpstreamRejected(ProxyError):
    """Upstream answered with a status that retrying cannot fix."""

    def __init__(self, status_code: int, reason: str | None = None):
        reason = (reason or "").strip() or "request rejected"
        super().__init__(f"upstream status {status_code}: {reason}")
        self.status_code = status_code
        self.reason = reason
        self.public_message = f"Upstream API rejected the request: {reason}"


class UpstreamExhausted(ProxyError):
    status_code = 500
    public_message = (
        "Failed to get a successful response from the Gemini API after retries."
    )

    def __init__(self, attempts: int, last_status: int | None = None):
        super().__init__(f"gave up after {attempts} attempt(s), last status={last_status}")
        self.attempts = attempts
        self.last_status = last_status


class UnexpectedUpstreamShape(ProxyError):
    status_code = 500
    public_message = "The AI model returned an unexpected response structure."


def translate_error(exc: BaseException) -> ErrorEnvelope:
    """Map any exception raised by the pipeline to an `ErrorEnvelope`.

    Args:
        exc: Exception caught by the entry handler.

    Returns:
        Envelope with the mapped status code and a caller-safe message.

    Logging:
        - Caller errors: INFO (expected traffic, no stack trace).
        - Missing credential: ERROR, tagged as a configuration fault.
        - Upstream and shape failures: WARNING with internal detail.
        - Unclassified exceptions: full traceback via `logger.exception`.
    """
    if isinstance(exc, MissingCredential):
        logger.error("Configuration fault: GEMINI_API_KEY is not set")
    elif isinstance(exc, (MethodNotAllowed, MalformedBody, MissingField)):
        logger.info("Rejected caller request: %s", exc)
    elif isinstance(exc, ProxyError):
        logger.warning("Upstream call failed: %s", exc)
    else:
        logger.exception("Function execution error", exc_info=exc)
        return ErrorEnvelope(status_code=500, error=GENERIC_ERROR_MESSAGE)

    return ErrorEnvelope(status_code=exc.status_code, error=exc.public_message)
