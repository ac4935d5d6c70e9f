"""Inbound request validation.

Architectural role:
    Turns a raw invocation (method + body text) into a validated prompt string
    before any network work happens.

Input validation behavior:
- Non-POST method -> `MethodNotAllowed` (405).
- Body that is not JSON, or JSON that is not an object -> `MalformedBody` (400).
- Prompt field absent, non-string, or blank -> `MissingField` (400).
- Absent/empty body is read as `{}` and therefore reports the missing field.

Side effects:
    None. Pure function of its inputs.
"""

import json

from grounded_proxy.core.errors import MalformedBody, MethodNotAllowed, MissingField


ALLOWED_METHOD = "POST"


def check_method(method: str) -> None:
    """Raise `MethodNotAllowed` unless `method` is POST (case-insensitive)."""
    if (method or "").strip().upper() != ALLOWED_METHOD:
        raise MethodNotAllowed(f"method {method!r} not allowed")


def parse_prompt(raw_body: str | bytes | None, prompt_field: str = "prompt") -> str:
    """Extract the prompt string from a raw JSON body.

    Args:
        raw_body: Request body as received; `None`/empty is treated as `{}`.
        prompt_field: Name of the JSON field carrying the prompt.

    Returns:
        The prompt exactly as supplied (no trimming).
    """
    if isinstance(raw_body, bytes):
        try:
            raw_body = raw_body.decode("utf-8")
        except UnicodeDecodeError:
            raise MalformedBody("body is not valid UTF-8") from None

    if raw_body is None or not raw_body.strip():
        raw_body = "{}"

    try:
        body = json.loads(raw_body)
    except json.JSONDecodeError as err:
        raise MalformedBody(f"body is not valid JSON: {err.msg}") from None
    except RecursionError:
        raise MalformedBody("body is nested too deeply") from None

    if not isinstance(body, dict):
        raise MalformedBody(f"body must be a JSON object, got {type(body).__name__}")

    prompt = body.get(prompt_field)
    if not isinstance(prompt, str) or not prompt.strip():
        raise MissingField(prompt_field)

    return prompt
