"""Upstream/runtime configuration for the proxy.

Architectural role:
    Centralizes model selection, endpoint, system instruction, and retry tunables
    for `grounded_proxy.llm.client` and `grounded_proxy.core.engine`.

Model call flow integration:
    - `engine.process_request` consumes `api_key`, `prompt_field`, and
      `system_instruction`.
    - `client.UpstreamClient` consumes endpoint, timeout, and retry settings.

Determinism:
    Deterministic for a fixed process environment. `.env` is loaded once at import
    time; `ProxySettings.from_env()` reads the environment each time it is called.

Failure behavior:
    Missing credential is represented as `None` and reported per request by the
    engine as a configuration fault. Malformed tunables raise `ValueError` at load.
"""

import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

DEFAULT_MODEL_NAME = "gemini-2.5-flash-preview-09-2025"

DEFAULT_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

GENERATE_URL_TEMPLATE = "{base}/models/{model}:generateContent"


# Fixed system instructions. Selected at startup, never from request content.
SYSTEM_INSTRUCTIONS = {

    "coach": (
        "You are a world-class fitness and nutrition coach named Gymini. "
        "Provide concise, actionable, and evidence-based advice in a friendly, "
        "encouraging tone. Respond to the user's question directly."
    ),

    "qa": (
        "Act as a comprehensive, knowledge-based Q&A engine focused on fitness, "
        "nutrition, and training. Provide generalized, science-backed, and practical "
        "advice. Explicitly state that for personalized plans, diagnoses, or critical "
        "training decisions, the user must consult their actual personal trainer or "
        "medical professional. Keep responses concise and focused, using bullet "
        "points or bold text where helpful."
    ),

}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def resolve_system_instruction(preset: str, override: str | None = None) -> str:
    """Return the system instruction text for a preset name.

    Args:
        preset: Key into `SYSTEM_INSTRUCTIONS`.
        override: Literal instruction text; wins over the preset when non-empty.

    Raises:
        ValueError: Unknown preset and no override.
    """
    if override and override.strip():
        return override.strip()
    key = (preset or "").strip().lower()
    if key not in SYSTEM_INSTRUCTIONS:
        known = ", ".join(sorted(SYSTEM_INSTRUCTIONS))
        raise ValueError(f"Unknown system instruction preset {preset!r} (known: {known})")
    return SYSTEM_INSTRUCTIONS[key]


@dataclass(frozen=True)
class ProxySettings:
    """Process-wide, read-only configuration passed into the request handler.

    Relevant environment variables:
        - `GEMINI_API_KEY`
        - `GEMINI_MODEL_NAME`
        - `GEMINI_API_BASE_URL`
        - `SYSTEM_INSTRUCTION_PRESET` / `SYSTEM_INSTRUCTION`
        - `PROMPT_FIELD`
        - `UPSTREAM_MAX_ATTEMPTS`
        - `UPSTREAM_BACKOFF_SECONDS`
        - `UPSTREAM_JITTER_SECONDS`
        - `UPSTREAM_TIMEOUT_SECONDS`
        - `UPSTREAM_DEADLINE_SECONDS` (`0` disables the overall deadline)
        - `DEBUG`
    """

    api_key: str | None = None
    model_name: str = DEFAULT_MODEL_NAME
    api_base_url: str = DEFAULT_API_BASE_URL
    system_instruction: str = SYSTEM_INSTRUCTIONS["coach"]
    prompt_field: str = "prompt"
    max_attempts: int = 3
    backoff_seconds: float = 0.5
    jitter_seconds: float = 0.25
    timeout_seconds: float = 10.0
    deadline_seconds: float | None = 25.0
    debug: bool = False

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_seconds < 0 or self.jitter_seconds < 0:
            raise ValueError("backoff and jitter must be non-negative")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if self.deadline_seconds is not None and self.deadline_seconds <= 0:
            raise ValueError("deadline_seconds must be positive or None")
        if not self.prompt_field:
            raise ValueError("prompt_field must not be empty")

    @property
    def generate_url(self) -> str:
        """Endpoint URL without the credential query parameter."""
        return GENERATE_URL_TEMPLATE.format(
            base=self.api_base_url.rstrip("/"),
            model=self.model_name,
        )

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)

    def __repr__(self) -> str:
        # Credential must never reach logs through repr().
        key_state = "set" if self.api_key else "missing"
        return (
            f"ProxySettings(api_key=<{key_state}>, model_name={self.model_name!r}, "
            f"prompt_field={self.prompt_field!r}, max_attempts={self.max_attempts})"
        )

    @classmethod
    def from_env(cls) -> "ProxySettings":
        """Build settings from the current process environment."""
        deadline = _env_float("UPSTREAM_DEADLINE_SECONDS", 25.0)
        return cls(
            api_key=(os.getenv("GEMINI_API_KEY") or "").strip() or None,
            model_name=os.getenv("GEMINI_MODEL_NAME", DEFAULT_MODEL_NAME).strip(),
            api_base_url=os.getenv("GEMINI_API_BASE_URL", DEFAULT_API_BASE_URL).strip(),
            system_instruction=resolve_system_instruction(
                os.getenv("SYSTEM_INSTRUCTION_PRESET", "coach"),
                os.getenv("SYSTEM_INSTRUCTION"),
            ),
            prompt_field=os.getenv("PROMPT_FIELD", "prompt").strip(),
            max_attempts=_env_int("UPSTREAM_MAX_ATTEMPTS", 3),
            backoff_seconds=_env_float("UPSTREAM_BACKOFF_SECONDS", 0.5),
            jitter_seconds=_env_float("UPSTREAM_JITTER_SECONDS", 0.25),
            timeout_seconds=_env_float("UPSTREAM_TIMEOUT_SECONDS", 10.0),
            deadline_seconds=deadline if deadline > 0 else None,
            debug=os.getenv("DEBUG") == "true",
        )
