"""Upstream LLM access package.

Architectural role:
    Provides configuration, the retry policy, and the HTTP transport used by the
    engine to call the Gemini `generateContent` endpoint.

Module split:
    - `provider_config`: environment-driven settings and system instructions.
    - `retry_policy`: retry state machine and backoff schedule.
    - `client`: retrying HTTP transport.
"""
