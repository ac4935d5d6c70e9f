"""Upstream payload construction.

This module is intentionally narrow: it only turns an already validated prompt
into the fixed `generateContent` request body. Validation, transport, and retry
happen outside this module.

Design constraints:
    - Deterministic construction for identical inputs.
    - The system instruction and the grounding tool are fixed configuration;
      nothing in the request can alter or remove them.
    - No hidden side effects (no I/O, no global state mutation).

Prompt safety model:
    - The user prompt is placed only in `contents`, never in `systemInstruction`.
    - The Google Search grounding tool is always enabled.
"""

# Grounding tool entry as accepted by the Generative Language API.
GOOGLE_SEARCH_TOOL = "google_search"


def build_payload(prompt: str, system_instruction: str) -> dict:
    """Build the `generateContent` request body.

    Args:
        prompt: Validated user prompt.
        system_instruction: Fixed instruction text selected at startup.

    Returns:
        Fresh dict of the shape::

            {
                "contents": [{"parts": [{"text": prompt}]}],
                "tools": [{"google_search": {}}],
                "systemInstruction": {"parts": [{"text": system_instruction}]},
            }
    """
    return {
        "contents": [{"parts": [{"text": prompt}]}],
        "tools": [{GOOGLE_SEARCH_TOOL: {}}],
        "systemInstruction": {"parts": [{"text": system_instruction}]},
    }
