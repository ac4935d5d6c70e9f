"""Retry state machine and backoff schedule for upstream calls.

Retry behavior:
    After every attempt the outcome (HTTP status, or `None` for a transport-level
    failure) is classified by `next_state`:

    - 2xx                          -> SUCCEEDED
    - 400 / 403                    -> REJECTED_TERMINAL (no retry can fix these)
    - anything else, attempts left -> BACKING_OFF
    - anything else, none left     -> EXHAUSTED

    Backoff for zero-indexed attempt `i` is `base * 2**i + uniform(0, jitter)`.

Determinism:
    Both functions are pure; `backoff_delay` takes its random source as an argument
    so the schedule can be checked without real timers.
"""

import random
from enum import Enum
from typing import Callable


# Statuses a repeated identical request cannot fix.
NON_RETRIABLE_STATUSES = frozenset({400, 403})


class RetryState(str, Enum):
    ATTEMPTING = "attempting"
    BACKING_OFF = "backing_off"
    SUCCEEDED = "succeeded"
    REJECTED_TERMINAL = "rejected_terminal"
    EXHAUSTED = "exhausted"


TERMINAL_STATES = frozenset(
    {RetryState.SUCCEEDED, RetryState.REJECTED_TERMINAL, RetryState.EXHAUSTED}
)


def is_success(status_code: int | None) -> bool:
    return status_code is not None and 200 <= status_code < 300


def next_state(status_code: int | None, attempt: int, max_attempts: int) -> RetryState:
    """Classify the outcome of zero-indexed `attempt`.

    Args:
        status_code: Upstream HTTP status, or `None` for a network-level failure.
        attempt: Index of the attempt that just finished.
        max_attempts: Attempt cap (>= 1).
    """
    if is_success(status_code):
        return RetryState.SUCCEEDED
    if status_code in NON_RETRIABLE_STATUSES:
        return RetryState.REJECTED_TERMINAL
    if attempt + 1 < max_attempts:
        return RetryState.BACKING_OFF
    return RetryState.EXHAUSTED


def backoff_delay(
    attempt: int,
    base: float,
    jitter: float,
    uniform: Callable[[float, float], float] = random.uniform,
) -> float:
    """Compute the sleep before the attempt following zero-indexed `attempt`."""
    extra = uniform(0.0, jitter) if jitter > 0 else 0.0
    return base * (2 ** attempt) + extra
