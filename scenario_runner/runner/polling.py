from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Tuple

DEFAULT_INTERVAL_MS = 50
MAX_INTERVAL_MS = 500
BACKOFF = 2.0


@dataclass(frozen=True)
class PollResult:
    ok: bool
    value: Any
    attempts: int
    elapsed_ms: int

    def __bool__(self) -> bool:
        return self.ok


def wait_until(
    predicate: Callable[[], Tuple[bool, Any]],
    timeout_ms: int,
    *,
    sleep: Callable[[float], None],
    clock: Callable[[], float] = time.monotonic,
    interval_ms: float = DEFAULT_INTERVAL_MS,
    max_interval_ms: float = MAX_INTERVAL_MS,
    backoff: float = BACKOFF,
) -> PollResult:
    """
    Evaluates predicate until it reports success or timeout_ms elapses.

    The predicate returns (ok, value); the last value is kept so callers can
    report what was observed. It is always evaluated at least once, and the
    loop returns on the first success rather than at the deadline. `sleep`
    takes milliseconds; sessions pass page.wait_for_timeout so browser events
    keep flowing while we wait.
    """
    started = clock()
    deadline = started + timeout_ms / 1000.0
    delay = interval_ms
    attempts = 0

    while True:
        attempts += 1
        ok, value = predicate()
        now = clock()
        if ok:
            return PollResult(True, value, attempts, int((now - started) * 1000))

        remaining_ms = (deadline - now) * 1000
        if remaining_ms <= 0:
            return PollResult(False, value, attempts, int((now - started) * 1000))

        sleep(min(delay, remaining_ms))
        delay = min(delay * backoff, max_interval_ms)
