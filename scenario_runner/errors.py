from typing import Any, Optional


class RunnerError(Exception):
    """Base class for every error raised by the scenario runner."""


class SessionUnavailable(RunnerError):
    """The browser could not be launched. Fatal to the whole run."""


class SuiteError(RunnerError):
    """A suite file could not be read or failed validation."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class StepError(RunnerError):
    """Raised by a step; converted into a Result at the scenario boundary."""


class LocatorUnresolved(StepError):
    def __init__(self, locator: str, timeout_ms: int):
        super().__init__(f"locator {locator} not found within {timeout_ms}ms")
        self.locator = locator
        self.timeout_ms = timeout_ms


class TimeoutExceeded(StepError):
    def __init__(self, what: str, timeout_ms: int):
        super().__init__(f"timed out after {timeout_ms}ms waiting for {what}")
        self.what = what
        self.timeout_ms = timeout_ms


class AssertionFailed(StepError):
    def __init__(self, what: str, expected: Any, actual: Any, message: Optional[str] = None):
        super().__init__(message or f"{what}: expected {expected}, observed {actual!r}")
        self.what = what
        self.expected = expected
        self.actual = actual
