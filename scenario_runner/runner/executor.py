"""
Executes one scenario against a session, step by step.

Each scenario moves through pending -> running(i) -> passed | failed(i) |
timedOut(i). A failing step stops the scenario; its error is turned into a
TestResult here and never reaches the caller.
"""
from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from scenario_runner import config
from scenario_runner.errors import AssertionFailed, LocatorUnresolved, TimeoutExceeded
from scenario_runner.models.dsl import (
    Outcome,
    StepAction,
    TestResult,
    TestScenario,
    TestStep,
    TestSuite,
    TRIGGER_ACTIONS,
)
from scenario_runner.resolver.resolver import LocatorResolver, Unresolved
from scenario_runner.runner.conditions import expected_value, observe
from scenario_runner.runner.polling import wait_until
from scenario_runner.session.subscriptions import DialogRule

LOGGER = logging.getLogger("scenario_runner.executor")


def safe_name(text: str) -> str:
    return "".join([c if c.isalnum() else "_" for c in text]).strip("_").lower() or "untitled"


class ScenarioState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    TIMED_OUT = "timedOut"


_TRANSITIONS = {
    ScenarioState.PENDING: {ScenarioState.RUNNING},
    ScenarioState.RUNNING: {ScenarioState.RUNNING, ScenarioState.PASSED,
                            ScenarioState.FAILED, ScenarioState.TIMED_OUT},
}


class ScenarioExecution:
    def __init__(self):
        self.state = ScenarioState.PENDING
        self.step_index: Optional[int] = None
        self.reason: Optional[str] = None

    def transition(self, state: ScenarioState, step_index: Optional[int] = None, reason: Optional[str] = None) -> None:
        if state not in _TRANSITIONS.get(self.state, set()):
            raise RuntimeError(f"illegal scenario transition {self.state.value} -> {state.value}")
        self.state = state
        if step_index is not None:
            self.step_index = step_index
        self.reason = reason


@dataclass(frozen=True)
class StepContext:
    suite: TestSuite
    scenario: TestScenario
    index: int

    @property
    def base_dir(self) -> str:
        return os.path.dirname(os.path.abspath(self.suite.source)) if self.suite.source else os.getcwd()


class StepExecutor:
    def __init__(self, resolver: Optional[LocatorResolver] = None,
                 timeout_ms: int = config.TIMEOUT_MS,
                 navigation_timeout_ms: int = config.NAVIGATION_TIMEOUT_MS,
                 artifacts_dir: str = config.ARTIFACTS_DIR):
        self.resolver = resolver or LocatorResolver(timeout_ms)
        self.timeout_ms = timeout_ms
        self.navigation_timeout_ms = navigation_timeout_ms
        self.artifacts_dir = artifacts_dir
        self._handlers: Dict[StepAction, Callable[[Any, TestStep, StepContext], None]] = {
            StepAction.NAVIGATE: self._navigate,
            StepAction.RELOAD: self._reload,
            StepAction.FILL: self._fill,
            StepAction.CLICK: self._click,
            StepAction.PRESS: self._press,
            StepAction.SELECT_OPTION: self._select_option,
            StepAction.UPLOAD_FILE: self._upload_file,
            StepAction.SET_VIEWPORT: self._set_viewport,
            StepAction.WAIT: self._wait,
            StepAction.WAIT_FOR: self._wait_for,
            StepAction.INTERCEPT: self._intercept,
            StepAction.HANDLE_DIALOG: self._handle_dialog,
            StepAction.STORE: self._store,
            StepAction.SCREENSHOT: self._screenshot,
            StepAction.ASSERT: self._assert,
        }

    def run(self, suite: TestSuite, scenario: TestScenario, session) -> TestResult:
        steps = list(suite.before_each) + list(scenario.steps)
        execution = ScenarioExecution()
        started = time.monotonic()
        LOGGER.info("Running %s › %s (%s steps)", suite.name, scenario.name, len(steps))

        execution.transition(ScenarioState.RUNNING)
        for index, step in enumerate(steps):
            execution.transition(ScenarioState.RUNNING, step_index=index)
            try:
                self.execute_step(session, step, StepContext(suite, scenario, index))
            except (TimeoutExceeded, PlaywrightTimeoutError) as e:
                execution.transition(ScenarioState.TIMED_OUT, index, self._diagnostic(index, step, e))
                break
            except Exception as e:  # any step error ends this scenario only
                execution.transition(ScenarioState.FAILED, index, self._diagnostic(index, step, e))
                break
        else:
            errors = session.subscriptions.take_errors()
            if errors and steps:
                last = len(steps) - 1
                error = AssertionFailed("dialog", None, None, message="; ".join(errors))
                execution.transition(ScenarioState.FAILED, last, self._diagnostic(last, steps[last], error))
            else:
                execution.transition(ScenarioState.PASSED)

        outcome = Outcome(execution.state.value)
        if outcome != Outcome.PASSED:
            LOGGER.info("%s › %s %s: %s", suite.name, scenario.name, outcome.value, execution.reason)
        return TestResult(
            suite=suite.name,
            scenario_name=scenario.name,
            outcome=outcome,
            failing_step_index=None if outcome == Outcome.PASSED else execution.step_index,
            message=execution.reason,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    def execute_step(self, session, step: TestStep, ctx: StepContext) -> None:
        LOGGER.debug("  step %s: %s", ctx.index + 1, step.describe())
        if step.action in TRIGGER_ACTIONS:
            session.network.mark()
        self._handlers[step.action](session, step, ctx)

        errors = session.subscriptions.take_errors()
        if errors:
            raise AssertionFailed("dialog", None, None, message="; ".join(errors))

    def _diagnostic(self, index: int, step: TestStep, error: Exception) -> str:
        message = str(error).strip().splitlines()[0] if str(error).strip() else type(error).__name__
        return f"step {index + 1} ({step.describe()}): {type(error).__name__}: {message}"

    def _timeout(self, step: TestStep) -> int:
        return step.timeout or self.timeout_ms

    def _resolve(self, session, step: TestStep):
        handle = self.resolver.resolve(session, step.locator, self._timeout(step))
        if isinstance(handle, Unresolved):
            raise LocatorUnresolved(handle.description, handle.timeout_ms)
        return handle

    # Navigation

    def _navigate(self, session, step, ctx):
        session.page.goto(str(step.value), wait_until=step.options.get("wait_until", "load"),
                          timeout=step.timeout or self.navigation_timeout_ms)

    def _reload(self, session, step, ctx):
        session.page.reload(wait_until=step.options.get("wait_until", "load"),
                            timeout=step.timeout or self.navigation_timeout_ms)

    def _set_viewport(self, session, step, ctx):
        session.page.set_viewport_size({"width": step.value["width"], "height": step.value["height"]})

    # Interactions

    def _fill(self, session, step, ctx):
        self._resolve(session, step).fill(str(step.value), timeout=self._timeout(step))

    def _click(self, session, step, ctx):
        self._resolve(session, step).click(
            button=step.options.get("button", "left"),
            click_count=step.options.get("count", 1),
            timeout=self._timeout(step),
        )

    def _press(self, session, step, ctx):
        if step.locator is None:
            session.page.keyboard.press(str(step.value))
        else:
            self._resolve(session, step).press(str(step.value), timeout=self._timeout(step))

    def _select_option(self, session, step, ctx):
        self._resolve(session, step).select_option(step.value, timeout=self._timeout(step))

    def _upload_file(self, session, step, ctx):
        values = step.value if isinstance(step.value, list) else [step.value]
        paths = [os.path.join(ctx.base_dir, str(v)) for v in values]
        self._resolve(session, step).set_input_files(paths, timeout=self._timeout(step))

    # Waiting and state

    def _wait(self, session, step, ctx):
        session.sleep(step.value)

    def _wait_for(self, session, step, ctx):
        timeout = self._timeout(step)
        result = wait_until(lambda: self._probe(session, step), timeout, sleep=session.sleep)
        if not result.ok:
            raise TimeoutExceeded(f"{step.condition.describe()} (last observed {result.value!r})", timeout)

    def _assert(self, session, step, ctx):
        timeout = self._timeout(step)
        result = wait_until(lambda: self._probe(session, step), timeout, sleep=session.sleep)
        if not result.ok:
            expected = expected_value(session, step.condition)
            raise AssertionFailed(step.condition.describe(), self._describe_expected(step, expected), result.value)

    def _probe(self, session, step):
        obs = observe(session, self.resolver, step.condition)
        return obs.ok, obs.actual

    def _describe_expected(self, step, expected):
        condition = step.condition
        if condition.kind.value in ("visible", "hidden", "response"):
            return "not satisfied" if condition.negate else "satisfied"
        prefix = "not " if condition.negate else ""
        if condition.match == "equals":
            return f"{prefix}{expected!r}"
        return f"{prefix}{condition.match} {expected!r}"

    def _store(self, session, step, ctx):
        obs = observe(session, self.resolver, step.condition)
        session.variables[step.variable] = obs.actual
        LOGGER.debug("  stored %s = %r", step.variable, obs.actual)

    # Subscriptions

    def _intercept(self, session, step, ctx):
        session.subscriptions.add_route(step.pattern, step.response)

    def _handle_dialog(self, session, step, ctx):
        session.subscriptions.add_dialog_rule(DialogRule(
            action=step.value or "accept",
            prompt_text=step.options.get("prompt_text"),
            expect_type=step.options.get("type"),
            expect_message=step.options.get("message"),
            once=bool(step.options.get("once", False)),
        ))

    # Artifacts

    def _screenshot(self, session, step, ctx):
        name = step.value or f"{safe_name(ctx.suite.name)}__{safe_name(ctx.scenario.name)}__step{ctx.index + 1}.png"
        os.makedirs(self.artifacts_dir, exist_ok=True)
        path = os.path.join(self.artifacts_dir, name)
        session.page.screenshot(path=path, full_page=bool(step.options.get("full_page", False)))
        LOGGER.info("Saved screenshot %s", path)
