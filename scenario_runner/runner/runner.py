from __future__ import annotations

import logging
import os
import queue
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple

from playwright.sync_api import Error as PlaywrightError

from scenario_runner.config import RunConfig
from scenario_runner.errors import RunnerError
from scenario_runner.models.dsl import TestResult, TestScenario, TestSuite
from scenario_runner.reporter.reporter import Reporter
from scenario_runner.resolver.resolver import LocatorResolver
from scenario_runner.runner.executor import StepExecutor, safe_name
from scenario_runner.session.manager import SessionManager

LOGGER = logging.getLogger("scenario_runner.runner")

WorkUnit = Tuple[TestSuite, List[TestScenario]]


class Runner:
    """
    Runs suites scenario by scenario and records exactly one result each.

    With workers > 1 every worker thread owns its own SessionManager (and
    therefore its own Playwright instance), since the sync API is bound to
    the thread that started it. Work units are single scenarios, or whole
    suites when the suite shares one session.
    """

    def __init__(self, config: RunConfig, reporter: Optional[Reporter] = None,
                 manager_factory: Optional[Callable[[], SessionManager]] = None,
                 executor: Optional[StepExecutor] = None):
        self.config = config
        self.reporter = reporter or Reporter()
        self.manager_factory = manager_factory or self._default_manager
        self.executor = executor or StepExecutor(
            resolver=LocatorResolver(config.timeout),
            timeout_ms=config.timeout,
            navigation_timeout_ms=config.navigation_timeout,
            artifacts_dir=config.artifacts_dir,
        )
        try:
            self._grep = re.compile(config.grep, re.IGNORECASE) if config.grep else None
        except re.error as e:
            raise RunnerError(f"Invalid filter {config.grep!r}: {e}")

    def _default_manager(self) -> SessionManager:
        return SessionManager(
            browser=self.config.browser,
            headless=self.config.headless,
            timeout_ms=self.config.timeout,
            navigation_timeout_ms=self.config.navigation_timeout,
            base_url=self.config.base_url,
            viewport=self.config.viewport,
        )

    def select(self, suites: List[TestSuite]) -> List[WorkUnit]:
        selected = []
        for suite in suites:
            scenarios = [s for s in suite.scenarios
                         if self._grep is None or self._grep.search(f"{suite.name} › {s.name}")]
            if scenarios:
                selected.append((suite, scenarios))
        return selected

    def run(self, suites: List[TestSuite]) -> Reporter:
        selected = self.select(suites)
        units: "queue.Queue[WorkUnit]" = queue.Queue()
        for suite, scenarios in selected:
            if suite.session_scope == "suite":
                units.put((suite, scenarios))
            else:
                for scenario in scenarios:
                    units.put((suite, [scenario]))

        workers = min(self.config.workers, units.qsize())
        LOGGER.info("Running %s work units on %s worker(s)", units.qsize(), workers)
        if workers <= 1:
            self._worker(units)
        else:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="scenario-worker") as pool:
                futures = [pool.submit(self._worker, units) for _ in range(workers)]
                for future in futures:
                    future.result()
        return self.reporter

    def _worker(self, units: "queue.Queue[WorkUnit]") -> None:
        if units.empty():
            return
        with self.manager_factory() as manager:
            while True:
                try:
                    suite, scenarios = units.get_nowait()
                except queue.Empty:
                    return
                self._run_unit(manager, suite, scenarios)

    def _run_unit(self, manager, suite: TestSuite, scenarios: List[TestScenario]) -> None:
        if suite.session_scope != "suite":
            for scenario in scenarios:
                self.reporter.record(self.run_scenario(manager, suite, scenario))
            return

        session = manager.acquire(suite.session)
        try:
            for scenario in scenarios:
                session.reset()
                self.reporter.record(self.run_scenario(manager, suite, scenario, shared=session))
        finally:
            manager.release(session)

    def run_scenario(self, manager, suite: TestSuite, scenario: TestScenario, shared=None) -> TestResult:
        """Runs one scenario, re-running a failure up to `retries` times; the last attempt counts."""
        attempts = 0
        while True:
            attempts += 1
            session = shared if shared is not None else manager.acquire(suite.session)
            try:
                result = self.executor.run(suite, scenario, session)
                artifact = self._capture(session, suite, scenario, result)
            finally:
                if shared is None:
                    manager.release(session)

            if result.passed or attempts > self.config.retries:
                break
            LOGGER.info("Retrying %s (attempt %s of %s)", result.title, attempts + 1, self.config.retries + 1)
            if shared is not None:
                shared.reset()

        return result.model_copy(update={"artifact": artifact, "attempts": attempts})

    def _capture(self, session, suite: TestSuite, scenario: TestScenario, result: TestResult) -> Optional[str]:
        mode = self.config.screenshot
        if mode == "off" or (mode == "only-on-failure" and result.passed):
            return None

        os.makedirs(self.config.artifacts_dir, exist_ok=True)
        path = os.path.join(self.config.artifacts_dir, f"{safe_name(suite.name)}__{safe_name(scenario.name)}.png")
        try:
            session.page.screenshot(path=path)
        except PlaywrightError as e:
            LOGGER.warning("Screenshot for %s failed: %s", result.title, e)
            return None
        return path
