"""End-to-end checks against the sample pages with a real browser."""
import io
import os

import pytest

from scenario_runner.config import RunConfig
from scenario_runner.errors import SessionUnavailable
from scenario_runner.models.dsl import Outcome, TestScenario, TestSuite
from scenario_runner.providers.yaml_suite import YamlSuiteProvider
from scenario_runner.reporter.reporter import Reporter
from scenario_runner.resolver.resolver import LocatorResolver
from scenario_runner.runner.executor import StepExecutor
from scenario_runner.runner.runner import Runner
from scenario_runner.server import StaticServer
from scenario_runner.session.manager import SessionManager

ROOT = os.path.dirname(os.path.abspath(__file__))

pytestmark = pytest.mark.browser


@pytest.fixture(scope="module")
def server():
    with StaticServer(os.path.join(ROOT, "sample")) as srv:
        yield srv


@pytest.fixture(scope="module")
def manager(server):
    manager = SessionManager(headless=True, timeout_ms=5000, navigation_timeout_ms=10000, base_url=server.url)
    try:
        manager.start()
    except SessionUnavailable as e:
        pytest.skip(str(e))
    yield manager
    manager.stop()


@pytest.fixture
def executor(tmp_path):
    return StepExecutor(resolver=LocatorResolver(5000), timeout_ms=5000, navigation_timeout_ms=10000,
                        artifacts_dir=str(tmp_path))


def run_steps(manager, executor, steps):
    scenario = TestScenario(name="scenario", steps=steps)
    suite = TestSuite(name="Browser", scenarios=[scenario])
    session = manager.acquire(suite.session)
    try:
        return executor.run(suite, scenario, session), session
    finally:
        manager.release(session)


FORM_STEPS = [
    {"action": "navigate", "value": "/form.html"},
    {"action": "fill", "locator": {"label": "name"}, "value": "Ada"},
    {"action": "click", "locator": {"role": "button", "name": "submit"}},
    {"action": "assert", "condition": {"kind": "visible", "locator": {"text": "submitted: Ada"}}},
]

MOCK_500 = {"action": "intercept", "pattern": "**/api/users", "response": {"status": 500, "json": {"error": "boom"}}}

BANNER_STEPS = [
    {"action": "navigate", "value": "/users.html"},
    {"action": "assert", "timeout": 2000,
     "condition": {"kind": "text", "locator": {"role": "alert"}, "expected": "HTTP 500", "match": "contains"}},
]


def test_form_submission(manager, executor):
    result, _ = run_steps(manager, executor, FORM_STEPS)
    assert result.outcome == Outcome.PASSED, result.message


def test_mocked_server_error_shows_banner(manager, executor):
    result, session = run_steps(manager, executor, [MOCK_500] + BANNER_STEPS)

    assert result.outcome == Outcome.PASSED, result.message
    assert session.subscriptions.routes[0].hits == 1
    # The page itself was not intercepted.
    assert any(r.url.endswith("/users.html") and r.status == 200 for r in session.network.records)


def test_without_mock_the_banner_check_fails(manager, executor):
    result, _ = run_steps(manager, executor, BANNER_STEPS)

    assert result.outcome == Outcome.FAILED
    assert result.failing_step_index == 1
    assert "HTTP 404" in result.message


def test_wait_for_response(manager, executor):
    result, _ = run_steps(manager, executor, [
        {"action": "navigate", "value": "/users.html"},
        {"action": "reload"},
        {"action": "wait_for", "condition": {"kind": "response", "url": "/api/users", "status": 404}},
    ])
    assert result.outcome == Outcome.PASSED, result.message


def test_missing_element_is_a_failure(manager, executor):
    result, _ = run_steps(manager, executor, [
        {"action": "navigate", "value": "/form.html"},
        {"action": "click", "timeout": 500, "locator": {"role": "button", "name": "does not exist"}},
    ])
    assert result.outcome == Outcome.FAILED
    assert "LocatorUnresolved" in result.message


def test_shipped_local_suites_pass(manager, tmp_path):
    suites = YamlSuiteProvider([
        os.path.join(ROOT, "suites", "local.yaml"),
        os.path.join(ROOT, "suites", "sample_form.yaml"),
    ]).get_suites()

    class Borrowed:
        def __enter__(self):
            return manager

        def __exit__(self, *exc):
            pass

    config = RunConfig(timeout=5000, artifacts_dir=str(tmp_path), screenshot="only-on-failure")
    reporter = Runner(config, reporter=Reporter(stream=io.StringIO()), manager_factory=Borrowed).run(suites)

    failures = [(r.title, r.message) for r in reporter.failures()]
    assert failures == []
    assert reporter.summary()["passed"] == sum(len(s.scenarios) for s in suites)
