import os

import pytest
from pydantic import ValidationError

from scenario_runner.errors import SuiteError
from scenario_runner.models.dsl import (
    Condition,
    LocatorSpec,
    MockResponse,
    Outcome,
    StepAction,
    TestResult,
    TestStep,
)
from scenario_runner.providers.yaml_suite import YamlSuiteProvider

SUITES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "suites")


def write_suite(tmp_path, text, name="suite.yaml"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_load_suite_from_yaml(tmp_path):
    path = write_suite(tmp_path, """
suite: Login
session:
  base_url: http://localhost:8000
  viewport: {width: 375, height: 667}
before_each:
  - {action: navigate, value: /login}
scenarios:
  - name: logs in
    steps:
      - {action: fill, locator: {label: Username}, value: practice}
      - {action: click, locator: {role: button, name: Login}}
      - action: assert
        condition: {kind: visible, locator: {text: Welcome}}
""")
    suite = YamlSuiteProvider([path]).load(path)

    assert suite.name == "Login"
    assert suite.source == path
    assert suite.session.viewport.width == 375
    assert suite.before_each[0].action == StepAction.NAVIGATE
    steps = suite.scenarios[0].steps
    assert [s.action for s in steps] == [StepAction.FILL, StepAction.CLICK, StepAction.ASSERT]
    assert steps[1].locator.describe() == "role=button[name='Login']"


def test_directory_is_scanned_in_name_order(tmp_path):
    body = "suite: {name}\nscenarios:\n  - name: s\n    steps: [{{action: wait, value: 1}}]\n"
    write_suite(tmp_path, body.format(name="B"), "b.yml")
    write_suite(tmp_path, body.format(name="A"), "a.yaml")
    (tmp_path / "notes.txt").write_text("ignored")

    suites = YamlSuiteProvider([str(tmp_path)]).get_suites()

    assert sorted(s.name for s in suites) == ["A", "B"]


def test_step_missing_required_field_is_a_suite_error(tmp_path):
    path = write_suite(tmp_path, """
suite: Broken
scenarios:
  - name: fill without a locator
    steps:
      - {action: fill, value: x}
""")
    with pytest.raises(SuiteError) as exc:
        YamlSuiteProvider([path]).get_suites()
    assert "requires locator" in str(exc.value)
    assert path in str(exc.value)


def test_missing_path_is_a_suite_error(tmp_path):
    with pytest.raises(SuiteError):
        YamlSuiteProvider([str(tmp_path / "nope.yaml")]).get_suites()


def test_duplicate_scenario_names_rejected(tmp_path):
    path = write_suite(tmp_path, """
suite: Dupes
scenarios:
  - {name: same, steps: []}
  - {name: same, steps: []}
""")
    with pytest.raises(SuiteError):
        YamlSuiteProvider([path]).load(path)


def test_locator_needs_exactly_one_strategy():
    with pytest.raises(ValidationError):
        LocatorSpec()
    with pytest.raises(ValidationError):
        LocatorSpec(label="Name", css="#name")
    with pytest.raises(ValidationError):
        LocatorSpec(text="Save", name="Save")


def test_locator_describe():
    assert LocatorSpec(css="#dataTable tbody tr").describe() == "css='#dataTable tbody tr'"
    assert LocatorSpec(role="button", name="削除", nth=0).describe() == "role=button[name='削除'] >> nth=0"


def test_steps_are_immutable():
    step = TestStep(action="click", locator={"text": "Save"})
    with pytest.raises(ValidationError):
        step.action = StepAction.FILL


def test_step_validation():
    with pytest.raises(ValidationError):
        TestStep(action="wait", value="soon")
    with pytest.raises(ValidationError):
        TestStep(action="handle_dialog", value="maybe")
    with pytest.raises(ValidationError):
        TestStep(action="set_viewport", value={"width": 0, "height": 10})
    with pytest.raises(ValidationError):
        TestStep(action="teleport")


def test_condition_operands():
    with pytest.raises(ValidationError):
        Condition(kind="visible")
    with pytest.raises(ValidationError):
        Condition(kind="cookie")
    with pytest.raises(ValidationError):
        Condition(kind="response")
    assert Condition(kind="title", expected="x", negate=True).describe() == "not title"


def test_mock_response_payload():
    mock = MockResponse(status=500, json={"error": "boom"})
    assert mock.payload() == '{"error": "boom"}'
    assert mock.resolved_content_type() == "application/json"

    plain = MockResponse(body="hi")
    assert plain.status == 200
    assert plain.resolved_content_type() == "text/plain"


def test_result_title_and_outcome_values():
    result = TestResult(suite="S", scenario_name="x", outcome=Outcome.TIMED_OUT)
    assert result.title == "S › x"
    assert not result.passed
    assert result.model_dump(mode="json")["outcome"] == "timedOut"


def test_shipped_suites_are_valid():
    suites = YamlSuiteProvider([SUITES_DIR]).get_suites()
    names = {s.name for s in suites}
    assert "Local Sample Page Tests" in names
    assert "Sample Form and API" in names
    assert all(s.scenarios for s in suites)
