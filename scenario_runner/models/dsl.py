import json
from enum import Enum
from typing import List, Optional, Dict, Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator


class Viewport(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)


class SessionConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    viewport: Optional[Viewport] = None
    base_url: Optional[str] = Field(None, description="Prefix for relative navigations")
    ignore_https_errors: bool = False


LOCATOR_STRATEGIES = ("role", "label", "placeholder", "text", "test_id", "css")


class LocatorSpec(BaseModel):
    """
    Declarative description of a page element. Never resolved eagerly:
    the resolver turns it into a Playwright locator when a step runs.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    role: Optional[str] = None
    name: Optional[str] = Field(None, description="Accessible name, only with 'role'")
    label: Optional[str] = None
    placeholder: Optional[str] = None
    text: Optional[str] = None
    test_id: Optional[str] = None
    css: Optional[str] = None
    exact: bool = False
    nth: Optional[int] = Field(None, ge=0)
    has_text: Optional[str] = None

    @model_validator(mode="after")
    def _one_strategy(self):
        used = [s for s in LOCATOR_STRATEGIES if getattr(self, s) is not None]
        if len(used) != 1:
            raise ValueError(f"locator needs exactly one of {', '.join(LOCATOR_STRATEGIES)} (got {used or 'none'})")
        if self.name is not None and self.role is None:
            raise ValueError("'name' is only valid together with 'role'")
        return self

    @property
    def strategy(self) -> str:
        return next(s for s in LOCATOR_STRATEGIES if getattr(self, s) is not None)

    def describe(self) -> str:
        if self.role is not None:
            desc = f"role={self.role}" + (f"[name='{self.name}']" if self.name is not None else "")
        else:
            desc = f"{self.strategy}='{getattr(self, self.strategy)}'"
        if self.has_text is not None:
            desc += f" >> has_text='{self.has_text}'"
        if self.nth is not None:
            desc += f" >> nth={self.nth}"
        return desc


class ConditionKind(str, Enum):
    VISIBLE = "visible"
    HIDDEN = "hidden"
    TEXT = "text"
    VALUE = "value"
    ATTRIBUTE = "attribute"
    COUNT = "count"
    TITLE = "title"
    URL = "url"
    COOKIE = "cookie"
    EVALUATE = "evaluate"
    RESPONSE = "response"


LOCATOR_KINDS = {ConditionKind.VISIBLE, ConditionKind.HIDDEN, ConditionKind.TEXT,
                 ConditionKind.VALUE, ConditionKind.ATTRIBUTE, ConditionKind.COUNT}


class Condition(BaseModel):
    """
    A predicate over page or session state, used by 'assert', 'wait_for' and 'store'.

    The observed value is compared against 'expected' (or against a stored
    variable when 'ref' is set, plus 'offset' for numbers) using 'match'.
    'visible', 'hidden' and 'response' carry their own truth value.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: ConditionKind
    locator: Optional[LocatorSpec] = None
    name: Optional[str] = Field(None, description="Attribute name or cookie name")
    expression: Optional[str] = Field(None, description="JavaScript expression or function")
    url: Optional[str] = Field(None, description="Response URL substring or glob")
    status: Optional[int] = None
    expected: Any = None
    match: str = Field("equals", pattern="^(equals|contains|matches)$")
    negate: bool = False
    ref: Optional[str] = Field(None, description="Scenario variable to compare against")
    offset: Union[int, float] = 0

    @model_validator(mode="after")
    def _operands(self):
        if self.kind in LOCATOR_KINDS and self.locator is None:
            raise ValueError(f"'{self.kind.value}' condition requires a locator")
        if self.kind in (ConditionKind.ATTRIBUTE, ConditionKind.COOKIE) and not self.name:
            raise ValueError(f"'{self.kind.value}' condition requires a name")
        if self.kind == ConditionKind.EVALUATE and not self.expression:
            raise ValueError("'evaluate' condition requires an expression")
        if self.kind == ConditionKind.RESPONSE and not self.url:
            raise ValueError("'response' condition requires a url")
        return self

    def describe(self) -> str:
        parts = [self.kind.value]
        if self.locator is not None:
            parts.append(self.locator.describe())
        if self.name:
            parts.append(f"name='{self.name}'")
        if self.expression:
            parts.append(f"expression={self.expression!r}")
        if self.url:
            parts.append(f"url='{self.url}'")
        if self.status is not None:
            parts.append(f"status={self.status}")
        text = " ".join(parts)
        return f"not {text}" if self.negate else text


class MockResponse(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    status: int = 200
    content_type: Optional[str] = None
    body: Optional[str] = None
    json_body: Any = Field(None, alias="json")
    headers: Dict[str, str] = Field(default_factory=dict)

    def payload(self) -> str:
        if self.json_body is not None:
            return json.dumps(self.json_body, ensure_ascii=False)
        return self.body or ""

    def resolved_content_type(self) -> str:
        if self.content_type:
            return self.content_type
        return "application/json" if self.json_body is not None else "text/plain"


class StepAction(str, Enum):
    NAVIGATE = "navigate"
    RELOAD = "reload"
    FILL = "fill"
    CLICK = "click"
    PRESS = "press"
    SELECT_OPTION = "select_option"
    UPLOAD_FILE = "upload_file"
    SET_VIEWPORT = "set_viewport"
    WAIT = "wait"
    WAIT_FOR = "wait_for"
    INTERCEPT = "intercept"
    HANDLE_DIALOG = "handle_dialog"
    STORE = "store"
    SCREENSHOT = "screenshot"
    ASSERT = "assert"


# Actions that trigger page activity; the network log is marked before they run.
TRIGGER_ACTIONS = {StepAction.NAVIGATE, StepAction.RELOAD, StepAction.FILL, StepAction.CLICK,
                   StepAction.PRESS, StepAction.SELECT_OPTION, StepAction.UPLOAD_FILE}

_REQUIRED = {
    StepAction.NAVIGATE: ("value",),
    StepAction.FILL: ("locator", "value"),
    StepAction.CLICK: ("locator",),
    StepAction.PRESS: ("value",),
    StepAction.SELECT_OPTION: ("locator", "value"),
    StepAction.UPLOAD_FILE: ("locator", "value"),
    StepAction.SET_VIEWPORT: ("value",),
    StepAction.WAIT: ("value",),
    StepAction.WAIT_FOR: ("condition",),
    StepAction.INTERCEPT: ("pattern", "response"),
    StepAction.STORE: ("condition", "variable"),
    StepAction.ASSERT: ("condition",),
}


class TestStep(BaseModel):
    __test__ = False
    model_config = ConfigDict(frozen=True, extra="forbid")

    action: StepAction = Field(..., description="Action to perform, e.g. 'navigate', 'fill', 'click', 'assert'")
    locator: Optional[LocatorSpec] = Field(None, description="Target element")
    value: Any = Field(None, description="Value to input, URL, key, milliseconds or file path")
    condition: Optional[Condition] = None
    pattern: Optional[str] = Field(None, description="URL glob for 'intercept'")
    response: Optional[MockResponse] = None
    variable: Optional[str] = Field(None, description="Variable name for 'store'")
    timeout: Optional[int] = Field(None, gt=0, description="Per-step timeout override (ms)")
    description: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict, description="Additional arguments")

    @model_validator(mode="after")
    def _required_fields(self):
        missing = [f for f in _REQUIRED.get(self.action, ()) if getattr(self, f) is None]
        if missing:
            raise ValueError(f"'{self.action.value}' step requires {', '.join(missing)}")
        if self.action == StepAction.HANDLE_DIALOG and self.value not in (None, "accept", "dismiss"):
            raise ValueError("'handle_dialog' value must be 'accept' or 'dismiss'")
        if self.action == StepAction.SET_VIEWPORT:
            try:
                Viewport.model_validate(self.value)
            except ValidationError as e:
                raise ValueError(f"'set_viewport' value must be {{width, height}}: {e.error_count()} error(s)")
        if self.action == StepAction.WAIT and (isinstance(self.value, bool) or not isinstance(self.value, (int, float))):
            raise ValueError("'wait' value must be a number of milliseconds")
        return self

    def describe(self) -> str:
        if self.description:
            return self.description
        parts = [self.action.value]
        if self.locator is not None:
            parts.append(self.locator.describe())
        if self.condition is not None:
            parts.append(self.condition.describe())
        if self.pattern is not None:
            parts.append(self.pattern)
        if self.value is not None and self.action != StepAction.SET_VIEWPORT:
            parts.append(repr(self.value))
        return " ".join(parts)


class TestScenario(BaseModel):
    __test__ = False
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    steps: List[TestStep]


class TestSuite(BaseModel):
    __test__ = False
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    session: SessionConfig = Field(default_factory=SessionConfig)
    session_scope: str = Field("scenario", pattern="^(scenario|suite)$")
    before_each: List[TestStep] = Field(default_factory=list)
    scenarios: List[TestScenario]
    source: Optional[str] = Field(None, description="File the suite was loaded from")

    @model_validator(mode="after")
    def _unique_names(self):
        seen = set()
        for scenario in self.scenarios:
            if scenario.name in seen:
                raise ValueError(f"duplicate scenario name {scenario.name!r}")
            seen.add(scenario.name)
        return self


class Outcome(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    TIMED_OUT = "timedOut"


class TestResult(BaseModel):
    __test__ = False
    model_config = ConfigDict(frozen=True)

    suite: str
    scenario_name: str
    outcome: Outcome
    failing_step_index: Optional[int] = None
    message: Optional[str] = None
    artifact: Optional[str] = None
    duration_ms: int = 0
    attempts: int = 1

    @property
    def title(self) -> str:
        return f"{self.suite} › {self.scenario_name}"

    @property
    def passed(self) -> bool:
        return self.outcome == Outcome.PASSED
