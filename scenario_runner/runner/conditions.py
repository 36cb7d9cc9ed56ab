from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from playwright.sync_api import Error as PlaywrightError

from scenario_runner.errors import StepError
from scenario_runner.models.dsl import Condition, ConditionKind


@dataclass(frozen=True)
class Observation:
    ok: bool
    actual: Any
    expected: Any


def expected_value(session, condition: Condition) -> Any:
    if condition.ref is None:
        return condition.expected
    if condition.ref not in session.variables:
        raise StepError(f"variable {condition.ref!r} has not been stored")
    base = session.variables[condition.ref]
    if condition.offset:
        return base + condition.offset
    return base


def compare(actual: Any, expected: Any, match: str) -> bool:
    if match == "contains":
        return actual is not None and str(expected) in str(actual)
    if match == "matches":
        return actual is not None and re.search(str(expected), str(actual)) is not None
    if actual == expected:
        return True
    # YAML scalars and DOM strings disagree on types ("25" vs 25).
    if actual is None or expected is None or isinstance(actual, bool) or isinstance(expected, bool):
        return False
    return str(actual) == str(expected)


def read(session, resolver, condition: Condition) -> Any:
    """Observes the raw value a condition talks about, without waiting."""
    page = session.page
    kind = condition.kind

    if kind == ConditionKind.TITLE:
        return page.title()
    if kind == ConditionKind.URL:
        return page.url
    if kind == ConditionKind.COOKIE:
        for cookie in session.context.cookies():
            if cookie["name"] == condition.name:
                return cookie["value"]
        return None
    if kind == ConditionKind.RESPONSE:
        record = session.network.find(condition.url, condition.status)
        return record.status if record else None
    if kind == ConditionKind.EVALUATE and condition.locator is None:
        return page.evaluate(condition.expression)

    spec = condition.locator
    locator = resolver.build(page, spec)
    if kind == ConditionKind.COUNT:
        return locator.count()

    target = resolver.pick(locator, spec)
    if kind in (ConditionKind.VISIBLE, ConditionKind.HIDDEN):
        return target.is_visible()
    # The remaining reads auto-wait in Playwright; don't block on absent elements.
    if locator.count() <= (spec.nth or 0):
        return None
    if kind == ConditionKind.TEXT:
        return (target.inner_text() or "").strip()
    if kind == ConditionKind.VALUE:
        return target.input_value()
    if kind == ConditionKind.ATTRIBUTE:
        return target.get_attribute(condition.name)
    return target.evaluate(condition.expression)


def observe(session, resolver, condition: Condition) -> Observation:
    expected = expected_value(session, condition)
    try:
        actual = read(session, resolver, condition)
    except PlaywrightError as e:
        # Usually a navigation racing the read; pollers try again.
        return Observation(False, f"<error: {e}>", expected)

    if condition.kind == ConditionKind.VISIBLE:
        ok = bool(actual)
    elif condition.kind == ConditionKind.HIDDEN:
        ok = not actual
    elif condition.kind == ConditionKind.RESPONSE:
        ok = actual is not None
    else:
        ok = compare(actual, expected, condition.match)
    return Observation(ok != condition.negate, actual, expected)
