from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from scenario_runner.models.dsl import MockResponse

LOGGER = logging.getLogger("scenario_runner.session")


def glob_to_regex(pattern: str) -> str:
    """Playwright URL glob: '**' crosses '/', '*' does not, '{a,b}' alternates."""
    out = []
    i = 0
    in_group = False
    while i < len(pattern):
        ch = pattern[i]
        if ch == "*":
            if pattern.startswith("**", i):
                out.append(".*")
                i += 2
                continue
            out.append("[^/]*")
        elif ch == "{":
            in_group = True
            out.append("(")
        elif ch == "}" and in_group:
            in_group = False
            out.append(")")
        elif ch == "," and in_group:
            out.append("|")
        else:
            out.append(re.escape(ch))
        i += 1
    return "".join(out)


def url_matches(url: str, pattern: str) -> bool:
    """Glob when the pattern has a '*', substring otherwise."""
    if "*" in pattern:
        return re.fullmatch(glob_to_regex(pattern), url) is not None
    return pattern in url


@dataclass
class RouteRule:
    pattern: str
    response: MockResponse
    hits: int = 0
    handler: Optional[Callable[[Any], None]] = None


@dataclass
class DialogRule:
    action: str = "accept"
    prompt_text: Optional[str] = None
    expect_type: Optional[str] = None
    expect_message: Optional[str] = None
    once: bool = False


@dataclass(frozen=True)
class DialogEvent:
    type: str
    message: str
    action: str


@dataclass(frozen=True)
class ResponseRecord:
    url: str
    status: int
    method: str


class SubscriptionRegistry:
    """
    Interception and dialog rules for one page.

    Rules are registered by steps and consulted synchronously when the page
    raises the event, so a rule added by step N is in force for step N+1.
    """

    def __init__(self, page):
        self.page = page
        self.routes: List[RouteRule] = []
        self.dialog_rules: List[DialogRule] = []
        self.dialogs: List[DialogEvent] = []
        self._errors: List[str] = []

    def add_route(self, pattern: str, response: MockResponse) -> RouteRule:
        rule = RouteRule(pattern=pattern, response=response)
        rule.handler = lambda route: self._fulfill(rule, route)
        self.page.route(pattern, rule.handler)
        self.routes.append(rule)
        LOGGER.debug("Intercepting %s -> %s", pattern, response.status)
        return rule

    def _fulfill(self, rule: RouteRule, route) -> None:
        rule.hits += 1
        LOGGER.debug("Fulfilling %s with mocked %s", route.request.url, rule.response.status)
        route.fulfill(
            status=rule.response.status,
            headers=rule.response.headers or None,
            content_type=rule.response.resolved_content_type(),
            body=rule.response.payload(),
        )

    def add_dialog_rule(self, rule: DialogRule) -> None:
        self.dialog_rules.append(rule)

    def _next_dialog_rule(self) -> Optional[DialogRule]:
        for i, rule in enumerate(self.dialog_rules):
            if rule.once:
                return self.dialog_rules.pop(i)
        return self.dialog_rules[-1] if self.dialog_rules else None

    def dispatch_dialog(self, dialog) -> None:
        rule = self._next_dialog_rule()
        action = rule.action if rule else "dismiss"
        self.dialogs.append(DialogEvent(type=dialog.type, message=dialog.message, action=action))

        if rule is None:
            LOGGER.info("Dismissing unexpected %s dialog: %s", dialog.type, dialog.message)
        else:
            if rule.expect_type is not None and dialog.type != rule.expect_type:
                self._errors.append(f"dialog type: expected {rule.expect_type!r}, observed {dialog.type!r}")
            if rule.expect_message is not None and dialog.message != rule.expect_message:
                self._errors.append(f"dialog message: expected {rule.expect_message!r}, observed {dialog.message!r}")

        if action == "accept":
            if rule is not None and rule.prompt_text is not None:
                dialog.accept(rule.prompt_text)
            else:
                dialog.accept()
        else:
            dialog.dismiss()

    def take_errors(self) -> List[str]:
        errors, self._errors = self._errors, []
        return errors

    def clear(self) -> None:
        for rule in self.routes:
            self.page.unroute(rule.pattern, rule.handler)
        self.routes = []
        self.dialog_rules = []
        self.dialogs = []
        self._errors = []


class NetworkLog:
    """Responses seen by a page, with a mark set before each triggering step."""

    def __init__(self):
        self.records: List[ResponseRecord] = []
        self._mark = 0

    def record(self, response) -> None:
        self.records.append(ResponseRecord(url=response.url, status=response.status, method=response.request.method))

    def mark(self) -> None:
        self._mark = len(self.records)

    def since_mark(self) -> List[ResponseRecord]:
        return self.records[self._mark:]

    def find(self, url: str, status: Optional[int] = None) -> Optional[ResponseRecord]:
        for rec in self.since_mark():
            if url_matches(rec.url, url) and (status is None or rec.status == status):
                return rec
        return None

    def clear(self) -> None:
        self.records = []
        self._mark = 0
