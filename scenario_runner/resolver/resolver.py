import logging
from dataclasses import dataclass
from typing import Optional, Union

from playwright.sync_api import Locator, Page, Error as PlaywrightError

from scenario_runner import config
from scenario_runner.models.dsl import LocatorSpec
from scenario_runner.runner.polling import wait_until

LOGGER = logging.getLogger("scenario_runner.resolver")


@dataclass(frozen=True)
class Unresolved:
    """No element matched a locator within the timeout."""
    description: str
    timeout_ms: int

    def __bool__(self) -> bool:
        return False


class LocatorResolver:
    def __init__(self, timeout_ms: int = config.TIMEOUT_MS):
        self.timeout_ms = timeout_ms

    def build(self, page: Page, spec: LocatorSpec) -> Locator:
        """Turns a LocatorSpec into a lazy Playwright locator covering every match."""
        if spec.role is not None:
            locator = page.get_by_role(spec.role, name=spec.name, exact=spec.exact)
        elif spec.label is not None:
            locator = page.get_by_label(spec.label, exact=spec.exact)
        elif spec.placeholder is not None:
            locator = page.get_by_placeholder(spec.placeholder, exact=spec.exact)
        elif spec.text is not None:
            locator = page.get_by_text(spec.text, exact=spec.exact)
        elif spec.test_id is not None:
            locator = page.get_by_test_id(spec.test_id)
        else:
            locator = page.locator(spec.css)

        if spec.has_text is not None:
            locator = locator.filter(has_text=spec.has_text)
        return locator

    def pick(self, locator: Locator, spec: LocatorSpec) -> Locator:
        # Several matches resolve to the first one unless nth says otherwise.
        return locator.nth(spec.nth) if spec.nth is not None else locator.first

    def resolve(self, session, spec: LocatorSpec, timeout: Optional[int] = None) -> Union[Locator, Unresolved]:
        """
        Polls with backoff until the element is attached to the page.
        Returns Unresolved instead of raising so callers can tell an absent
        element from a failing interaction.
        """
        timeout_ms = timeout or self.timeout_ms
        locator = self.build(session.page, spec)
        needed = (spec.nth or 0) + 1

        def attached():
            try:
                count = locator.count()
            except PlaywrightError as e:
                # Page is navigating; try again on the next tick.
                return False, str(e)
            return count >= needed, count

        result = wait_until(attached, timeout_ms, sleep=session.sleep)
        if not result.ok:
            LOGGER.debug("Unresolved %s after %s attempts (count=%s)", spec.describe(), result.attempts, result.value)
            return Unresolved(spec.describe(), timeout_ms)
        return self.pick(locator, spec)
