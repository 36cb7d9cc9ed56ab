"""Fake Playwright objects for exercising the runner without a browser."""
import time

import pytest

from scenario_runner.session.manager import Session


class FakeElement(dict):
    pass


class FakeLocator:
    def __init__(self, page, key, index=0):
        self.page = page
        self.key = key
        self.index = index

    def _element(self):
        elements = self.page.elements.get(self.key, [])
        if self.index >= len(elements):
            raise AssertionError(f"no element for {self.key}")
        return elements[self.index]

    def count(self):
        return len(self.page.elements.get(self.key, []))

    @property
    def first(self):
        return FakeLocator(self.page, self.key, 0)

    def nth(self, index):
        return FakeLocator(self.page, self.key, index)

    def filter(self, has_text=None):
        return self

    def is_visible(self):
        return self.count() > self.index and self._element().get("visible", True)

    def fill(self, value, timeout=None):
        self.page.calls.append(("fill", self.key, value))
        self._element()["value"] = value

    def click(self, button="left", click_count=1, timeout=None):
        self.page.calls.append(("click", self.key))
        on_click = self._element().get("on_click")
        if on_click:
            on_click(self.page)

    def press(self, key, timeout=None):
        self.page.calls.append(("press", self.key, key))

    def select_option(self, value, timeout=None):
        self.page.calls.append(("select_option", self.key, value))

    def set_input_files(self, files, timeout=None):
        self.page.calls.append(("set_input_files", self.key, files))

    def inner_text(self):
        return self._element().get("text", "")

    def input_value(self):
        return self._element().get("value", "")

    def get_attribute(self, name):
        return self._element().get("attrs", {}).get(name)

    def evaluate(self, expression):
        return self._element().get("eval")


class FakeKeyboard:
    def __init__(self, page):
        self.page = page

    def press(self, key):
        self.page.calls.append(("keyboard", key))


class FakeDialog:
    def __init__(self, type, message):
        self.type = type
        self.message = message
        self.handled = None

    def accept(self, prompt_text=None):
        self.handled = ("accept", prompt_text)

    def dismiss(self):
        self.handled = ("dismiss", None)


class FakeRequest:
    def __init__(self, method="GET"):
        self.method = method


class FakeResponse:
    def __init__(self, url, status=200):
        self.url = url
        self.status = status
        self.request = FakeRequest()


class FakePage:
    def __init__(self, elements=None, title="Fake Page"):
        self.elements = elements or {}
        self.title_text = title
        self.url = "about:blank"
        self.calls = []
        self.handlers = {}
        self.routes = []
        self.eval_result = None
        self.on_goto = None
        self.on_wait = None
        self.keyboard = FakeKeyboard(self)

    def add(self, key, **element):
        self.elements.setdefault(key, []).append(FakeElement(element))

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    def fire(self, event, payload):
        for handler in self.handlers.get(event, []):
            handler(payload)

    def get_by_role(self, role, name=None, exact=False):
        return FakeLocator(self, f"role={role}:{name}")

    def get_by_label(self, label, exact=False):
        return FakeLocator(self, f"label={label}")

    def get_by_placeholder(self, text, exact=False):
        return FakeLocator(self, f"placeholder={text}")

    def get_by_text(self, text, exact=False):
        return FakeLocator(self, f"text={text}")

    def get_by_test_id(self, test_id):
        return FakeLocator(self, f"test_id={test_id}")

    def locator(self, selector):
        return FakeLocator(self, f"css={selector}")

    def goto(self, url, wait_until="load", timeout=None):
        self.calls.append(("goto", url))
        self.url = url
        if self.on_goto:
            self.on_goto(self, url)

    def reload(self, wait_until="load", timeout=None):
        self.calls.append(("reload", self.url))
        if self.on_goto:
            self.on_goto(self, self.url)

    def title(self):
        return self.title_text

    def evaluate(self, expression):
        return self.eval_result

    def wait_for_timeout(self, ms):
        time.sleep(ms / 1000.0)
        if self.on_wait:
            self.on_wait(self)

    def set_viewport_size(self, size):
        self.calls.append(("viewport", size["width"], size["height"]))

    def screenshot(self, path=None, full_page=False):
        self.calls.append(("screenshot", path))
        with open(path, "wb") as f:
            f.write(b"\x89PNG")

    def route(self, pattern, handler):
        self.routes.append((pattern, handler))

    def unroute(self, pattern, handler=None):
        self.routes.remove((pattern, handler))


class FakeContext:
    def __init__(self):
        self.cookie_jar = []
        self.closed = False

    def cookies(self):
        return list(self.cookie_jar)

    def close(self):
        self.closed = True


class FakeSessionManager:
    """Hands out sessions over FakePages built by page_factory."""

    def __init__(self, page_factory=None):
        self.page_factory = page_factory or FakePage
        self.acquired = []
        self.released = []
        self.entered = False
        self.exited = False

    def acquire(self, session_config=None):
        session = Session(FakeContext(), self.page_factory())
        self.acquired.append(session)
        return session

    def release(self, session):
        session.context.close()
        self.released.append(session)

    def __enter__(self):
        self.entered = True
        return self

    def __exit__(self, *exc):
        self.exited = True


@pytest.fixture
def page():
    return FakePage()


@pytest.fixture
def session(page):
    return Session(FakeContext(), page)
