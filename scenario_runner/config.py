import os
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from scenario_runner.errors import RunnerError
from scenario_runner.models.dsl import Viewport

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise RunnerError(f"{name} must be an integer, got {raw!r}")


BASE_URL = os.getenv("RUNNER_BASE_URL") or None
BROWSER = os.getenv("RUNNER_BROWSER", "chromium")
HEADLESS = _env_bool("RUNNER_HEADLESS", True)
TIMEOUT_MS = _env_int("RUNNER_TIMEOUT_MS", 5000)
NAVIGATION_TIMEOUT_MS = _env_int("RUNNER_NAVIGATION_TIMEOUT_MS", 30000)
ARTIFACTS_DIR = os.getenv("RUNNER_ARTIFACTS_DIR", "test-results")
SUITES_DIR = os.getenv("RUNNER_SUITES_DIR", "suites")

PROJECT_CONFIG_FILE = "scenario_runner.yaml"

SCREENSHOT_MODES = ("off", "on", "only-on-failure")


class RunConfig(BaseModel):
    """Effective settings for one run: CLI > project file > environment > defaults."""

    base_url: Optional[str] = BASE_URL
    browser: str = BROWSER
    headless: bool = HEADLESS
    timeout: int = Field(TIMEOUT_MS, gt=0, description="Locator, wait_for and assert timeout (ms)")
    navigation_timeout: int = Field(NAVIGATION_TIMEOUT_MS, gt=0)
    retries: int = Field(0, ge=0)
    workers: int = Field(1, ge=1)
    screenshot: str = "only-on-failure"
    artifacts_dir: str = ARTIFACTS_DIR
    suites_dir: str = SUITES_DIR
    viewport: Optional[Viewport] = None
    serve: Optional[str] = None
    grep: Optional[str] = None
    report_json: Optional[str] = None

    def with_overrides(self, overrides: Dict[str, Any]) -> "RunConfig":
        data = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return validate_config(data)


def validate_config(data: Dict[str, Any], source: str = "configuration") -> RunConfig:
    if data.get("browser") not in (None, "chromium", "firefox", "webkit"):
        raise RunnerError(f"{source}: unknown browser {data['browser']!r}")
    if data.get("screenshot") not in (None,) + SCREENSHOT_MODES:
        raise RunnerError(f"{source}: screenshot must be one of {', '.join(SCREENSHOT_MODES)}")
    try:
        return RunConfig(**{k: v for k, v in data.items() if v is not None})
    except ValidationError as e:
        raise RunnerError(f"{source}: {e}")


def load_project_config(path: Optional[str] = None) -> RunConfig:
    """
    Reads the optional YAML project file on top of the environment defaults.
    An explicit path must exist; the default file name is optional.
    """
    config_path = path or PROJECT_CONFIG_FILE
    if not os.path.exists(config_path):
        if path:
            raise RunnerError(f"Config file {path} not found")
        return RunConfig()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise RunnerError(f"{config_path}: invalid YAML ({e})")

    if not isinstance(data, dict):
        raise RunnerError(f"{config_path}: expected a mapping of settings")
    return validate_config(data, source=config_path)
