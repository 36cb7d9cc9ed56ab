import glob
import logging
import os
from typing import List

import yaml
from pydantic import ValidationError

from scenario_runner.errors import SuiteError
from scenario_runner.models.dsl import TestSuite
from scenario_runner.providers.base import SuiteProvider

LOGGER = logging.getLogger("scenario_runner.providers")

SUITE_EXTENSIONS = ('.yaml', '.yml')


class YamlSuiteProvider(SuiteProvider):
    """
    Loads one suite per YAML file. Paths may be files or directories;
    directories are scanned for *.yaml / *.yml, sorted by name.

    File layout:

        suite: Form Testing Examples
        session: {base_url: ..., viewport: {width: 375, height: 667}}
        before_each: [...]
        scenarios:
          - name: login form example
            steps:
              - {action: navigate, value: /login}
    """

    def __init__(self, paths: List[str]):
        self.paths = paths

    def get_suites(self) -> List[TestSuite]:
        files = self._collect_files()
        LOGGER.info("Loading %s suite files", len(files))
        suites = [self.load(path) for path in files]

        seen = {}
        for suite in suites:
            for scenario in suite.scenarios:
                title = f"{suite.name} › {scenario.name}"
                if title in seen:
                    raise SuiteError(suite.source, f"scenario {title!r} is already defined in {seen[title]}")
                seen[title] = suite.source
        return suites

    def _collect_files(self) -> List[str]:
        files = []
        for path in self.paths:
            if os.path.isdir(path):
                found = []
                for ext in SUITE_EXTENSIONS:
                    found.extend(glob.glob(os.path.join(path, f"*{ext}")))
                if not found:
                    LOGGER.warning("No suite files in %s", path)
                files.extend(sorted(found))
            elif os.path.isfile(path):
                files.append(path)
            else:
                raise SuiteError(path, "no such file or directory")
        return files

    def load(self, path: str) -> TestSuite:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SuiteError(path, f"invalid YAML ({e})")

        if not isinstance(data, dict):
            raise SuiteError(path, "expected a mapping with 'suite' and 'scenarios'")

        data = dict(data)
        if "suite" in data:
            data["name"] = data.pop("suite")
        data["source"] = path

        try:
            return TestSuite(**data)
        except ValidationError as e:
            raise SuiteError(path, str(e))
