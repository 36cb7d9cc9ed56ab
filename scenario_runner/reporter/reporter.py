import json
import os
import sys
import threading
from typing import Dict, List, Tuple

from scenario_runner.models.dsl import Outcome, TestResult

_MARKS = {
    Outcome.PASSED: "✓",
    Outcome.FAILED: "✘",
    Outcome.TIMED_OUT: "⏱",
}


class Reporter:
    """
    Append-only collection of scenario results. Safe to record from several
    worker threads; a scenario can be recorded once.
    """

    def __init__(self, stream=None, echo: bool = True):
        self.stream = stream or sys.stdout
        self.echo = echo
        self._results: List[TestResult] = []
        self._seen = set()
        self._lock = threading.Lock()

    def record(self, result: TestResult) -> None:
        key = (result.suite, result.scenario_name)
        with self._lock:
            if key in self._seen:
                raise ValueError(f"result for {result.title} already recorded")
            self._seen.add(key)
            self._results.append(result)
            if self.echo:
                self._print_line(result)

    @property
    def results(self) -> Tuple[TestResult, ...]:
        with self._lock:
            return tuple(self._results)

    def summary(self) -> Dict[str, int]:
        results = self.results
        counts = {outcome.value: 0 for outcome in Outcome}
        for result in results:
            counts[result.outcome.value] += 1
        counts["total"] = len(results)
        return counts

    @property
    def ok(self) -> bool:
        results = self.results
        return bool(results) and all(r.passed for r in results)

    def failures(self) -> List[TestResult]:
        return [r for r in self.results if not r.passed]

    def _print_line(self, result: TestResult) -> None:
        retry = f" (attempt {result.attempts})" if result.attempts > 1 else ""
        print(f"  {_MARKS[result.outcome]} {result.title} ({result.duration_ms}ms){retry}", file=self.stream)

    def print_summary(self) -> None:
        failures = self.failures()
        if failures:
            print("", file=self.stream)
            for idx, result in enumerate(failures, 1):
                print(f"  {idx}) {result.title} [{result.outcome.value}]", file=self.stream)
                print(f"     {result.message}", file=self.stream)
                if result.artifact:
                    print(f"     screenshot: {result.artifact}", file=self.stream)

        counts = self.summary()
        print("", file=self.stream)
        print(f"  {counts['passed']} passed, {counts['failed']} failed, "
              f"{counts['timedOut']} timed out ({counts['total']} total)", file=self.stream)

    def write_json(self, path: str) -> None:
        directory = os.path.dirname(path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory)
        data = {
            "summary": self.summary(),
            "results": [r.model_dump(mode="json") for r in self.results],
        }
        with open(path, "w", encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
