from abc import ABC, abstractmethod
from typing import List

from scenario_runner.models.dsl import TestSuite


class SuiteProvider(ABC):
    @abstractmethod
    def get_suites(self) -> List[TestSuite]:
        """
        Returns the suites to run, in a stable order.
        Raises SuiteError when a definition is invalid.
        """
        pass
