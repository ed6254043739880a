"""
Wall-clock timings of the coupling stages.
"""

import time
from collections import OrderedDict
from contextlib import contextmanager
from typing import Dict, Iterator


class CouplingTimings:
    """
    Accumulated wall time and call count per stage.

    Example
    -------
    ::

        timings = CouplingTimings()
        with timings.measure("fluid"):
            traction = fluid.solve_fluid(d, t)
    """

    STAGES = ("mesh motion", "fluid", "structure", "acceleration")

    def __init__(self):
        self._seconds: Dict[str, float] = OrderedDict((stage, 0.0) for stage in self.STAGES)
        self._calls: Dict[str, int] = OrderedDict((stage, 0) for stage in self.STAGES)

    @contextmanager
    def measure(self, stage: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            self.add(stage, time.perf_counter() - start)

    def add(self, stage: str, seconds: float) -> None:
        self._seconds[stage] = self._seconds.get(stage, 0.0) + seconds
        self._calls[stage] = self._calls.get(stage, 0) + 1

    def seconds(self, stage: str) -> float:
        return self._seconds.get(stage, 0.0)

    def calls(self, stage: str) -> int:
        return self._calls.get(stage, 0)

    @property
    def total(self) -> float:
        return sum(self._seconds.values())

    def items(self):
        """Iterate over ``(stage, seconds, calls)``."""
        for stage, seconds in self._seconds.items():
            yield stage, seconds, self._calls[stage]
