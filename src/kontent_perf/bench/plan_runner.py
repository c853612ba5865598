from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence

from kontent_perf.bench.collector import SampleCollector
from kontent_perf.bench.types import IterationState, MetricSeries, TimedStep


class PlanRunner:
    """
    Sequential iteration driver.

    Runs the full step sequence ``iterations`` times, one await at a time:

      1) each step's ``prepare`` builds the call from the iteration state (untimed)
      2) the collector times the call
      3) the sample is appended to that step's series
      4) if the step declares ``store_as``, its result is handed to later steps

    Any error that the collector does not swallow aborts the whole run and
    the partial series are dropped.
    """

    def __init__(
        self,
        collector: SampleCollector,
        steps: Sequence[TimedStep],
        iterations: int,
        on_iteration: Optional[Callable[[int, int], None]] = None,
    ) -> None:
        if not isinstance(iterations, int) or iterations < 1:
            raise ValueError(f"iterations must be a positive integer, got {iterations!r}")
        names = [s.name for s in steps]
        if not names:
            raise ValueError("at least one timed step is required")
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate step names: {duplicates}")

        self.collector = collector
        self.steps: List[TimedStep] = list(steps)
        self.iterations = iterations
        self.on_iteration = on_iteration

    async def run(self) -> Dict[str, MetricSeries]:
        series = {step.name: MetricSeries(step.name) for step in self.steps}

        for i in range(self.iterations):
            if self.on_iteration is not None:
                self.on_iteration(i + 1, self.iterations)
            await self._run_iteration(series)

        return series

    async def _run_iteration(self, series: Dict[str, MetricSeries]) -> None:
        state: IterationState = {}
        for step in self.steps:
            operation = step.prepare(state)
            measurement = await self.collector.measure(operation)
            series[step.name].append(measurement.duration_ms)
            if step.store_as:
                state[step.store_as] = measurement.result
