import time
from typing import Any, Callable

from kontent_perf.bench.types import Measurement, Operation


class SampleCollector:
    """
    Times one remote call at a time.

    The clock is read just before the operation is invoked and just after its
    result (or failure) is known. Failures accepted by ``is_expected_absence``
    (e.g. a 404 while probing for a resource) still yield a sample; anything
    else propagates unchanged and no sample is produced.
    """

    def __init__(
        self,
        is_expected_absence: Callable[[BaseException], bool],
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.is_expected_absence = is_expected_absence
        self.clock = clock

    async def measure(self, operation: Operation) -> Measurement:
        result: Any = None
        start = self.clock()
        try:
            result = await operation()
        except Exception as err:
            if not self.is_expected_absence(err):
                raise
        elapsed_ms = (self.clock() - start) * 1000.0
        return Measurement(duration_ms=max(0.0, elapsed_ms), result=result)

    async def collect(self, operation: Operation) -> float:
        return (await self.measure(operation)).duration_ms
