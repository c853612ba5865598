import statistics
from typing import Dict, Mapping, Sequence

from kontent_perf.bench.types import Aggregate, MetricSeries


class EmptySeriesError(ValueError):
    pass


def calculate_stats(samples: Sequence[float]) -> Aggregate:
    data = list(samples)
    if not data:
        raise EmptySeriesError("cannot aggregate an empty series")

    # statistics.mean sums exactly and rounds once, so avg stays within [min, max]
    return Aggregate(min=min(data), max=max(data), avg=statistics.mean(data))


class Metrics:
    def aggregate(self, series: Mapping[str, MetricSeries]) -> Dict[str, Aggregate]:
        # keeps the order the runner produced the series in
        return {name: calculate_stats(s.samples) for name, s in series.items()}
