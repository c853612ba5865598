from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

# A zero-argument async operation whose latency is being measured.
Operation = Callable[[], Awaitable[Any]]

# Per-iteration scratch state shared between the steps of one iteration.
IterationState = Dict[str, Any]


@dataclass(frozen=True)
class Measurement:
    duration_ms: float
    result: Any = None   # None when the call ended in an expected absence


@dataclass
class TimedStep:
    name: str                                      # metric name, e.g. "viewAsset"
    prepare: Callable[[IterationState], Operation]  # untimed setup
    store_as: Optional[str] = None                 # key for the call result in IterationState


@dataclass
class MetricSeries:
    name: str
    samples: List[float] = field(default_factory=list)

    def append(self, sample: float) -> None:
        self.samples.append(sample)

    def __len__(self) -> int:
        return len(self.samples)


@dataclass(frozen=True)
class Aggregate:
    min: float
    max: float
    avg: float

    def to_dict(self) -> Dict[str, float]:
        return {"min": self.min, "max": self.max, "avg": self.avg}


@dataclass(frozen=True)
class UploadFile:
    name: str
    size_in_bytes: int
