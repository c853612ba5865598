import asyncio

import httpx
from behave import given, when, then

from kontent_perf.bench.collector import SampleCollector
from kontent_perf.bench.metrics import EmptySeriesError, Metrics, calculate_stats
from kontent_perf.bench.plan_runner import PlanRunner
from kontent_perf.bench.types import MetricSeries, TimedStep
from kontent_perf.sut.management_client import ManagementClient

TOLERANCE = 1e-6


class FakeClock:
    """Seconds-based clock that only moves when a fake operation says so."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def advance(self, ms: float) -> None:
        self.now += ms / 1000.0

    def __call__(self) -> float:
        return self.now


class BackwardsClock:
    def __init__(self):
        self.now = 10.0

    def __call__(self) -> float:
        self.now -= 1.0
        return self.now


def http_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://manage.kontent.ai/v2/projects/p/assets/x")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


def _floats(raw: str) -> list:
    return [float(x) for x in raw.split(",") if x.strip()]


def _names(raw: str) -> list:
    return [x.strip() for x in raw.split(",") if x.strip()]


def _close(actual: float, expected: float) -> bool:
    return abs(actual - expected) <= TOLERANCE


def _collector(context) -> SampleCollector:
    return SampleCollector(ManagementClient.is_not_found, clock=context.clock)


# ---- aggregation ----

@given('the samples "{samples}"')
def step_samples(context, samples):
    context.samples = _floats(samples)


@given("no samples")
def step_no_samples(context):
    context.samples = []


@given('a series "{name}" with samples "{samples}"')
def step_named_series(context, name, samples):
    if getattr(context, "named_series", None) is None:
        context.named_series = {}
    context.named_series[name] = MetricSeries(name, _floats(samples))


@when("I aggregate the samples")
def step_aggregate(context):
    try:
        context.aggregate = calculate_stats(context.samples)
    except Exception as e:
        context.error = e


@when("I aggregate all series")
def step_aggregate_all(context):
    context.aggregates = Metrics().aggregate(context.named_series)


@then("the aggregate is min {mn:g}, max {mx:g}, avg {avg:g}")
def step_check_aggregate(context, mn, mx, avg):
    agg = context.aggregate
    assert _close(agg.min, mn), f"min {agg.min} != {mn}"
    assert _close(agg.max, mx), f"max {agg.max} != {mx}"
    assert _close(agg.avg, avg), f"avg {agg.avg} != {avg}"


@then("min <= avg <= max holds")
def step_check_order(context):
    agg = context.aggregate
    assert agg.min <= agg.avg <= agg.max, f"ordering broken: {agg}"


@then("aggregation fails with an empty series error")
def step_check_empty(context):
    assert isinstance(context.error, EmptySeriesError), f"got {context.error!r}"
    assert isinstance(context.error, ValueError)


@then('the aggregated metric names are "{names}"')
def step_check_metric_names(context, names):
    assert list(context.aggregates) == _names(names), list(context.aggregates)


@then('the "{name}" aggregate is min {mn:g}, max {mx:g}, avg {avg:g}')
def step_check_named_aggregate(context, name, mn, mx, avg):
    agg = context.aggregates[name]
    assert _close(agg.min, mn), f"{name} min {agg.min} != {mn}"
    assert _close(agg.max, mx), f"{name} max {agg.max} != {mx}"
    assert _close(agg.avg, avg), f"{name} avg {agg.avg} != {avg}"


# ---- collector ----

@given("a fake clock")
def step_fake_clock(context):
    context.clock = FakeClock()
    context.steps = []
    context.calls = []


@given("a clock that runs backwards")
def step_backwards_clock(context):
    context.clock = BackwardsClock()


@given('an operation that takes {ms:g} ms and returns "{value}"')
def step_op_returns(context, ms, value):
    async def op():
        context.clock.advance(ms)
        return value
    context.operation = op


@given("an operation that takes {ms:g} ms and fails with HTTP {status:d}")
def step_op_fails(context, ms, status):
    context.raised = http_error(status)

    async def op():
        context.clock.advance(ms)
        raise context.raised
    context.operation = op


@given("an operation that fails with a transport error")
def step_op_transport_error(context):
    context.raised = httpx.ConnectError("connection refused")

    async def op():
        raise context.raised
    context.operation = op


@given("an operation that returns immediately")
def step_op_immediate(context):
    async def op():
        return None
    context.operation = op


@when("I measure the operation")
def step_measure(context):
    context.measurement = None
    try:
        context.measurement = asyncio.run(_collector(context).measure(context.operation))
    except Exception as e:
        context.error = e


@then("the sample is {ms:g} ms")
def step_check_sample(context, ms):
    assert context.error is None, f"unexpected error {context.error!r}"
    assert context.measurement.duration_ms >= 0
    assert _close(context.measurement.duration_ms, ms), context.measurement.duration_ms


@then('the measured result is "{value}"')
def step_check_result(context, value):
    assert context.measurement.result == value


@then("the measured result is empty")
def step_check_no_result(context):
    assert context.measurement.result is None


@then("the original HTTP {status:d} error is raised")
def step_check_original_error(context, status):
    assert context.error is context.raised, f"got {context.error!r}"
    assert context.error.response.status_code == status


@then("no sample was recorded")
def step_check_no_sample(context):
    assert context.measurement is None


@then("the transport error is raised")
def step_check_transport_error(context):
    assert context.error is context.raised
    assert isinstance(context.error, httpx.ConnectError)


# ---- iteration driver ----

def _timed_step(context, name, durations, result=None, store_as=None):
    calls = {"n": 0}

    def prepare(state):
        async def op():
            i = calls["n"]
            calls["n"] += 1
            context.calls.append(name)
            context.clock.advance(durations[i % len(durations)])
            return result
        return op

    return TimedStep(name, prepare, store_as=store_as)


@given("{k:d} steps that each take {ms:g} ms")
def step_k_steps(context, k, ms):
    context.steps = [_timed_step(context, f"s{i + 1}", [ms]) for i in range(k)]


@given('a producer step "{name}" that takes {ms:g} ms and returns "{value}"')
def step_producer(context, name, ms, value):
    context.steps.append(_timed_step(context, name, [ms], result=value, store_as="ref"))


@given('a consumer step "{name}" that takes {ms:g} ms and {setup:g} ms of setup')
def step_consumer(context, name, ms, setup):
    def prepare(state):
        context.clock.advance(setup)
        context.consumed = state.get("ref")

        async def op():
            context.calls.append(name)
            context.clock.advance(ms)
        return op

    context.steps.append(TimedStep(name, prepare))


@given('a step "{name}" that takes {a:g} ms then {b:g} ms')
def step_alternating(context, name, a, b):
    context.steps.append(_timed_step(context, name, [a, b]))


@given('a step "{name}" that always fails with HTTP 404')
def step_not_found(context, name):
    def prepare(state):
        async def op():
            context.calls.append(name)
            raise http_error(404)
        return op

    context.steps.append(TimedStep(name, prepare))


@given('a step "{name}" that fails with HTTP {status:d} on iteration {k:d}')
def step_fails_on(context, name, status, k):
    calls = {"n": 0}

    def prepare(state):
        async def op():
            calls["n"] += 1
            context.clock.advance(1)
            if calls["n"] == k:
                raise http_error(status)
        return op

    context.steps.append(TimedStep(name, prepare))


def _run(context, iterations):
    context.series = None
    runner = PlanRunner(_collector(context), context.steps, iterations)
    try:
        context.series = asyncio.run(runner.run())
    except Exception as e:
        context.error = e


@when("I run {n:d} iterations")
def step_run(context, n):
    _run(context, n)


@when("I run {n:d} iterations and aggregate")
def step_run_and_aggregate(context, n):
    _run(context, n)
    assert context.error is None, f"unexpected error {context.error!r}"
    context.aggregates = Metrics().aggregate(context.series)


@when("I create a runner with {n} iterations")
def step_create_runner(context, n):
    try:
        PlanRunner(_collector(context), context.steps, int(n))
    except Exception as e:
        context.error = e


@then("there are {k:d} metric series")
def step_check_series_count(context, k):
    assert len(context.series) == k, list(context.series)


@then("every series has {n:d} samples")
def step_check_series_len(context, n):
    for name, series in context.series.items():
        assert len(series) == n, f"{name}: {series.samples}"


@then('the call log is "{log}"')
def step_check_call_log(context, log):
    assert context.calls == _names(log), context.calls


@then('the consumer received "{value}"')
def step_check_consumed(context, value):
    assert context.consumed == value


@then('the "{name}" series is "{samples}"')
def step_check_series(context, name, samples):
    actual = context.series[name].samples
    expected = _floats(samples)
    assert len(actual) == len(expected), actual
    assert all(_close(a, e) for a, e in zip(actual, expected)), actual


@then("the run fails with HTTP {status:d}")
def step_check_run_failed(context, status):
    assert isinstance(context.error, httpx.HTTPStatusError), f"got {context.error!r}"
    assert context.error.response.status_code == status


@then("no series are returned")
def step_check_no_series(context):
    assert context.series is None


@then("the runner is rejected")
def step_check_runner_rejected(context):
    assert isinstance(context.error, ValueError), f"got {context.error!r}"


@then("the avg is exactly {avg:g}")
def step_check_exact_avg(context, avg):
    assert context.aggregate.avg == avg, repr(context.aggregate.avg)


@when("I measure and collect the operation")
def step_measure_and_collect(context):
    collector = _collector(context)
    context.measurement = asyncio.run(collector.measure(context.operation))
    context.sample = asyncio.run(collector.collect(context.operation))


@then("both the measurement and the collected sample are {ms:g} ms")
def step_check_collected(context, ms):
    assert _close(context.measurement.duration_ms, ms), context.measurement.duration_ms
    assert _close(context.sample, ms), context.sample
    assert _close(context.sample, context.measurement.duration_ms)
