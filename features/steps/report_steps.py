import json
from pathlib import Path

from behave import given, when, then

from kontent_perf.bench.report import build_report
from kontent_perf.bench.types import Aggregate, UploadFile
from kontent_perf.export.result_sink import ResultSink


def _load_json(path: str) -> dict:
    return json.loads(Path(path).read_text(encoding="utf-8"))


@given('a report for "{name}" of {size:d} bytes with metrics:')
def step_report(context, name, size):
    aggregates = {}
    for row in context.table:
        aggregates[row["metric"]] = Aggregate(
            min=float(row["min"]), max=float(row["max"]), avg=float(row["avg"])
        )
    context.upload_file = UploadFile(name=name, size_in_bytes=size)
    context.report = build_report(context.upload_file, aggregates)


@given('the file "{path}" contains a stale report with metric "{metric}"')
def step_stale_file(context, path, metric):
    stale = {
        "info": "old",
        "uploadFile": {"name": "old.jpg", "sizeInBytes": 1},
        metric: {"min": 1, "max": 1, "avg": 1},
        "padding": "x" * 4096,
    }
    Path(path).write_text(json.dumps(stale), encoding="utf-8")


@when('I write the report to "{path}"')
def step_write(context, path):
    ResultSink().write(context.report, path)


@when('I read the report back from "{path}"')
def step_read(context, path):
    context.read_report = ResultSink().read(path)


@when('I build a report with a metric named "{metric}"')
def step_build_clashing(context, metric):
    try:
        build_report(context.upload_file, {metric: Aggregate(1.0, 1.0, 1.0)})
    except Exception as e:
        context.error = e


@then('the report keys are "{keys}"')
def step_check_keys(context, keys):
    assert list(context.report.to_dict()) == [k.strip() for k in keys.split(",")]


@then('the report info is "{info}"')
def step_check_info(context, info):
    assert context.report.to_dict()["info"] == info


@then('the upload file is "{name}" with {size:d} bytes')
def step_check_upload(context, name, size):
    assert context.report.to_dict()["uploadFile"] == {"name": name, "sizeInBytes": size}


@then("the read report equals the written one")
def step_check_round_trip(context):
    assert context.read_report == context.report
    assert context.read_report.to_dict() == context.report.to_dict()


@then('the JSON at "{path}" has no "{field}" field')
def step_check_missing_field(context, path, field):
    data = _load_json(path)
    assert field not in data, list(data)
    assert "padding" not in data


@then('the JSON at "{path}" has a "{field}" field')
def step_check_field(context, path, field):
    assert field in _load_json(path)


@then('the JSON at "{path}" has keys "{keys}"')
def step_check_json_keys(context, path, keys):
    assert list(_load_json(path)) == [k.strip() for k in keys.split(",")]


@then('the JSON at "{path}" reports the upload file "{name}" with {size:d} bytes')
def step_check_json_upload(context, path, name, size):
    assert _load_json(path)["uploadFile"] == {"name": name, "sizeInBytes": size}


@then("building the report fails")
def step_check_build_failed(context):
    assert isinstance(context.error, ValueError), f"got {context.error!r}"


@then('no file exists at "{path}"')
def step_check_no_file(context, path):
    assert not Path(path).exists()
