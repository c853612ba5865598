import asyncio
import contextlib
import io
import json
import os
import re
import uuid
from pathlib import Path

import httpx
from behave import given, when, then

from kontent_perf.bench.flows import METRIC_NAMES
from kontent_perf.cli import main, run_benchmark
from kontent_perf.sut.types import RunConfig, SUTContext

_ENV_NAMES = ("KONTENT_ENVIRONMENT_ID", "KONTENT_API_KEY", "KONTENT_BASE_URL", "PERF_ITERATIONS")


class StatefulManagementAPI:
    """Behaves like the real service closely enough for a full run."""

    PREFIX = "/v2/projects/env-1/"

    def __init__(self, reject_item_creation=None):
        self.reject_item_creation = reject_item_creation
        self.uploaded = set()
        self.created_items = set()
        self.asset_refs = []
        self.published = []
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        assert path.startswith(self.PREFIX), path
        rel = path[len(self.PREFIX):]
        method = request.method
        self.requests.append((method, rel))

        if method == "GET" and rel == "":
            return httpx.Response(200, json={"id": "env-1", "name": "Perf", "environment": "Production"})
        if method == "GET" and (rel.startswith("assets/") or rel.startswith("items/codename/")):
            return httpx.Response(404, json={"message": "not found"})
        if method == "POST" and rel.startswith("files/"):
            file_id = str(uuid.uuid4())
            self.uploaded.add(file_id)
            return httpx.Response(200, json={"id": file_id, "type": "internal"})
        if method == "POST" and rel == "assets":
            body = json.loads(request.content)
            self.asset_refs.append(body["file_reference"]["id"])
            return httpx.Response(201, json={"id": str(uuid.uuid4())})
        if method == "POST" and rel == "items":
            if self.reject_item_creation:
                return httpx.Response(self.reject_item_creation, json={"message": "invalid"})
            body = json.loads(request.content)
            self.created_items.add(body["codename"])
            return httpx.Response(201, json={"id": str(uuid.uuid4()), "codename": body["codename"]})

        m = re.fullmatch(r"items/codename/([^/]+)/variants/codename/([^/]+)(/publish)?", rel)
        if method == "PUT" and m and m.group(1) in self.created_items:
            if m.group(3):
                self.published.append(m.group(1))
                return httpx.Response(204)
            return httpx.Response(200, json={"elements": json.loads(request.content)["elements"]})

        return httpx.Response(400, json={"message": f"unexpected {method} {path}"})


@given('a source file "{name}" of {size:d} bytes')
def step_source_file(context, name, size):
    Path(name).write_bytes(os.urandom(size))
    context.source_file = name


@given('a run configuration with {n:d} iterations writing to "{base}"')
def step_run_config(context, n, base):
    context.run_config = RunConfig(
        sut=SUTContext(environment_id="env-1", api_key="key-1"),
        iterations=n,
        source_file=context.source_file,
        export_filename=base,
    )


@given("a healthy fake Management API")
def step_healthy_api(context):
    context.fake_api = StatefulManagementAPI()


@given("a fake Management API that rejects item creation with {status:d}")
def step_rejecting_api(context, status):
    context.fake_api = StatefulManagementAPI(reject_item_creation=status)


@when("I run the benchmark")
def step_run_benchmark(context):
    transport = httpx.MockTransport(context.fake_api.handler)
    try:
        context.result = asyncio.run(run_benchmark(context.run_config, transport=transport))
    except Exception as e:
        context.error = e


def _clear_env(context):
    for name in _ENV_NAMES:
        context.saved_env.setdefault(name, os.environ.get(name))
        os.environ.pop(name, None)


@when('I invoke the command line with "{args}"')
def step_invoke_cli(context, args):
    _clear_env(context)
    context.exit_code = main(args.split())


@when('I invoke the command line against the fake API with "{args}"')
def step_invoke_cli_with_fake_api(context, args):
    _clear_env(context)
    os.environ["KONTENT_ENVIRONMENT_ID"] = "env-1"
    os.environ["KONTENT_API_KEY"] = "key-1"
    transport = httpx.MockTransport(context.fake_api.handler)
    out = io.StringIO()
    with contextlib.redirect_stdout(out):
        context.exit_code = main(args.split(), transport=transport)
    context.stdout = out.getvalue()


@then("the fake API received {n:d} asset creations referencing uploaded files")
def step_check_assets(context, n):
    assert context.error is None, f"unexpected error {context.error!r}"
    refs = context.fake_api.asset_refs
    assert len(refs) == n, refs
    assert set(refs) <= context.fake_api.uploaded


@then("the fake API received {n:d} publishes for the created items")
def step_check_publishes(context, n):
    published = context.fake_api.published
    assert len(published) == n, published
    assert set(published) == context.fake_api.created_items
    assert all(c.startswith("perf_deal_") for c in published)


@then("the exit code is {code:d}")
def step_check_exit_code(context, code):
    assert context.exit_code == code


@then("the returned report covers every benchmark metric in run order")
def step_check_metric_order(context):
    assert list(context.result.metrics) == METRIC_NAMES, list(context.result.metrics)
    for name, agg in context.result.metrics.items():
        assert 0 <= agg.min <= agg.avg <= agg.max, f"{name}: {agg}"


@given('the source file "{name}" does not exist')
def step_missing_source(context, name):
    Path(name).unlink(missing_ok=True)
    context.run_config.source_file = name


@then("the report JSON appears {n:d} times in the output")
def step_check_printed(context, n):
    assert context.stdout.count('"uploadFile"') == n, context.stdout


@then("the run fails because the source file is missing")
def step_check_missing_source(context):
    assert isinstance(context.error, FileNotFoundError), f"got {context.error!r}"
    assert not Path(context.run_config.json_path).exists()


@then("the only request made was the environment information")
def step_check_env_info_first(context):
    assert context.fake_api.requests == [("GET", "")], context.fake_api.requests
