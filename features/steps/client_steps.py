import asyncio
import json

import httpx
from behave import given, when, then

from kontent_perf.sut.management_client import ManagementClient
from kontent_perf.sut.payloads import BinaryUpload, FileReference, build_asset_request, build_variant_request, text_element
from kontent_perf.sut.types import SUTContext


class FakeManagementAPI:
    """Route table in front of httpx.MockTransport; unknown routes answer 501."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, method: str, path: str, status: int, body: bytes = b"") -> None:
        self.routes[(method.upper(), path)] = (status, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.routes.get((request.method, request.url.path), (501, b""))
        headers = {"Content-Type": "application/json"} if body else {}
        return httpx.Response(status, content=body, headers=headers)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def _call(context, coro_factory):
    async def go():
        async with ManagementClient(context.sut, transport=context.api.transport()) as client:
            return await coro_factory(client)

    context.result = None
    try:
        context.result = asyncio.run(go())
    except Exception as e:
        context.error = e


@given('a management client for environment "{environment_id}" with key "{api_key}"')
def step_client(context, environment_id, api_key):
    context.sut = SUTContext(environment_id=environment_id, api_key=api_key)
    context.api = FakeManagementAPI()


@given("the API answers {method} \"{path}\" with {status:d} and body '{body}'")
def step_route(context, method, path, status, body):
    context.api.add(method, path, status, body.encode("utf-8"))


@given('the API answers {method} "{path}" with {status:d} and no body')
def step_route_empty(context, method, path, status):
    context.api.add(method, path, status)


@when("I request the environment information")
def step_env_info(context):
    _call(context, lambda c: c.environment_information())


@when('I view asset "{asset_id}"')
def step_view_asset(context, asset_id):
    _call(context, lambda c: c.view_asset(asset_id))


@when('I view content item "{codename}"')
def step_view_item(context, codename):
    _call(context, lambda c: c.view_content_item(codename))


@when('I upload {size:d} bytes as "{file_name}" with content type "{content_type}"')
def step_upload(context, size, file_name, content_type):
    upload = BinaryUpload(data=b"x" * size, file_name=file_name, content_type=content_type)
    _call(context, lambda c: c.upload_binary_file(upload))


@when('I create an asset for file reference "{ref_id}" titled "{title}"')
def step_create_asset(context, ref_id, title):
    request = build_asset_request(FileReference(ref_id), title)
    _call(context, lambda c: c.add_asset(request))


@when('I upsert and publish variant "{language}" of item "{codename}"')
def step_upsert_publish(context, language, codename):
    request = build_variant_request([text_element("alternate_note", "Perf Test Content Item")])

    async def both(c):
        await c.upsert_language_variant(codename, language, request)
        return await c.publish_language_variant(codename, language)

    _call(context, both)


@then('the environment is "{name}" / "{environment}"')
def step_check_env(context, name, environment):
    assert context.error is None, f"unexpected error {context.error!r}"
    assert context.result.name == name
    assert context.result.environment == environment


@then('the last request carried "{header}" = "{value}"')
def step_check_header(context, header, value):
    assert context.api.requests[-1].headers[header] == value, dict(context.api.requests[-1].headers)


@then("the error is a not-found error")
def step_check_not_found(context):
    assert context.error is not None
    assert ManagementClient.is_not_found(context.error), f"got {context.error!r}"


@then("the error is not a not-found error")
def step_check_other_error(context):
    assert isinstance(context.error, httpx.HTTPStatusError), f"got {context.error!r}"
    assert not ManagementClient.is_not_found(context.error)


@then('the file reference id is "{ref_id}"')
def step_check_file_ref(context, ref_id):
    assert context.error is None, f"unexpected error {context.error!r}"
    assert context.result == FileReference(id=ref_id, type="internal")


@then("the last request JSON is '{body}'")
def step_check_json(context, body):
    assert context.error is None, f"unexpected error {context.error!r}"
    assert json.loads(context.api.requests[-1].content) == json.loads(body)


@then('the requests made are "{requests}"')
def step_check_requests(context, requests):
    assert context.error is None, f"unexpected error {context.error!r}"
    made = [f"{r.method} {r.url.path}" for r in context.api.requests]
    assert made == [x.strip() for x in requests.split(",")], made
