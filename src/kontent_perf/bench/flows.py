"""
The two request chains the benchmark times in every iteration.

Asset:        viewAsset -> uploadBinaryData -> createAsset
Content item: viewContentItem -> createContentItem -> upsertLanguageVariant -> publishVariant

The probing steps (viewAsset / viewContentItem) ask for an id that does not
exist yet, so a 404 is the normal outcome there.
"""
import random
import time
from typing import List

from kontent_perf.bench.types import IterationState, TimedStep, UploadFile
from kontent_perf.sut.management_client import ManagementClient
from kontent_perf.sut.payloads import (
    BinaryUpload,
    build_asset_request,
    build_content_item_request,
    build_variant_request,
    number_element,
    text_element,
)
from kontent_perf.sut.types import ContentItemConfig

ASSET_METRICS = ["viewAsset", "uploadBinaryData", "createAsset"]
CONTENT_ITEM_METRICS = [
    "viewContentItem",
    "createContentItem",
    "upsertLanguageVariant",
    "publishVariant",
]
METRIC_NAMES = ASSET_METRICS + CONTENT_ITEM_METRICS

FILE_REFERENCE_KEY = "file_reference"
CODENAME_KEY = "codename"


def random_string() -> str:
    return "%x%x%x" % (
        random.getrandbits(52),
        int(time.time() * 1000),
        random.getrandbits(52),
    )


def asset_steps(
    client: ManagementClient,
    payload: bytes,
    upload_file: UploadFile,
    content_type: str,
) -> List[TimedStep]:
    def view_asset(state: IterationState):
        asset_id = random_string()
        return lambda: client.view_asset(asset_id)

    def upload_binary(state: IterationState):
        upload = BinaryUpload(data=payload, file_name=random_string(), content_type=content_type)
        return lambda: client.upload_binary_file(upload)

    def create_asset(state: IterationState):
        request = build_asset_request(
            state[FILE_REFERENCE_KEY],
            title=f"{upload_file.name} - {random_string()}",
        )
        return lambda: client.add_asset(request)

    return [
        TimedStep("viewAsset", view_asset),
        TimedStep("uploadBinaryData", upload_binary, store_as=FILE_REFERENCE_KEY),
        TimedStep("createAsset", create_asset),
    ]


def content_item_steps(client: ManagementClient, cfg: ContentItemConfig) -> List[TimedStep]:
    language = cfg.language_codename

    def view_item(state: IterationState):
        # fresh codename for the whole chain of this iteration
        codename = state[CODENAME_KEY] = f"{cfg.codename_prefix}{random_string()}"
        return lambda: client.view_content_item(codename)

    def create_item(state: IterationState):
        request = build_content_item_request(
            name=f"Perf Test Content Item - {random_string()}",
            type_codename=cfg.type_codename,
            codename=state[CODENAME_KEY],
        )
        return lambda: client.add_content_item(request)

    def upsert_variant(state: IterationState):
        codename = state[CODENAME_KEY]
        elements = [text_element(k, v) for k, v in cfg.text_elements.items()]
        elements += [number_element(k, v) for k, v in cfg.number_elements.items()]
        request = build_variant_request(elements)
        return lambda: client.upsert_language_variant(codename, language, request)

    def publish_variant(state: IterationState):
        codename = state[CODENAME_KEY]
        return lambda: client.publish_language_variant(codename, language)

    return [
        TimedStep("viewContentItem", view_item),
        TimedStep("createContentItem", create_item),
        TimedStep("upsertLanguageVariant", upsert_variant),
        TimedStep("publishVariant", publish_variant),
    ]
