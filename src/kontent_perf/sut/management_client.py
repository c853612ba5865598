from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from kontent_perf.sut.payloads import BinaryUpload, FileReference
from kontent_perf.sut.types import SUTContext


@dataclass(frozen=True)
class EnvironmentInfo:
    name: str
    environment: str


class ManagementClient:
    """Thin async wrapper over the Management API v2 endpoints the benchmark times."""

    def __init__(self, sut: SUTContext, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.sut = sut
        self._client = httpx.AsyncClient(
            base_url=sut.project_url,
            headers={
                "Authorization": f"Bearer {sut.api_key}",
                "Accept": "application/json",
            },
            timeout=sut.timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ManagementClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def is_not_found(error: BaseException) -> bool:
        return (
            isinstance(error, httpx.HTTPStatusError)
            and error.response.status_code == 404
        )

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        # the project root is addressed with an empty path
        url = path.lstrip("/")
        response = await self._client.request(method, url, **kwargs)
        response.raise_for_status()  # Raise HTTPStatusError for 4xx / 5xx
        if not response.content:
            return None
        return response.json()

    async def environment_information(self) -> EnvironmentInfo:
        data = await self._request("GET", "")
        return EnvironmentInfo(
            name=data.get("name", ""),
            environment=data.get("environment", ""),
        )

    # ---- assets ----

    async def view_asset(self, asset_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"assets/{quote(asset_id, safe='')}")

    async def upload_binary_file(self, upload: BinaryUpload) -> FileReference:
        data = await self._request(
            "POST",
            f"files/{quote(upload.file_name, safe='')}",
            content=upload.data,
            headers={
                "Content-Type": upload.content_type,
                "Content-Length": str(upload.content_length),
            },
        )
        return FileReference(id=data["id"], type=data.get("type", "internal"))

    async def add_asset(self, request: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "assets", json=request)

    # ---- content items ----

    async def view_content_item(self, codename: str) -> Dict[str, Any]:
        return await self._request("GET", f"items/codename/{quote(codename, safe='')}")

    async def add_content_item(self, request: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "items", json=request)

    async def upsert_language_variant(
        self, codename: str, language: str, request: Dict[str, Any]
    ) -> Dict[str, Any]:
        return await self._request("PUT", _variant_path(codename, language), json=request)

    async def publish_language_variant(self, codename: str, language: str) -> None:
        await self._request("PUT", _variant_path(codename, language) + "/publish")


def _variant_path(codename: str, language: str) -> str:
    return (
        f"items/codename/{quote(codename, safe='')}"
        f"/variants/codename/{quote(language, safe='')}"
    )
