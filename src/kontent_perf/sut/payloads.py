from dataclasses import dataclass
from typing import Any, Dict, List, Union


@dataclass(frozen=True)
class BinaryUpload:
    data: bytes
    file_name: str
    content_type: str

    @property
    def content_length(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class FileReference:
    id: str
    type: str = "internal"

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "type": self.type}


def build_asset_request(file_reference: FileReference, title: str) -> Dict[str, Any]:
    return {
        "file_reference": file_reference.to_dict(),
        "title": title,
    }


def build_content_item_request(name: str, type_codename: str, codename: str) -> Dict[str, Any]:
    return {
        "name": name,
        "type": {"codename": type_codename},
        "codename": codename,
    }


def text_element(codename: str, value: str) -> Dict[str, Any]:
    return {"element": {"codename": codename}, "value": value}


def number_element(codename: str, value: Union[int, float]) -> Dict[str, Any]:
    return {"element": {"codename": codename}, "value": value}


def build_variant_request(elements: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"elements": list(elements)}
