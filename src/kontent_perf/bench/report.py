from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping

from kontent_perf.bench.types import Aggregate, UploadFile

DEFAULT_INFO = "Results are in ms"

_RESERVED_KEYS = ("info", "uploadFile")


@dataclass(frozen=True)
class PerfReport:
    info: str
    upload_file: UploadFile
    metrics: Mapping[str, Aggregate]

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "info": self.info,
            "uploadFile": {
                "name": self.upload_file.name,
                "sizeInBytes": self.upload_file.size_in_bytes,
            },
        }
        for name, agg in self.metrics.items():
            out[name] = agg.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PerfReport":
        upload = data.get("uploadFile") or {}
        if "name" not in upload or "sizeInBytes" not in upload:
            raise ValueError("report is missing uploadFile.name / uploadFile.sizeInBytes")

        metrics = {}
        for key, value in data.items():
            if key in _RESERVED_KEYS:
                continue
            metrics[key] = Aggregate(min=value["min"], max=value["max"], avg=value["avg"])

        return build_report(
            UploadFile(name=upload["name"], size_in_bytes=upload["sizeInBytes"]),
            metrics,
            info=data.get("info", DEFAULT_INFO),
        )


def build_report(
    upload_file: UploadFile,
    aggregates: Mapping[str, Aggregate],
    info: str = DEFAULT_INFO,
) -> PerfReport:
    clash = [k for k in aggregates if k in _RESERVED_KEYS]
    if clash:
        raise ValueError(f"metric names clash with report fields: {clash}")
    return PerfReport(
        info=info,
        upload_file=upload_file,
        metrics=MappingProxyType(dict(aggregates)),
    )
