from dataclasses import dataclass, field
from typing import Any, Dict

DEFAULT_BASE_URL = "https://manage.kontent.ai/v2"


@dataclass
class SUTContext:
    environment_id: str
    api_key: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 30.0

    @property
    def project_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/projects/{self.environment_id}"

    def redacted(self) -> Dict[str, Any]:
        return {
            "KONTENT_ENVIRONMENT_ID": self.environment_id,
            "KONTENT_API_KEY": "***" if self.api_key else None,
            "KONTENT_BASE_URL": self.base_url,
            "HTTP_TIMEOUT_SECONDS": self.timeout,
        }


@dataclass
class ContentItemConfig:
    type_codename: str = "deal"
    language_codename: str = "en"
    codename_prefix: str = "perf_deal_"
    text_elements: Dict[str, str] = field(default_factory=lambda: {
        "alternate_note": "Perf Test Content Item",
        "campaign_tracking_code": "Perf Test Content Item",
    })
    number_elements: Dict[str, float] = field(default_factory=lambda: {"amount": 100})


@dataclass
class RunConfig:
    sut: SUTContext
    iterations: int = 100
    source_file: str = "source-image.jpg"
    content_type: str = "image/jpg"
    export_filename: str = "perf-result"
    console: bool = False
    content_item: ContentItemConfig = field(default_factory=ContentItemConfig)

    @property
    def json_path(self) -> str:
        return self.export_filename + ".json"
