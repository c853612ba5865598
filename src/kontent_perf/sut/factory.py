import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from kontent_perf.sut.types import DEFAULT_BASE_URL, ContentItemConfig, RunConfig, SUTContext


def _load_yaml(path: str) -> dict:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"YAML file not found: {p}")
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML file {p} must contain a mapping, got {type(data).__name__}")
    return data


def _positive_int(value: Any, name: str) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"{name} must be an integer, got {value!r}") from None
    if isinstance(value, float) and n != value:
        raise ValueError(f"{name} must be a whole number, got {value!r}")
    if isinstance(value, bool) or n < 1:
        raise ValueError(f"{name} must be >= 1, got {value!r}")
    return n


class SUTFactory:
    """
    Resolves a RunConfig from, in increasing precedence:

      1) defaults
      2) an optional YAML plan file
      3) environment variables (KONTENT_*, HTTP_TIMEOUT_SECONDS, PERF_ITERATIONS)
      4) explicit overrides (CLI flags)
    """

    def __init__(self, environ: Optional[Dict[str, str]] = None) -> None:
        self.environ = os.environ if environ is None else environ

    def build(self, config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> RunConfig:
        plan = _load_yaml(config_path) if config_path else {}
        overrides = {k: v for k, v in (overrides or {}).items() if v is not None}

        sut_cfg = plan.get("sut") or {}
        run_cfg = plan.get("run") or {}
        upload_cfg = plan.get("upload") or {}
        export_cfg = plan.get("export") or {}
        item_cfg = plan.get("content_item") or {}

        env = self.environ
        environment_id = (env.get("KONTENT_ENVIRONMENT_ID") or sut_cfg.get("environment_id") or "").strip()
        api_key = (env.get("KONTENT_API_KEY") or sut_cfg.get("api_key") or "").strip()
        if not environment_id:
            raise ValueError("KONTENT_ENVIRONMENT_ID env missing (or sut.environment_id in config)")
        if not api_key:
            raise ValueError("KONTENT_API_KEY env missing (or sut.api_key in config)")

        sut = SUTContext(
            environment_id=environment_id,
            api_key=api_key,
            base_url=(env.get("KONTENT_BASE_URL") or sut_cfg.get("base_url") or DEFAULT_BASE_URL).strip(),
            timeout=float(env.get("HTTP_TIMEOUT_SECONDS") or sut_cfg.get("timeout") or 30),
        )

        if "iterations" in overrides:
            iterations = overrides["iterations"]
        else:
            iterations = env.get("PERF_ITERATIONS") or run_cfg.get("iterations", 100)

        content_item = ContentItemConfig()
        if item_cfg:
            content_item = ContentItemConfig(
                type_codename=item_cfg.get("type", content_item.type_codename),
                language_codename=item_cfg.get("language", content_item.language_codename),
                codename_prefix=item_cfg.get("codename_prefix", content_item.codename_prefix),
                text_elements=dict(item_cfg.get("text_elements", content_item.text_elements)),
                number_elements=dict(item_cfg.get("number_elements", content_item.number_elements)),
            )

        return RunConfig(
            sut=sut,
            iterations=_positive_int(iterations, "iterations"),
            source_file=overrides.get("source_file") or upload_cfg.get("file") or "source-image.jpg",
            content_type=upload_cfg.get("content_type") or "image/jpg",
            export_filename=overrides.get("export_filename") or export_cfg.get("filename") or "perf-result",
            console=bool(overrides.get("console") or export_cfg.get("console", False)),
            content_item=content_item,
        )
