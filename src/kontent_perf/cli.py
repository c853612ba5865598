import argparse
import asyncio
import json
import sys
import time
from pathlib import Path
from typing import Callable, List, Optional

import httpx
import yaml

from kontent_perf.bench.collector import SampleCollector
from kontent_perf.bench.flows import asset_steps, content_item_steps
from kontent_perf.bench.metrics import Metrics
from kontent_perf.bench.plan_runner import PlanRunner
from kontent_perf.bench.report import PerfReport, build_report
from kontent_perf.bench.types import UploadFile
from kontent_perf.export.result_sink import ResultSink
from kontent_perf.sut.factory import SUTFactory
from kontent_perf.sut.management_client import ManagementClient
from kontent_perf.sut.types import RunConfig


def _print_iteration(i: int, total: int) -> None:
    print(f"▶ Iteration {i}/{total}")


async def run_benchmark(
    config: RunConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Callable[[], float] = time.perf_counter,
) -> PerfReport:
    """
    One full measurement run. Nothing is written unless every iteration
    completes; the first non-404 failure propagates to the caller.
    """
    async with ManagementClient(config.sut, transport=transport) as client:
        info = await client.environment_information()
        print(f"🚀 Starting perf test for project '{info.name}' and environment '{info.environment}'")

        payload = Path(config.source_file).read_bytes()
        upload_file = UploadFile(name=config.source_file, size_in_bytes=len(payload))

        steps = asset_steps(client, payload, upload_file, config.content_type)
        steps += content_item_steps(client, config.content_item)

        runner = PlanRunner(
            collector=SampleCollector(ManagementClient.is_not_found, clock=clock),
            steps=steps,
            iterations=config.iterations,
            on_iteration=_print_iteration,
        )
        series = await runner.run()

    aggregates = Metrics().aggregate(series)
    report = build_report(upload_file, aggregates)

    path = ResultSink().write(report, config.json_path, console=config.console)
    print(f"✨ File '{path}' with results successfully created")
    return report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kontent-perf",
        description="Measure Management API latency for asset and content item operations.",
    )
    parser.add_argument("--config", help="YAML plan file (sut / run / upload / export / content_item)")
    parser.add_argument("--iterations", type=int, default=None, help="number of iterations (default 100)")
    parser.add_argument("--source", dest="source_file", default=None, help="file to upload (default source-image.jpg)")
    parser.add_argument("--output", dest="export_filename", default=None,
                        help="output base name, '.json' is appended (default perf-result)")
    parser.add_argument("--console", action="store_true", default=None, help="print the report JSON to stdout")
    return parser


def main(argv: Optional[List[str]] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = SUTFactory().build(
            config_path=args.config,
            overrides={
                "iterations": args.iterations,
                "source_file": args.source_file,
                "export_filename": args.export_filename,
                "console": args.console,
            },
        )
    except (ValueError, OSError, yaml.YAMLError) as e:
        print(f"❌ Error: {e}")
        return 1

    print(f"🔧 Environment: {json.dumps(config.sut.redacted())}")

    try:
        asyncio.run(run_benchmark(config, transport=transport))
    except httpx.HTTPStatusError as e:
        print(f"❌ Error: {e.response.status_code} from {e.request.method} {e.request.url}")
        return 1
    except (httpx.HTTPError, OSError, ValueError) as e:
        print(f"❌ Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
