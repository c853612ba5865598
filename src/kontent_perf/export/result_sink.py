import json
import os

from kontent_perf.bench.report import PerfReport


class ResultSink:
    def write(self, report: PerfReport, path: str, console: bool = False) -> str:
        data = report.to_dict()
        if console:
            print(json.dumps(data, indent=2))

        # "w" truncates, so nothing from an earlier run survives
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        return path

    def read(self, path: str) -> PerfReport:
        with open(path, "r", encoding="utf-8") as f:
            return PerfReport.from_dict(json.load(f))
