#!filepath: trialflow/observability/timing_reporter.py
from typing import Dict

from trialflow import logs


class TimingReporter:
    """
    Run 结束时的 trial 耗时报告：
    - trial 名称 → 耗时秒数
    """

    def __init__(self, timings: Dict[str, float], title: str):
        self.timings = timings
        self.title = title

    def print(self):
        logs.info(f"[Timing] ===== Trial timings for {self.title} =====")

        total = 0.0
        for name, sec in self.timings.items():
            logs.info(f"[Timing] {str(name):<30} {sec:>8.3f}s")
            total += sec

        logs.info(f"[Timing] Total{'':<27} {total:>8.3f}s")
        logs.info("[Timing] ===========================================")
