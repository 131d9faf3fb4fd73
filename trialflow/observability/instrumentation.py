#!filepath: trialflow/observability/instrumentation.py
from __future__ import annotations

from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict

from trialflow.observability.timer import Timer
from trialflow.observability.timing_reporter import TimingReporter


@dataclass
class Instrumentation:
    """
    Trial 级计时（只记录叶子：一个 trial 从参数解析到 pipeline 完成）

    - 不在热路径打日志
    - abort 中途退出的 trial 不记录
    """

    enabled: bool = True

    def __post_init__(self):
        self._timer = Timer(enabled=self.enabled)
        # timings: OrderedDict[trial_name, elapsed_seconds]
        self.timings: Dict[str, float] = OrderedDict()

    def timer(self, name: str):
        inst = self

        @contextmanager
        def _ctx():
            if not inst.enabled:
                yield
                return

            inst._timer.start(name)
            ok = False
            try:
                yield
                ok = True
            finally:
                elapsed = inst._timer.end(name)
                if ok:
                    inst.timings[name] = elapsed

        return _ctx()

    def report(self, title: str) -> None:
        if self.enabled:
            TimingReporter(self.timings, title).print()


class NoOpInstrumentation:
    """Instrumentation disabled 时使用。"""

    timings: Dict[str, float] = {}

    def timer(self, name: str):
        return _NoOpTimer()

    def report(self, title: str) -> None:
        pass


class _NoOpTimer:
    def __enter__(self):
        pass

    def __exit__(self, exc_type, exc, tb):
        pass
