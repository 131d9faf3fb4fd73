#!filepath: trialflow/observability/timer.py
import time
from typing import Dict, Optional


class Timer:
    """
    命名计时段（perf_counter_ns）

    - start(name) 开一个段；同名重复 start 以最后一次为准
    - end(name) 关段并返回秒数；未开的段返回 0.0
    - abort 中途退出时段可能一直开着，open_spans() 用于排查
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._open: Dict[str, int] = {}

    def start(self, name: str) -> None:
        if self.enabled:
            self._open[name] = time.perf_counter_ns()

    def end(self, name: str) -> float:
        t0 = self._open.pop(name, None)
        if t0 is None:
            return 0.0
        return (time.perf_counter_ns() - t0) / 1e9

    def open_spans(self) -> list[str]:
        return list(self._open)


class RunClock:
    """
    run 级时钟：time_elapsed = run 开始以来的毫秒数（整数）
    """

    def __init__(self):
        self._t0: Optional[int] = None

    @property
    def started(self) -> bool:
        return self._t0 is not None

    def start(self) -> None:
        self._t0 = time.perf_counter_ns()

    def elapsed_ms(self) -> int:
        if self._t0 is None:
            return 0
        return (time.perf_counter_ns() - self._t0) // 1_000_000
