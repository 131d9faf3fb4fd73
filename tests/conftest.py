# tests/conftest.py
from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def disable_file_logger():
    logger.remove()
    logger.add(lambda msg: None)  # or sys.stderr
    yield


class InstantRunner:
    """
    测试用 runner：run 内同步调用 done，记录每个 trial 收到的参数。

    respond(trial) 决定 runner 输出；默认 {"response": "f"}。
    """

    def __init__(self, respond: Optional[Callable[[dict], dict]] = None):
        self.respond = respond or (lambda trial: {"response": "f"})
        self.trials: list[dict[str, Any]] = []
        self.forced = 0

    def run(self, trial, done):
        self.trials.append(dict(trial))
        done(self.respond(trial))

    def force_end(self):
        self.forced += 1


class ManualRunner:
    """
    测试用 runner：挂起 trial，直到测试调用 press(data)（模拟被试按键）。
    """

    def __init__(self):
        self.trials: list[dict[str, Any]] = []
        self.pending: Optional[Callable] = None
        self.forced = 0

    def run(self, trial, done):
        self.trials.append(dict(trial))
        self.pending = done

    def force_end(self):
        self.forced += 1

    def press(self, data: Optional[dict] = None):
        done, self.pending = self.pending, None
        assert done is not None, "no trial is waiting for a response"
        done(data or {"response": "f"})

    async def wait_for_trial(self, max_ticks: int = 1000):
        for _ in range(max_ticks):
            if self.pending is not None:
                return
            await asyncio.sleep(0)
        raise AssertionError("runner never received a trial")


@pytest.fixture
def instant_runner() -> InstantRunner:
    return InstantRunner()


@pytest.fixture
def manual_runner() -> ManualRunner:
    return ManualRunner()
