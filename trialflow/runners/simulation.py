# trialflow/runners/simulation.py
from __future__ import annotations

import asyncio
from typing import Any, Callable, Mapping, Optional, Sequence

import numpy as np

from trialflow import logs
from trialflow.runners.base import DoneCallback

DataFactory = Callable[[Mapping[str, Any], np.random.Generator], Mapping[str, Any]]


class SimulationRunner:
    """
    无被试的 runner：按 trial 参数生成模拟数据后立即（或延迟后）完成。

    - 默认数据：response（从 trial["choices"] 或 responses 中抽取）+ rt（ms）
    - data_factories[type] 可为某类 trial 定制数据
    - trial 自带 simulation_data（mapping）时直接覆盖生成的数据
    """

    def __init__(
        self,
        *,
        seed: Optional[int] = None,
        delay: float = 0.0,
        responses: Sequence[Any] = ("f", "j"),
        rt_range: tuple[int, int] = (250, 1500),
        data_factories: Optional[Mapping[Any, DataFactory]] = None,
    ):
        if rt_range[0] >= rt_range[1]:
            raise ValueError(f"rt_range must be increasing, got {rt_range}")

        self.rng = np.random.default_rng(seed)
        self.delay = delay
        self.responses = list(responses)
        self.rt_range = rt_range
        self.data_factories = dict(data_factories or {})

        self.trials_run = 0
        self.trials_forced = 0
        self._forced = False

    async def run(self, trial: dict[str, Any], done: DoneCallback) -> None:
        self._forced = False
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        if self._forced:
            return

        self.trials_run += 1
        done(self.simulate(trial))

    def force_end(self) -> None:
        self._forced = True
        self.trials_forced += 1
        logs.debug("[Simulation] trial force-ended")

    # --------------------------------------------------
    def simulate(self, trial: Mapping[str, Any]) -> dict[str, Any]:
        factory = self.data_factories.get(trial.get("type"))
        if factory is not None:
            data = dict(factory(trial, self.rng))
        else:
            choices = trial.get("choices") or self.responses
            data = {
                "response": choices[int(self.rng.integers(len(choices)))],
                "rt": int(self.rng.integers(*self.rt_range)),
            }
            if "stimulus" in trial:
                data["stimulus"] = trial["stimulus"]

        override = trial.get("simulation_data")
        if isinstance(override, Mapping):
            data.update(override)
        return data
