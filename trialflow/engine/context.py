#!filepath: trialflow/engine/context.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

import numpy as np

from trialflow.config.engine_config import EngineConfig
from trialflow.core.hooks import GlobalHooks
from trialflow.core.records import DataCollection
from trialflow.core.scope import VariableScopeStack
from trialflow.engine.control import CompletionSignal, RunControl
from trialflow.observability.instrumentation import Instrumentation, NoOpInstrumentation
from trialflow.observability.timer import RunClock

if TYPE_CHECKING:
    from trialflow.engine.data_pipeline import DataPipeline
    from trialflow.engine.timeline_controller import TimelineController


@dataclass
class RunContext:
    """
    RunContext = 一次 run 的唯一运行期上下文

    设计原则：
    - Scheduler 负责构造，Controllers 只通过它通信
    - scope / data 由单一解释器独占修改（single-flight，无需加锁）
    - hooks / config 只读
    """

    runner: Any
    hooks: GlobalHooks
    config: EngineConfig
    rng: np.random.Generator
    pipeline: "DataPipeline"
    data: DataCollection
    scope: VariableScopeStack = field(default_factory=VariableScopeStack)
    control: RunControl = field(default_factory=RunControl)
    clock: RunClock = field(default_factory=RunClock)
    inst: Instrumentation | NoOpInstrumentation = field(default_factory=NoOpInstrumentation)

    # -------- 运行期状态 --------
    next_trial_index: int = 0
    in_flight: Optional[CompletionSignal] = None
    timeline_stack: list["TimelineController"] = field(default_factory=list)

    def take_trial_index(self) -> int:
        index = self.next_trial_index
        self.next_trial_index += 1
        return index
