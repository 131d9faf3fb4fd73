# trialflow/engine/scheduler.py
from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Mapping, Optional

from trialflow import logs
from trialflow.config.engine_config import EngineConfig
from trialflow.core.hooks import GlobalHooks, invoke_hook
from trialflow.core.nodes import expand
from trialflow.core.parameters import TimelineVariable
from trialflow.core.records import DataCollection
from trialflow.core.sampling import make_rng
from trialflow.engine.context import RunContext
from trialflow.engine.control import force_end
from trialflow.engine.data_pipeline import DataPipeline
from trialflow.engine.timeline_controller import TimelineController
from trialflow.observability.instrumentation import Instrumentation, NoOpInstrumentation
from trialflow.utils.errors import RunAborted, TrialflowError


class RunStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    FINISHED = "finished"
    ABORTED = "aborted"
    FAILED = "failed"


class Engine:
    """
    Engine = 调度器（Scheduler）

    职责：
      - 持有唯一的根 TimelineNode，驱动整个 run
      - 对外提供 pause / resume / abort / end_current_timeline
      - 查询面：trial_index / current_scope / data

    设计铁律：
      - 描述在任何 trial 运行之前完整 expand + 校验
      - hooks / config 不可变，显式传入，不使用全局单例
      - abort 不是错误：run() 正常返回已 finalize 的数据
    """

    def __init__(
        self,
        runner: Any,
        hooks: Optional[GlobalHooks] = None,
        config: Optional[EngineConfig] = None,
    ):
        if not callable(getattr(runner, "run", None)):
            raise TypeError("runner must provide run(parameters, done)")

        self.runner = runner
        self.hooks = hooks or GlobalHooks()
        self.config = config or EngineConfig()

        self.status = RunStatus.IDLE
        self._ctx: Optional[RunContext] = None
        self._data = DataCollection()

    # ==================================================
    # 入口
    # ==================================================
    async def run(self, description: Any) -> DataCollection:
        if self.status == RunStatus.RUNNING:
            raise RuntimeError("engine is already running")

        root = expand(description)

        data = DataCollection()
        inst = Instrumentation() if self.config.report_timings else NoOpInstrumentation()
        ctx = RunContext(
            runner=self.runner,
            hooks=self.hooks,
            config=self.config,
            rng=make_rng(self.config.seed),
            pipeline=DataPipeline(self.hooks, data),
            data=data,
            inst=inst,
        )
        self._ctx = ctx
        self._data = data

        logs.info(
            f"[Scheduler] ====== START run ({root.trial_count()} declared trials per pass, "
            f"seed={self.config.seed}) ======"
        )
        self.status = RunStatus.RUNNING
        ctx.clock.start()

        try:
            await TimelineController(root, ctx).run()
        except RunAborted:
            self.status = RunStatus.ABORTED
            logs.warning(
                f"[Scheduler] run aborted after {len(data)} trials"
                + (f": {ctx.control.abort_message}" if ctx.control.abort_message else "")
            )
        except TrialflowError:
            self.status = RunStatus.FAILED
            logs.exception(f"[Scheduler] run failed after {len(data)} trials")
            raise
        except BaseException:
            self.status = RunStatus.FAILED
            raise
        else:
            self.status = RunStatus.FINISHED
            logs.info(f"[Scheduler] ====== DONE {len(data)} trials ======")

        invoke_hook("on_finish", self.hooks.on_finish, data)
        ctx.inst.report(f"{len(data)} trials")
        return data

    # ==================================================
    # 控制
    # ==================================================
    def pause(self) -> None:
        ctx = self._require_running("pause")
        if ctx is not None:
            ctx.control.pause()
            logs.info("[Scheduler] pause requested")

    def resume(self) -> None:
        ctx = self._require_running("resume")
        if ctx is not None:
            ctx.control.resume()

    @property
    def paused(self) -> bool:
        return self._ctx is not None and self._ctx.control.paused

    def abort(self, message: Optional[str] = None) -> None:
        """
        丢弃 in-flight trial 的完成信号，通知 runner force_end，展开整个 timeline 栈。
        已 finalize 的数据保持不变。
        """
        ctx = self._require_running("abort")
        if ctx is None or ctx.control.aborted:
            return

        ctx.control.abort(message)
        signal = ctx.in_flight
        if signal is not None and not signal.done:
            signal.discard()
            force_end(self.runner)
        logs.info("[Scheduler] abort requested")

    def end_current_timeline(self) -> None:
        """
        当前 trial finalize 之后结束最内层 timeline（跳过 loop_function，
        正常触发 on_timeline_finish），父 timeline 继续。
        """
        ctx = self._require_running("end_current_timeline")
        if ctx is not None and ctx.timeline_stack:
            ctx.timeline_stack[-1].request_end()

    @property
    def abort_message(self) -> Optional[str]:
        return self._ctx.control.abort_message if self._ctx is not None else None

    # ==================================================
    # 查询面
    # ==================================================
    @property
    def data(self) -> DataCollection:
        return self._data

    @property
    def trial_index(self) -> int:
        """in-flight（或下一个）trial 的 trial_index。"""
        return self._ctx.next_trial_index if self._ctx is not None else 0

    def current_scope(self) -> Mapping[str, Any]:
        if self._ctx is None:
            return {}
        return self._ctx.scope.snapshot()

    def evaluate_timeline_variable(self, name: str) -> Any:
        if self._ctx is None:
            raise RuntimeError("no run in progress")
        return self._ctx.scope.lookup(name)

    @staticmethod
    def timeline_variable(name: str) -> TimelineVariable:
        return TimelineVariable(name)

    # --------------------------------------------------
    def _require_running(self, op: str) -> Optional[RunContext]:
        if self.status != RunStatus.RUNNING or self._ctx is None:
            logs.warning(f"[Scheduler] {op} ignored: engine is {self.status.value}")
            return None
        return self._ctx


def run_timeline(
    description: Any,
    runner: Any,
    hooks: Optional[GlobalHooks] = None,
    config: Optional[EngineConfig] = None,
) -> DataCollection:
    """
    阻塞式入口：asyncio.run(Engine(...).run(description))
    """
    engine = Engine(runner, hooks=hooks, config=config)
    return asyncio.run(engine.run(description))
