# trialflow/engine/trial_controller.py
from __future__ import annotations

import asyncio
import inspect
from functools import partial
from typing import Any, Mapping, Optional

from trialflow import logs
from trialflow.core.hooks import invoke_hook
from trialflow.core.nodes import TrialNode
from trialflow.core.parameters import resolve_all
from trialflow.core.records import TrialRecord
from trialflow.engine.context import RunContext
from trialflow.engine.control import CompletionSignal, force_end
from trialflow.utils.errors import (
    CollaboratorTimeout,
    MalformedTimelineDescription,
    RunAborted,
    TrialRunnerError,
)

# trial 级回调：不参与参数解析，也不交给 runner
TRIAL_CALLBACKS = ("on_start", "on_finish")


class TrialController:
    """
    驱动单个 trial 节点：

        checkpoint → resolve → on_trial_start → on_start → runner
                   → await completion → record → Data Pipeline → post_trial_gap
    """

    def __init__(self, ctx: RunContext):
        self.ctx = ctx

    async def run(self, node: TrialNode) -> None:
        ctx = self.ctx

        # pause / abort 只在参数解析之前生效
        await ctx.control.checkpoint()

        index = ctx.next_trial_index
        with ctx.inst.timer(f"trial_{index}_{node.type_name}"):
            declared = node.effective_declarations()
            callbacks = {key: declared.pop(key, None) for key in TRIAL_CALLBACKS}

            trial: dict[str, Any] = {"type": node.trial_type}
            trial.update(resolve_all(declared, ctx.scope))

            invoke_hook("on_trial_start", ctx.hooks.on_trial_start, trial)
            invoke_hook("on_start", callbacks["on_start"], trial)

            logs.debug(f"[Trial] {index} start {node.path} ({node.type_name})")
            raw = await self._execute(trial, index)

            record = self._build_record(node, trial, raw)
            ctx.pipeline.process(record, callbacks["on_finish"])

        gap = trial.get("post_trial_gap")
        if gap is None:
            gap = ctx.config.default_iti
        if gap:
            await ctx.control.sleep(gap / 1000)

    # --------------------------------------------------
    # runner 交互
    # --------------------------------------------------
    async def _execute(self, trial: dict[str, Any], index: int) -> dict[str, Any]:
        ctx = self.ctx
        signal = CompletionSignal(index)
        ctx.in_flight = signal
        watcher: Optional[asyncio.Future] = None
        ok = False

        try:
            try:
                ret = ctx.runner.run(trial, signal.complete)
            except Exception as e:
                raise TrialRunnerError(f"runner failed to start trial {index}: {e}") from e

            if inspect.isawaitable(ret):
                watcher = asyncio.ensure_future(ret)
                watcher.add_done_callback(partial(_runner_finished, signal))

            try:
                raw = await signal.wait(ctx.config.trial_timeout)
            except CollaboratorTimeout:
                logs.error(f"[Trial] {index} timed out; no retry")
                force_end(ctx.runner)
                raise

            ok = True
            return raw

        except RunAborted:
            logs.info(f"[Trial] {index} discarded by abort")
            raise

        finally:
            ctx.in_flight = None
            if not ok and watcher is not None and not watcher.done():
                watcher.cancel()

    def _build_record(
        self,
        node: TrialNode,
        trial: Mapping[str, Any],
        raw: Mapping[str, Any],
    ) -> TrialRecord:
        ctx = self.ctx

        data_param = trial.get("data")
        if data_param is not None and not isinstance(data_param, Mapping):
            raise MalformedTimelineDescription(
                node.path, f"'data' must resolve to a mapping, got {type(data_param).__name__}"
            )

        # runner 输出覆盖 data 参数，engine 字段最后写入
        record = TrialRecord(data_param or {})
        record.update(raw)

        save_vars = trial.get("save_timeline_variables")
        if save_vars:
            visible = ctx.scope.snapshot()
            if save_vars is True:
                record["timeline_variables"] = dict(visible)
            else:
                record["timeline_variables"] = {
                    name: visible[name] for name in save_vars if name in visible
                }

        record["trial_type"] = node.type_name
        record["trial_index"] = ctx.take_trial_index()
        record["time_elapsed"] = ctx.clock.elapsed_ms()
        return record


def _runner_finished(signal: CompletionSignal, task: asyncio.Future) -> None:
    """
    runner 返回的 awaitable 结束：
      - 抛异常          → trial 失败（TrialRunnerError）
      - 返回 mapping 且未 complete → 视为完成信号
    """
    if task.cancelled() or signal.done:
        if not task.cancelled() and task.exception() is not None:
            logs.warning(
                f"[Trial] {signal.trial_index} runner raised after completion: {task.exception()!r}"
            )
        return

    exc = task.exception()
    if exc is not None:
        err = TrialRunnerError(f"runner failed during trial {signal.trial_index}: {exc}")
        err.__cause__ = exc
        signal.fail(err)
        return

    result = task.result()
    if isinstance(result, Mapping):
        signal.complete(result)
