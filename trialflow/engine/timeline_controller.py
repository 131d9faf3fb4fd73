# trialflow/engine/timeline_controller.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from trialflow import logs
from trialflow.core.hooks import invoke_hook
from trialflow.core.nodes import TimelineNode, TrialNode
from trialflow.core.sampling import PlanStep, plan
from trialflow.engine.context import RunContext
from trialflow.engine.trial_controller import TrialController


class TimelineState(str, Enum):
    GATED = "gated"
    ITERATING = "iterating"
    LOOP_CHECK = "loop_check"
    FINISHED = "finished"


@dataclass
class IterationState:
    """
    一次 pass 的迭代状态；loop 重复时丢弃并重建。
    """

    steps: list[PlanStep]
    pass_index: int = 0
    step_index: int = 0
    child_position: int = 0
    # 本 pass 开始时 DataCollection 的长度；之后 append 的都属于本 pass
    data_mark: int = 0

    @property
    def current_step(self) -> Optional[PlanStep]:
        if self.step_index < len(self.steps):
            return self.steps[self.step_index]
        return None


@dataclass
class TimelineController:
    """
    TimelineController（每次 entry 一个实例）

    状态机：
        GATED → ITERATING → LOOP_CHECK → {ITERATING | FINISHED}

    设计铁律：
      - conditional_function 只在 GATED 评估一次，只能看到外层 scope
      - on_timeline_start / on_timeline_finish 每次 entry 恰好一次；
        不按 child、repetition、loop 重复触发
      - 异常（含 abort）直接展开：不评估 loop_function，不触发 on_timeline_finish
    """

    node: TimelineNode
    ctx: RunContext
    state: TimelineState = TimelineState.GATED
    iteration: Optional[IterationState] = None
    end_requested: bool = field(default=False)

    # --------------------------------------------------
    async def run(self) -> None:
        node, ctx = self.node, self.ctx

        # 嵌套 entry：pause 期间不评估 conditional_function、不触发 start
        await ctx.control.checkpoint()
        if not self._gate():
            logs.debug(f"[Timeline] {node.path} skipped by conditional_function")
            self.state = TimelineState.FINISHED
            return

        self._fire("on_timeline_start")
        logs.debug(f"[Timeline] {node.path} start")

        ctx.timeline_stack.append(self)
        try:
            pass_index = 0
            while True:
                self.state = TimelineState.ITERATING
                self.iteration = IterationState(
                    steps=plan(node, ctx.rng),
                    pass_index=pass_index,
                    data_mark=len(ctx.data),
                )
                await self._iterate()

                if self.end_requested:
                    logs.info(f"[Timeline] {node.path} ended early")
                    break

                self.state = TimelineState.LOOP_CHECK
                if not self._loop_again():
                    break
                pass_index += 1
                logs.debug(f"[Timeline] {node.path} loop pass {pass_index}")
        finally:
            ctx.timeline_stack.pop()

        self._fire("on_timeline_finish")
        self.state = TimelineState.FINISHED
        logs.debug(f"[Timeline] {node.path} finish")

    def request_end(self) -> None:
        """当前 trial finalize 之后结束本 timeline 的剩余迭代。"""
        self.end_requested = True

    # --------------------------------------------------
    # GATED
    # --------------------------------------------------
    def _gate(self) -> bool:
        fn = self.node.conditional_function
        if fn is None:
            return True
        return bool(invoke_hook("conditional_function", fn))

    # --------------------------------------------------
    # ITERATING
    # --------------------------------------------------
    async def _iterate(self) -> None:
        it, node, ctx = self.iteration, self.node, self.ctx

        while it.current_step is not None:
            step = it.current_step
            with ctx.scope.bound(step.variables):
                it.child_position = 0
                for child_index in step.child_order:
                    child = node.children[child_index]
                    if isinstance(child, TrialNode):
                        await TrialController(ctx).run(child)
                    else:
                        await TimelineController(child, ctx).run()
                    it.child_position += 1

                    # 子节点结束后：pause 在此挂起，abort 在此展开（不评估 loop，不触发 finish）
                    await ctx.control.checkpoint()
                    if self.end_requested:
                        return
            it.step_index += 1

    # --------------------------------------------------
    # LOOP_CHECK
    # --------------------------------------------------
    def _loop_again(self) -> bool:
        fn = self.node.loop_function
        if fn is None:
            return False
        records = self.ctx.data.since(self.iteration.data_mark)
        return bool(invoke_hook("loop_function", fn, records))

    # --------------------------------------------------
    def _fire(self, name: str) -> None:
        fn = getattr(self.node, name) or getattr(self.ctx.hooks, name)
        invoke_hook(name, fn)
