# trialflow/engine/control.py
from __future__ import annotations

import asyncio
import threading
from typing import Any, Mapping, Optional

from trialflow import logs
from trialflow.utils.errors import CollaboratorTimeout, RunAborted


class CompletionSignal:
    """
    Trial 的唯一挂起点：runner 调用 complete(raw) 恰好一次。

    规则：
      - 第二次 complete → warning 并忽略
      - discard() 之后到达的 complete → 忽略（abort 已丢弃该 trial）
      - 允许在其它线程调用 complete（音频 / 输入线程），经 call_soon_threadsafe 回到 loop
    """

    def __init__(self, trial_index: int):
        self.trial_index = trial_index
        self._loop = asyncio.get_running_loop()
        self._thread_id = threading.get_ident()
        self._future: asyncio.Future = self._loop.create_future()
        self._discarded = False

    @property
    def done(self) -> bool:
        return self._future.done()

    @property
    def discarded(self) -> bool:
        return self._discarded

    # --------------------------------------------------
    # runner 侧
    # --------------------------------------------------
    def complete(self, raw: Optional[Mapping[str, Any]] = None) -> None:
        if threading.get_ident() != self._thread_id:
            self._loop.call_soon_threadsafe(self._settle, raw)
            return
        self._settle(raw)

    def _settle(self, raw: Optional[Mapping[str, Any]]) -> None:
        if self._discarded:
            logs.debug(f"[Signal] trial {self.trial_index} completion after abort ignored")
            return
        if self._future.done():
            logs.warning(f"[Signal] trial {self.trial_index} completed more than once; ignored")
            return
        self._future.set_result(dict(raw or {}))

    def fail(self, exc: BaseException) -> None:
        if not self._future.done():
            self._future.set_exception(exc)

    # --------------------------------------------------
    # engine 侧
    # --------------------------------------------------
    def discard(self) -> None:
        if self._future.done():
            return
        self._discarded = True
        self._future.set_exception(RunAborted())

    async def wait(self, timeout: Optional[float] = None) -> dict[str, Any]:
        if timeout is None:
            return await self._future
        try:
            return await asyncio.wait_for(asyncio.shield(self._future), timeout)
        except asyncio.TimeoutError:
            raise CollaboratorTimeout(self.trial_index, timeout) from None


class RunControl:
    """
    pause / resume / abort 的共享状态。

    checkpoint() 是 pause 的生效点：每个子节点（trial 或 timeline）结束之后、
    下一个 timeline entry 的 conditional_function 之前、trial 参数解析之前。
    """

    def __init__(self):
        self._running = asyncio.Event()
        self._running.set()
        self._abort_event = asyncio.Event()
        self.aborted = False
        self.abort_message: Optional[str] = None

    @property
    def paused(self) -> bool:
        return not self._running.is_set()

    def pause(self) -> None:
        self._running.clear()

    def resume(self) -> None:
        self._running.set()

    def abort(self, message: Optional[str] = None) -> None:
        self.aborted = True
        self.abort_message = message
        self._abort_event.set()
        # 唤醒 paused 的 checkpoint，让其立即展开
        self._running.set()

    async def sleep(self, seconds: float) -> None:
        """trial 间隔；abort 时提前返回，由下一个 checkpoint 展开"""
        if self.aborted or seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._abort_event.wait(), seconds)
        except asyncio.TimeoutError:
            pass

    async def checkpoint(self) -> None:
        if self.aborted:
            raise RunAborted()
        if self.paused:
            logs.info("[Control] paused; waiting for resume")
            await self._running.wait()
            logs.info("[Control] resumed")
        if self.aborted:
            raise RunAborted()


def force_end(runner) -> None:
    """通知 runner 立即结束当前刺激（runner 可选实现 force_end）。"""
    fn = getattr(runner, "force_end", None)
    if callable(fn):
        fn()
