# trialflow/runners/base.py
from __future__ import annotations

from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol, runtime_checkable

DoneCallback = Callable[[Optional[Mapping[str, Any]]], None]


@runtime_checkable
class TrialRunner(Protocol):
    """
    TrialRunner Contract（外部协作者）

    唯一职责：
      - 呈现 trial（刺激 / 计时 / 收集反应），决定 trial 何时结束
      - 每个 trial 恰好调用一次 done(raw_data)

    run 可以是普通函数（稍后由输入事件 / 计时器调用 done），
    也可以返回 awaitable；awaitable 以 mapping 结束且未调用 done 时，视为完成。

    可选：force_end()：abort / 超时时立即结束当前刺激。
    """

    def run(self, trial: dict[str, Any], done: DoneCallback) -> Optional[Awaitable[Any]]:
        ...
