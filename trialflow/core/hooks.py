# trialflow/core/hooks.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from trialflow.utils.errors import CallbackError, TrialflowError

Hook = Optional[Callable[..., Any]]


@dataclass(frozen=True)
class GlobalHooks:
    """
    Experiment 级 hook 配置（不可变，显式传给 Scheduler / Controllers）

    - on_trial_start(trial)      : trial 参数解析完成后、trial 级 on_start 之前
    - on_trial_finish(record)    : trial 级 on_finish 之后、append 之前
    - on_data_update(record)     : append 之后（只读 record）
    - on_timeline_start()        : 节点未声明自己的 on_timeline_start 时使用
    - on_timeline_finish()       : 节点未声明自己的 on_timeline_finish 时使用
    - on_finish(data)            : 整个 run 结束（包括 abort）
    """

    on_trial_start: Hook = None
    on_trial_finish: Hook = None
    on_data_update: Hook = None
    on_timeline_start: Hook = None
    on_timeline_finish: Hook = None
    on_finish: Hook = None

    def __post_init__(self):
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if value is not None and not callable(value):
                raise TypeError(f"GlobalHooks.{name} must be callable, got {type(value).__name__}")


def invoke_hook(name: str, fn: Hook, *args: Any) -> Any:
    """
    调用用户 hook；用户代码抛出的异常统一包装为 CallbackError。
    engine 自身的错误（如 MissingVariable）原样透传。
    """
    if fn is None:
        return None
    try:
        return fn(*args)
    except TrialflowError:
        raise
    except Exception as e:
        raise CallbackError(name, e) from e
