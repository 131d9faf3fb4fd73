# trialflow/utils/errors.py
from __future__ import annotations


class TrialflowError(RuntimeError):
    """
    所有 engine 错误的基类。

    规则：
      - fatal：停止推进，不 skip-and-continue
      - 原样抛给 Engine.run 的调用方
    """


class MissingVariable(TrialflowError):
    """
    timeline variable 在任何外层 scope 中都不存在。
    """

    def __init__(self, name: str, available: list[str] | None = None):
        self.name = name
        self.available = sorted(available or [])
        super().__init__(
            f"timeline variable '{name}' is not bound in any enclosing scope "
            f"(available: {self.available})"
        )


class MalformedTimelineDescription(TrialflowError):
    """
    expand 阶段发现的描述错误，任何 trial 运行之前抛出。
    """

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class CallbackError(TrialflowError):
    """
    用户提供的 hook / conditional_function / loop_function / deferred 参数抛出异常。
    原始异常保存在 __cause__。
    """

    def __init__(self, hook: str, cause: BaseException):
        self.hook = hook
        super().__init__(f"{hook} raised {type(cause).__name__}: {cause}")


class CollaboratorTimeout(TrialflowError):
    """
    runner 在 trial_timeout 内没有发出完成信号。不重试。
    """

    def __init__(self, trial_index: int, timeout: float):
        self.trial_index = trial_index
        self.timeout = timeout
        super().__init__(
            f"trial {trial_index} did not complete within {timeout:.3f}s"
        )


class TrialRunnerError(TrialflowError):
    """
    runner.run 本身抛出异常（或其返回的 awaitable 失败）。
    """


class FrozenRecordError(TrialflowError, TypeError):
    """
    已 finalize 的 TrialRecord 不允许再修改。
    """


class RunAborted(Exception):
    """
    abort 的内部展开信号；Scheduler 捕获，不对外暴露为错误。
    """
