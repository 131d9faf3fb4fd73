# trialflow/core/parameters.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Union

from trialflow.core.scope import VariableScopeStack
from trialflow.utils.errors import CallbackError, TrialflowError


@dataclass(frozen=True)
class TimelineVariable:
    """
    描述中的变量引用标记：stimulus=TimelineVariable("word")
    """

    name: str


# -------------------------
# Tagged variant
# -------------------------
@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Deferred:
    fn: Callable[[], Any]


@dataclass(frozen=True)
class VariableRef:
    name: str


Parameter = Union[Literal, Deferred, VariableRef]


def as_parameter(raw: Any) -> Parameter:
    """
    把描述里的原始值归一化为 Parameter：
      - TimelineVariable → VariableRef
      - callable         → Deferred
      - 已是 Parameter   → 原样
      - 其它             → Literal
    """
    if isinstance(raw, (Literal, Deferred, VariableRef)):
        return raw
    if isinstance(raw, TimelineVariable):
        return VariableRef(raw.name)
    if callable(raw):
        return Deferred(raw)
    return Literal(raw)


def _resolve_nested(value: Any, scope: VariableScopeStack) -> Any:
    # 容器内只展开变量引用，函数保持原样（可能是 runner 需要的回调）
    if isinstance(value, (TimelineVariable, VariableRef)):
        return scope.lookup(value.name)
    if isinstance(value, list):
        return [_resolve_nested(v, scope) for v in value]
    if isinstance(value, tuple):
        return tuple(_resolve_nested(v, scope) for v in value)
    if isinstance(value, dict):
        return {k: _resolve_nested(v, scope) for k, v in value.items()}
    return value


def resolve(parameter: Any, scope: VariableScopeStack, *, name: str = "parameter") -> Any:
    """
    Parameter Resolver

    - Literal     : 原样返回（容器内的 VariableRef 递归展开）
    - Deferred    : 每次调用都重新执行，不缓存
    - VariableRef : 经 scope stack 查找，不存在 → MissingVariable
    """
    parameter = as_parameter(parameter)

    if isinstance(parameter, VariableRef):
        return scope.lookup(parameter.name)

    if isinstance(parameter, Deferred):
        try:
            value = parameter.fn()
        except TrialflowError:
            raise
        except Exception as e:
            raise CallbackError(f"parameter '{name}'", e) from e
        return _resolve_nested(value, scope)

    return _resolve_nested(parameter.value, scope)


def resolve_all(
    declared: Mapping[str, Any],
    scope: VariableScopeStack,
) -> dict[str, Any]:
    return {key: resolve(value, scope, name=key) for key, value in declared.items()}
