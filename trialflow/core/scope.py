# trialflow/core/scope.py
from __future__ import annotations

from contextlib import contextmanager
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from trialflow.utils.errors import MissingVariable

_MISSING = object()


class VariableScopeStack:
    """
    Timeline variable 作用域栈。

    规则：
      - frames 按进入顺序保存，innermost last
      - lookup 从 innermost 向外查找，内层同名变量遮蔽外层
      - 只在节点（及其子孙）执行期间存在，退出即 pop
    """

    def __init__(self) -> None:
        self._frames: list[Mapping[str, Any]] = []

    # --------------------------------------------------
    @property
    def depth(self) -> int:
        return len(self._frames)

    def push(self, bindings: Mapping[str, Any]) -> None:
        self._frames.append(MappingProxyType(dict(bindings)))

    def pop(self) -> Mapping[str, Any]:
        if not self._frames:
            raise IndexError("pop from empty scope stack")
        return self._frames.pop()

    @contextmanager
    def bound(self, bindings: Mapping[str, Any]) -> Iterator[None]:
        """push → yield → pop（异常路径同样 pop）"""
        self.push(bindings)
        try:
            yield
        finally:
            self.pop()

    # --------------------------------------------------
    def lookup(self, name: str) -> Any:
        for frame in reversed(self._frames):
            value = frame.get(name, _MISSING)
            if value is not _MISSING:
                return value
        raise MissingVariable(name, available=list(self.snapshot()))

    def contains(self, name: str) -> bool:
        return any(name in frame for frame in self._frames)

    def innermost(self) -> Mapping[str, Any]:
        return self._frames[-1] if self._frames else MappingProxyType({})

    def snapshot(self) -> Mapping[str, Any]:
        """
        当前可见绑定的只读快照（已应用遮蔽）。
        """
        merged: dict[str, Any] = {}
        for frame in self._frames:
            merged.update(frame)
        return MappingProxyType(merged)
