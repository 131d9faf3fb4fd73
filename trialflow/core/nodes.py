# trialflow/core/nodes.py
from __future__ import annotations

import numbers
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from trialflow.utils.errors import CallbackError, MalformedTimelineDescription, TrialflowError

# timeline 自身消费的字段；其余字段都是下发给子孙 trial 的声明
TIMELINE_KEYS = frozenset(
    {
        "timeline",
        "timeline_variables",
        "sample",
        "repetitions",
        "randomize_order",
        "loop_function",
        "conditional_function",
        "on_timeline_start",
        "on_timeline_finish",
    }
)

# 出现在 trial 描述上时，会把该 trial 包装成单子节点 timeline
_WRAPPING_KEYS = TIMELINE_KEYS - {"timeline"}

SAMPLE_TYPES = frozenset(
    {
        "with-replacement",
        "without-replacement",
        "fixed-repetitions",
        "alternate-groups",
        "custom",
    }
)

_CALLABLE_KEYS = (
    "loop_function",
    "conditional_function",
    "on_timeline_start",
    "on_timeline_finish",
)


@dataclass(frozen=True)
class SampleSpec:
    type: str
    size: Optional[int] = None
    weights: Optional[tuple[float, ...]] = None
    groups: Optional[tuple[tuple[int, ...], ...]] = None
    randomize_group_order: bool = False
    fn: Optional[Callable[[int, int], Sequence[int]]] = None


@dataclass(eq=False)
class TrialNode:
    """
    叶子节点：一次刺激呈现 + 反应，交给外部 runner 执行。
    """

    path: str
    trial_type: Any
    declarations: dict[str, Any]
    parent: Optional["TimelineNode"] = field(default=None, repr=False)

    @property
    def type_name(self) -> str:
        t = self.trial_type
        if isinstance(t, str):
            return t
        return getattr(t, "name", None) or getattr(t, "__name__", None) or str(t)

    def effective_declarations(self) -> dict[str, Any]:
        """
        最近祖先优先：外层 timeline 的声明先铺底，内层覆盖，trial 自身最后覆盖。
        """
        chain: list[Mapping[str, Any]] = []
        node = self.parent
        while node is not None:
            chain.append(node.declarations)
            node = node.parent

        merged: dict[str, Any] = {}
        for declared in reversed(chain):
            merged.update(declared)
        merged.update(self.declarations)
        return merged


@dataclass(eq=False)
class TimelineNode:
    """
    容器节点：有序子节点 + iteration / loop / conditional 元数据。

    运行期 iteration 状态不放在这里（见 TimelineController.IterationState），
    同一个 node 可以被多次 entry。
    """

    path: str
    children: list[Union["TimelineNode", TrialNode]] = field(default_factory=list)
    # None = 未声明（单次空 scope）；[] = 声明为空（零次迭代）
    timeline_variables: Optional[list[dict[str, Any]]] = None
    sample: Optional[SampleSpec] = None
    repetitions: int = 1
    randomize_order: bool = False
    loop_function: Optional[Callable] = None
    conditional_function: Optional[Callable] = None
    on_timeline_start: Optional[Callable] = None
    on_timeline_finish: Optional[Callable] = None
    declarations: dict[str, Any] = field(default_factory=dict)
    parent: Optional["TimelineNode"] = field(default=None, repr=False)

    @property
    def has_variables(self) -> bool:
        return self.timeline_variables is not None

    def trial_count(self) -> int:
        """一次 pass（不含 loop）声明的 trial 数量上界，仅用于日志。"""
        per_pass = sum(
            c.trial_count() if isinstance(c, TimelineNode) else 1 for c in self.children
        )
        n = len(self.timeline_variables) if self.has_variables else 1
        steps = n * self.repetitions
        return per_pass * steps


Node = Union[TimelineNode, TrialNode]


# ============================================================
# expand：描述 → 节点树（一次性完整校验）
# ============================================================
def expand(description: Any) -> TimelineNode:
    """
    把 Timeline Description 展开成节点树。

    - list 是 {"timeline": [...]} 的简写
    - 根节点若是单个 trial，会被包装成单子节点 timeline
    - 所有结构错误在这里抛出 MalformedTimelineDescription，任何 trial 运行之前
    """
    if isinstance(description, (list, tuple)):
        description = {"timeline": list(description)}

    node = _expand_node(description, "root", parent=None)
    if isinstance(node, TrialNode):
        root = TimelineNode(path="root")
        node.parent = root
        node.path = "root.timeline[0]"
        root.children.append(node)
        return root
    return node


def _expand_node(description: Any, path: str, parent: Optional[TimelineNode]) -> Node:
    if isinstance(description, (list, tuple)):
        description = {"timeline": list(description)}

    if not isinstance(description, Mapping):
        raise MalformedTimelineDescription(
            path, f"expected a mapping, got {type(description).__name__}"
        )

    has_type = "type" in description
    has_timeline = "timeline" in description

    if has_type and has_timeline:
        raise MalformedTimelineDescription(
            path, "a node declares both 'type' and 'timeline'"
        )
    if not has_type and not has_timeline:
        raise MalformedTimelineDescription(
            path, "a node must declare either 'type' (trial) or 'timeline' (container)"
        )

    if has_type and any(key in description for key in _WRAPPING_KEYS):
        # 带 timeline 级字段的 trial：拆成 timeline + 单个 trial
        outer = {k: v for k, v in description.items() if k in _WRAPPING_KEYS}
        inner = {k: v for k, v in description.items() if k not in _WRAPPING_KEYS}
        outer["timeline"] = [inner]
        description = outer
        has_type = False

    if has_type:
        return _expand_trial(description, path, parent)
    return _expand_timeline(description, path, parent)


def _expand_trial(description: Mapping[str, Any], path: str, parent) -> TrialNode:
    trial_type = description["type"]
    if trial_type is None:
        raise MalformedTimelineDescription(path, "'type' must not be None")

    declarations = {k: v for k, v in description.items() if k != "type"}
    _check_trial_callbacks(declarations, path)

    return TrialNode(
        path=path,
        trial_type=trial_type,
        declarations=declarations,
        parent=parent,
    )


def _expand_timeline(description: Mapping[str, Any], path: str, parent) -> TimelineNode:
    children_desc = description["timeline"]
    if not isinstance(children_desc, (list, tuple)):
        raise MalformedTimelineDescription(path, "'timeline' must be a list")

    for key in _CALLABLE_KEYS:
        value = description.get(key)
        if value is not None and not callable(value):
            raise MalformedTimelineDescription(path, f"'{key}' must be callable")

    repetitions = description.get("repetitions", 1)
    if isinstance(repetitions, bool) or not isinstance(repetitions, int) or repetitions < 1:
        raise MalformedTimelineDescription(
            path, f"'repetitions' must be a positive integer, got {repetitions!r}"
        )

    randomize_order = description.get("randomize_order", False)
    if not isinstance(randomize_order, bool):
        raise MalformedTimelineDescription(path, "'randomize_order' must be a boolean")

    variables = _check_timeline_variables(description.get("timeline_variables"), path)
    sample = _check_sample(description.get("sample"), len(variables or ()), repetitions, path)

    declarations = {k: v for k, v in description.items() if k not in TIMELINE_KEYS}
    _check_trial_callbacks(declarations, path)

    node = TimelineNode(
        path=path,
        timeline_variables=variables,
        sample=sample,
        repetitions=repetitions,
        randomize_order=randomize_order,
        loop_function=description.get("loop_function"),
        conditional_function=description.get("conditional_function"),
        on_timeline_start=description.get("on_timeline_start"),
        on_timeline_finish=description.get("on_timeline_finish"),
        declarations=declarations,
        parent=parent,
    )

    for i, child in enumerate(children_desc):
        node.children.append(_expand_node(child, f"{path}.timeline[{i}]", parent=node))

    return node


def _check_trial_callbacks(declarations: Mapping[str, Any], path: str) -> None:
    for key in ("on_start", "on_finish"):
        value = declarations.get(key)
        if value is not None and not callable(value):
            raise MalformedTimelineDescription(path, f"'{key}' must be callable")


def _check_timeline_variables(raw: Any, path: str) -> Optional[list[dict[str, Any]]]:
    if raw is None:
        return None
    if not isinstance(raw, (list, tuple)):
        raise MalformedTimelineDescription(path, "'timeline_variables' must be a list")

    variables: list[dict[str, Any]] = []
    expected: Optional[set] = None
    for i, entry in enumerate(raw):
        if not isinstance(entry, Mapping):
            raise MalformedTimelineDescription(
                path, f"timeline_variables[{i}] must be a mapping"
            )
        keys = set(entry)
        if expected is None:
            expected = keys
        elif keys != expected:
            raise MalformedTimelineDescription(
                path,
                f"timeline_variables[{i}] keys {sorted(keys)} differ from "
                f"timeline_variables[0] keys {sorted(expected)}",
            )
        variables.append(dict(entry))
    return variables


def _check_sample(raw: Any, n: int, repetitions: int, path: str) -> Optional[SampleSpec]:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise MalformedTimelineDescription(path, "'sample' must be a mapping")

    kind = raw.get("type")
    if kind not in SAMPLE_TYPES:
        raise MalformedTimelineDescription(
            path, f"unknown sample type {kind!r}; expected one of {sorted(SAMPLE_TYPES)}"
        )
    if n == 0:
        raise MalformedTimelineDescription(path, "'sample' requires timeline_variables")

    size = raw.get("size")
    if size is not None:
        if isinstance(size, bool) or not isinstance(size, int) or size < 1:
            raise MalformedTimelineDescription(path, "sample 'size' must be a positive integer")
        if kind == "without-replacement" and size > n:
            raise MalformedTimelineDescription(
                path, f"without-replacement size {size} exceeds {n} variable sets"
            )

    weights = raw.get("weights")
    if weights is not None:
        try:
            weights = tuple(float(w) for w in weights)
        except (TypeError, ValueError):
            raise MalformedTimelineDescription(
                path, f"sample 'weights' must be numbers, got {weights!r}"
            ) from None
        if len(weights) != n or any(w < 0 for w in weights) or sum(weights) <= 0:
            raise MalformedTimelineDescription(
                path, f"sample 'weights' must be {n} non-negative numbers with a positive sum"
            )

    groups = None
    if kind == "alternate-groups":
        groups = raw.get("groups")
        if not groups:
            raise MalformedTimelineDescription(path, "alternate-groups requires 'groups'")
        try:
            groups = tuple(tuple(_as_index(i) for i in g) for g in groups)
        except (TypeError, ValueError):
            raise MalformedTimelineDescription(
                path, f"alternate-groups must be lists of integer indices, got {groups!r}"
            ) from None
        if any(not g for g in groups) or any(i < 0 or i >= n for g in groups for i in g):
            raise MalformedTimelineDescription(
                path, f"alternate-groups indices must be non-empty and within [0, {n})"
            )

    fn = raw.get("fn")
    if kind == "custom" and not callable(fn):
        raise MalformedTimelineDescription(path, "custom sample requires a callable 'fn'")
    if kind == "custom":
        # 展开时先试算一次，非法下标在任何 trial 运行之前报错
        custom_order(fn, n, repetitions, path)

    return SampleSpec(
        type=kind,
        size=size,
        weights=weights,
        groups=groups,
        randomize_group_order=bool(raw.get("randomize_group_order", False)),
        fn=fn,
    )


def _as_index(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise TypeError(f"not an integer index: {value!r}")
    return int(value)


def custom_order(
    fn: Callable[[int, int], Sequence[int]],
    n: int,
    repetitions: int,
    path: str,
) -> list[int]:
    """
    调用 custom sample 的 fn(n, repetitions) 并校验返回的下标。
    expand 时调用一次做校验，每次 plan（含 loop 重新规划）都会再调用。
    """
    try:
        order = list(fn(n, repetitions))
    except TrialflowError:
        raise
    except Exception as e:
        raise CallbackError("sample.fn", e) from e

    for i in order:
        if isinstance(i, bool) or not isinstance(i, numbers.Integral) or not 0 <= i < n:
            raise MalformedTimelineDescription(
                path, f"custom sample returned invalid index {i!r} for {n} variable sets"
            )
    return [int(i) for i in order]
