# trialflow/core/sampling.py
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional

import numpy as np

from trialflow.core.nodes import SampleSpec, TimelineNode, custom_order
from trialflow.utils.errors import MalformedTimelineDescription


@dataclass(frozen=True)
class PlanStep:
    """
    Iteration plan 中的一步：一个 variable set + 本步的子节点顺序。
    """

    variables: Mapping[str, Any]
    child_order: tuple[int, ...]
    repetition: int
    variable_index: Optional[int] = None


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    return np.random.default_rng(seed)


def unbiased_permutation(rng: np.random.Generator, k: int) -> list[int]:
    """
    0..k-1 的均匀随机排列（Generator.permutation = Fisher–Yates，
    k! 种顺序等概率）。
    """
    return [int(i) for i in rng.permutation(k)]


# ============================================================
# variable set 顺序：按 repetition 分块
# ============================================================
def variable_blocks(
    sample: Optional[SampleSpec],
    n: int,
    repetitions: int,
    rng: np.random.Generator,
    path: str = "timeline",
) -> list[list[int]]:
    """
    返回每个 repetition 的 variable set 下标序列。
    """
    if sample is None or sample.type == "fixed-repetitions":
        return [list(range(n)) for _ in range(repetitions)]

    size = sample.size if sample.size is not None else n

    if sample.type == "with-replacement":
        p = None
        if sample.weights is not None:
            w = np.asarray(sample.weights, dtype=float)
            p = w / w.sum()
        return [
            [int(i) for i in rng.choice(n, size=size, replace=True, p=p)]
            for _ in range(repetitions)
        ]

    if sample.type == "without-replacement":
        return [unbiased_permutation(rng, n)[:size] for _ in range(repetitions)]

    if sample.type == "alternate-groups":
        return [_alternate_groups(sample, rng) for _ in range(repetitions)]

    if sample.type == "custom":
        return _custom_blocks(sample, n, repetitions, path)

    raise MalformedTimelineDescription(path, f"unknown sample type {sample.type!r}")


def _alternate_groups(sample: SampleSpec, rng: np.random.Generator) -> list[int]:
    groups = [list(g) for g in sample.groups or ()]
    shuffled = [[g[i] for i in unbiased_permutation(rng, len(g))] for g in groups]

    if sample.randomize_group_order:
        group_order = unbiased_permutation(rng, len(groups))
    else:
        group_order = list(range(len(groups)))

    # 交替取，每组取到最短组的长度为止
    min_length = min(len(g) for g in shuffled)
    out: list[int] = []
    for i in range(min_length):
        for g in group_order:
            out.append(shuffled[g][i])
    return out


def _custom_blocks(sample: SampleSpec, n: int, repetitions: int, path: str) -> list[list[int]]:
    order = custom_order(sample.fn, n, repetitions, path)

    blocks: list[list[int]] = [[] for _ in range(repetitions)]
    total = len(order)
    for pos, i in enumerate(order):
        # 按位置均分到各 repetition（用于 randomize_order 的分块）
        blocks[pos * repetitions // total].append(int(i))
    return blocks


# ============================================================
# plan
# ============================================================
def plan(node: TimelineNode, rng: np.random.Generator) -> list[PlanStep]:
    """
    Iteration Planner

    - 有 timeline_variables：按 sample 策略生成每个 repetition 的 variable 顺序
    - 无 timeline_variables：children 声明顺序，重复 repetitions 次
    - randomize_order：每个 repetition 独立打乱 *子节点* 顺序（不打乱 variable set）
    """
    child_count = len(node.children)
    steps: list[PlanStep] = []

    if node.has_variables:
        blocks = variable_blocks(
            node.sample,
            len(node.timeline_variables),
            node.repetitions,
            rng,
            path=node.path,
        )
    else:
        blocks = [[None] for _ in range(node.repetitions)]

    for repetition, block in enumerate(blocks):
        if node.randomize_order:
            child_order = tuple(unbiased_permutation(rng, child_count))
        else:
            child_order = tuple(range(child_count))

        for index in block:
            variables = node.timeline_variables[index] if index is not None else {}
            steps.append(
                PlanStep(
                    variables=MappingProxyType(dict(variables)),
                    child_order=child_order,
                    repetition=repetition,
                    variable_index=index,
                )
            )

    return steps
