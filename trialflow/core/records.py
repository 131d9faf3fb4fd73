# trialflow/core/records.py
from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional

import pandas as pd
import pyarrow as pa

from trialflow.utils.errors import FrozenRecordError

ENGINE_FIELDS = ("trial_type", "trial_index", "time_elapsed")


class TrialRecord(MutableMapping):
    """
    Trial Result Record

    生命周期：
      - Data Pipeline 期间可变（on_finish / on_trial_finish 原地修改）
      - append 进 DataCollection 时 freeze，此后任何修改 → FrozenRecordError
    """

    __slots__ = ("_data", "_frozen")

    def __init__(self, data: Optional[Mapping[str, Any]] = None, **fields: Any):
        self._data: dict[str, Any] = dict(data or {})
        self._data.update(fields)
        self._frozen = False

    # --------------------------------------------------
    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "TrialRecord":
        self._frozen = True
        return self

    def _check_mutable(self) -> None:
        if self._frozen:
            raise FrozenRecordError(
                f"trial record {self._data.get('trial_index')} is finalized and read-only"
            )

    # --------------------------------------------------
    # MutableMapping
    # --------------------------------------------------
    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._check_mutable()
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        self._check_mutable()
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __getattr__(self, name: str) -> Any:
        # record.response 与 record["response"] 等价（只读）
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(name) from None

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"TrialRecord({state}, {self._data!r})"

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)


class DataCollection:
    """
    Data Collection：整个 run 唯一的结果历史。

    设计铁律：
      - append-only，只接受已 freeze 的 record
      - 查询方法全部返回新的 DataCollection 视图，不修改自身
    """

    def __init__(self, records: Optional[Iterable[TrialRecord]] = None):
        self._records: list[TrialRecord] = list(records or [])

    # --------------------------------------------------
    # 写入（仅 Data Pipeline 调用）
    # --------------------------------------------------
    def append(self, record: TrialRecord) -> None:
        if not record.frozen:
            raise ValueError("only finalized (frozen) records can be appended")
        self._records.append(record)

    # --------------------------------------------------
    # 读取
    # --------------------------------------------------
    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[TrialRecord]:
        return iter(self._records)

    def __getitem__(self, i: int | slice):
        return self._records[i]

    def since(self, mark: int) -> "DataCollection":
        """mark 之后 append 的记录（loop_function 的本 pass 数据）"""
        return DataCollection(self._records[mark:])

    def count(self) -> int:
        return len(self._records)

    def values(self) -> list[dict[str, Any]]:
        return [r.to_dict() for r in self._records]

    def columns(self) -> list[str]:
        """所有记录字段的并集（按首次出现顺序）"""
        seen: dict[str, None] = {}
        for r in self._records:
            seen.update(dict.fromkeys(r))
        return list(seen)

    def rows(self) -> list[dict[str, Any]]:
        """补齐缺失字段（None）后的记录，列对齐"""
        columns = self.columns()
        return [{c: r.get(c) for c in columns} for r in self._records]

    def first(self, n: int = 1) -> "DataCollection":
        return DataCollection(self._records[:n])

    def last(self, n: int = 1) -> "DataCollection":
        if n <= 0:
            return DataCollection()
        return DataCollection(self._records[-n:])

    def filter(self, **criteria: Any) -> "DataCollection":
        """filter(trial_type="html", correct=True)：字段全部相等才保留"""
        return DataCollection(
            r for r in self._records
            if all(k in r and r[k] == v for k, v in criteria.items())
        )

    def filter_by(self, predicate: Callable[[TrialRecord], bool]) -> "DataCollection":
        return DataCollection(r for r in self._records if predicate(r))

    def select(self, column: str) -> list[Any]:
        return [r[column] for r in self._records if column in r]

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self.values())

    def to_arrow(self) -> pa.Table:
        return pa.Table.from_pylist(self.rows())

    def __repr__(self) -> str:
        return f"DataCollection(n={len(self._records)})"
