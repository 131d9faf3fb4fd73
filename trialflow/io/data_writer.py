# trialflow/io/data_writer.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from trialflow import logs
from trialflow.core.records import DataCollection
from trialflow.utils.filesystem import FileSystem


class DataWriter:
    """
    DataCollection → 文件（run 结束后交给导出方）

    - .parquet : pyarrow（zstd）
    - .csv     : pandas
    - dict / list 等嵌套值统一 JSON 编码成字符串列
    - 先写 tmp 再 rename，避免半截文件
    """

    SUPPORTED = (".parquet", ".csv")

    def write(self, data: DataCollection, path: str | Path) -> Path:
        path = Path(path)
        suffix = path.suffix.lower()
        if suffix not in self.SUPPORTED:
            raise ValueError(f"unsupported output format {suffix!r}; expected one of {self.SUPPORTED}")

        rows = [self._flatten(r) for r in data.rows()]

        if suffix == ".parquet":
            table = pa.Table.from_pylist(rows)
            FileSystem.atomic_write(path, lambda tmp: pq.write_table(table, tmp, compression="zstd"))
        else:
            df = pd.DataFrame(rows)
            FileSystem.atomic_write(path, lambda tmp: df.to_csv(tmp, index=False))

        logs.info(f"[DataWriter] wrote {len(rows)} records → {path}")
        return path

    @staticmethod
    def _flatten(row: dict[str, Any]) -> dict[str, Any]:
        out = {}
        for key, value in row.items():
            if isinstance(value, (dict, list, tuple)):
                value = json.dumps(value, ensure_ascii=False, default=str)
            out[key] = value
        return out
