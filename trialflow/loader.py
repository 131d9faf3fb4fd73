# trialflow/loader.py
from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from trialflow import logs
from trialflow.core.parameters import TimelineVariable
from trialflow.utils.errors import MalformedTimelineDescription

VARIABLE_TAG = "timeline_variable"


def load_timeline(path: str | Path) -> Any:
    """
    从 YAML 读取 Timeline Description。

    YAML 里没有函数，变量引用写成：
        stimulus: {timeline_variable: word}
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Timeline file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raise MalformedTimelineDescription(str(path), "timeline file is empty")

    description = _convert(raw)
    logs.info(f"[Loader] loaded timeline from {path}")
    return description


def _convert(value: Any) -> Any:
    if isinstance(value, dict):
        if len(value) == 1 and VARIABLE_TAG in value:
            return TimelineVariable(str(value[VARIABLE_TAG]))
        return {k: _convert(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_convert(v) for v in value]
    return value
