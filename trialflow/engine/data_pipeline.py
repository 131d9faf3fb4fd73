# trialflow/engine/data_pipeline.py
from __future__ import annotations

from typing import Callable, Optional

from trialflow import logs
from trialflow.core.hooks import GlobalHooks, invoke_hook
from trialflow.core.records import DataCollection, TrialRecord


class DataPipeline:
    """
    一个 TrialRecord 在 finalize 之前经过的有序阶段：

      1. trial 级 on_finish(record)        可原地修改
      2. experiment 级 on_trial_finish(record)  可原地修改，能看到 1 的修改
      3. freeze + append 到 DataCollection
      4. experiment 级 on_data_update(record)   只读

    设计铁律：
      - 全部同步执行，顺序固定，不跳过、不延后到下一个 trial
      - abort 不打断正在进行的 pipeline（下一个 checkpoint 才生效）
    """

    def __init__(self, hooks: GlobalHooks, data: DataCollection):
        self.hooks = hooks
        self.data = data

    def process(
        self,
        record: TrialRecord,
        on_finish: Optional[Callable[[TrialRecord], object]] = None,
    ) -> TrialRecord:
        invoke_hook("on_finish", on_finish, record)
        invoke_hook("on_trial_finish", self.hooks.on_trial_finish, record)

        record.freeze()
        self.data.append(record)
        logs.debug(
            f"[Pipeline] trial {record.get('trial_index')} finalized "
            f"({record.get('trial_type')}, n={len(self.data)})"
        )

        invoke_hook("on_data_update", self.hooks.on_data_update, record)
        return record
