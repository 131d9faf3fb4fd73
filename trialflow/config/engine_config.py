# trialflow/config/engine_config.py
from typing import Optional

from pydantic import BaseModel, Field


class EngineConfig(BaseModel):
    """
    Engine 运行参数（不可变，整个 run 期间只读）

    - seed           : 所有随机化（sample / randomize_order）共用的 rng 种子
    - default_iti    : trial 未声明 post_trial_gap 时的间隔（ms）
    - trial_timeout  : 等待 runner 完成信号的上限（秒）；None = 无限等待
    - report_timings : run 结束时输出每个 trial 的耗时表
    """

    model_config = {"frozen": True}

    seed: Optional[int] = None
    default_iti: int = Field(default=0, ge=0)
    trial_timeout: Optional[float] = Field(default=None, gt=0)
    report_timings: bool = False
