#!filepath: trialflow/__init__.py

# logs 必须最先导入：其余模块在导入时依赖 `from trialflow import logs`
from .utils.logger import Logging, logs, init_logging
from .utils.filesystem import FileSystem
from .utils.errors import (
    TrialflowError,
    MissingVariable,
    MalformedTimelineDescription,
    CallbackError,
    CollaboratorTimeout,
    TrialRunnerError,
    FrozenRecordError,
)
from .config import AppConfig, EngineConfig, LogConfig

from .core import DataCollection, GlobalHooks, TimelineVariable, TrialRecord, expand
from .engine import Engine, RunStatus, run_timeline
from .runners import SimulationRunner, TrialRunner

__version__ = "0.1.0"

# alias 简化调用
timeline_variable = TimelineVariable
fs = FileSystem

__all__ = [
    "logs", "Logging", "init_logging",
    "fs",
    "AppConfig", "EngineConfig", "LogConfig",
    "TrialflowError", "MissingVariable", "MalformedTimelineDescription",
    "CallbackError", "CollaboratorTimeout", "TrialRunnerError", "FrozenRecordError",
    "DataCollection", "GlobalHooks", "TimelineVariable", "TrialRecord", "expand",
    "timeline_variable",
    "Engine", "RunStatus", "run_timeline",
    "SimulationRunner", "TrialRunner",
]
