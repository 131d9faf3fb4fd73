from .control import CompletionSignal, RunControl
from .data_pipeline import DataPipeline
from .scheduler import Engine, RunStatus, run_timeline
from .timeline_controller import TimelineController, TimelineState
from .trial_controller import TrialController

__all__ = [
    "CompletionSignal", "RunControl",
    "DataPipeline",
    "Engine", "RunStatus", "run_timeline",
    "TimelineController", "TimelineState",
    "TrialController",
]
