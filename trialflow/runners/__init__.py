from .base import DoneCallback, TrialRunner
from .simulation import SimulationRunner

__all__ = ["DoneCallback", "TrialRunner", "SimulationRunner"]
