from .instrumentation import Instrumentation, NoOpInstrumentation
from .timer import RunClock, Timer

__all__ = ["Instrumentation", "NoOpInstrumentation", "RunClock", "Timer"]
