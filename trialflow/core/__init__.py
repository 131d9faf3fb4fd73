from .hooks import GlobalHooks
from .nodes import SampleSpec, TimelineNode, TrialNode, expand
from .parameters import Deferred, Literal, TimelineVariable, VariableRef, as_parameter, resolve
from .records import DataCollection, TrialRecord
from .sampling import PlanStep, make_rng, plan
from .scope import VariableScopeStack

__all__ = [
    "GlobalHooks",
    "SampleSpec", "TimelineNode", "TrialNode", "expand",
    "Deferred", "Literal", "TimelineVariable", "VariableRef", "as_parameter", "resolve",
    "DataCollection", "TrialRecord",
    "PlanStep", "make_rng", "plan",
    "VariableScopeStack",
]
