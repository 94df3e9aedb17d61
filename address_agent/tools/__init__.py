"""Research tools: definitions, data-source services and the dispatcher"""
from .definitions import DECISION_TOOL, build_tool_definitions
from .dispatcher import DispatchOutcome, ToolDispatcher
from .experimental import ExperimentalServices, compute_commute_probability
from .services import ResearchServices

__all__ = [
    "DECISION_TOOL",
    "DispatchOutcome",
    "ExperimentalServices",
    "ResearchServices",
    "ToolDispatcher",
    "build_tool_definitions",
    "compute_commute_probability",
]
