"""Core agent components"""
from .confidence import ConfidenceGate, accept
from .errors import (
    AgentError,
    ConfigurationError,
    MaxTokensReached,
    RunCancelled,
    ToolExecutionError,
    TransportError,
)
from .events import AgentEvent, AgentEventType, EventLog, tee
from .failover import FailoverPolicy, FailoverSession, is_rate_limit_error
from .llm_interface import ModelProvider
from .orchestrator import Orchestrator
from .transcript import Transcript

__all__ = [
    "AgentError",
    "AgentEvent",
    "AgentEventType",
    "ConfidenceGate",
    "ConfigurationError",
    "EventLog",
    "FailoverPolicy",
    "FailoverSession",
    "MaxTokensReached",
    "ModelProvider",
    "Orchestrator",
    "RunCancelled",
    "ToolExecutionError",
    "Transcript",
    "TransportError",
    "accept",
    "is_rate_limit_error",
    "tee",
]
