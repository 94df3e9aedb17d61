"""
Error taxonomy for the agent core.

Only ConfigurationError and TransportError are expected to cross module
boundaries. ToolExecutionError never leaves the dispatcher and RunCancelled
is a terminal condition, not a failure.
"""


class AgentError(Exception):
    """Base class for every error raised by the agent core"""


class ConfigurationError(AgentError):
    """Missing credentials, unknown provider or variant. Raised at construction."""


class TransportError(AgentError):
    """Provider or network failure during a model call"""


class MaxTokensReached(AgentError):
    """The model ran out of output tokens mid-response"""


class ToolExecutionError(AgentError):
    """A capability could not run. Converted to a failed ToolResult by the dispatcher."""


class RunCancelled(AgentError):
    """Raised by the host (or the cancel check) to stop a run at an iteration boundary"""

    def __init__(self, reason: str = "Run cancelled"):
        super().__init__(reason)
        self.reason = reason
