"""
LLM Interface Module
Vendor-neutral contract every model provider adapter implements.

DESIGN DECISIONS:
- The orchestrator only ever sees canonical Messages and ModelResponses
- Each adapter owns its vendor client; translation lives in pure functions
- Vendor exceptions surface as TransportError with the original as __cause__
- Missing credentials fail at construction (ConfigurationError), never mid-run
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from .protocol import ChatMessage, Message, ModelOptions, ModelResponse, ToolDefinition


NO_RESPONSE_TEXT = "I couldn't generate a response."


class ModelProvider(ABC):
    """
    Canonical Model Provider interface.

    call_model() drives one step of the agent loop, chat() is a plain
    one-shot completion with a system prompt and no tools.
    """

    provider_name: str = "base"

    def __init__(self, model_id: str):
        self.model_id = model_id

    @abstractmethod
    async def call_model(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition],
        options: Optional[ModelOptions] = None,
    ) -> ModelResponse:
        raise NotImplementedError

    @abstractmethod
    async def chat(
        self,
        system_prompt: str,
        messages: Sequence[ChatMessage],
        options: Optional[ModelOptions] = None,
    ) -> str:
        raise NotImplementedError

    def describe(self) -> dict:
        """Provider info for logs and the agent_start event"""
        return {"provider": self.provider_name, "model": self.model_id}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model_id={self.model_id!r})"
