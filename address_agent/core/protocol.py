"""
Canonical message model shared by the orchestrator, the tool dispatcher and
every provider adapter. Vendor wire formats are translated into and out of
these types at the adapter boundary.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class StopReason(str, Enum):
    END_TURN = "end_turn"
    TOOL_USE = "tool_use"
    MAX_TOKENS = "max_tokens"


class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any] = {}


class ToolResultBlock(BaseModel):
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str


ContentBlock = Annotated[
    Union[TextBlock, ToolUseBlock, ToolResultBlock],
    Field(discriminator="type"),
]


class Message(BaseModel):
    role: Role
    content: Union[str, List[ContentBlock]]

    def blocks(self) -> list:
        """Content as a block list, wrapping plain text"""
        if isinstance(self.content, str):
            return [TextBlock(text=self.content)]
        return list(self.content)

    def tool_uses(self) -> list[ToolUseBlock]:
        return [b for b in self.blocks() if isinstance(b, ToolUseBlock)]

    def tool_results(self) -> list[ToolResultBlock]:
        return [b for b in self.blocks() if isinstance(b, ToolResultBlock)]

    def text(self) -> str:
        return "\n".join(b.text for b in self.blocks() if isinstance(b, TextBlock))


class ChatMessage(BaseModel):
    """Plain text turn used by the one-shot chat capability"""
    role: Role
    content: str


class Usage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0

    def add(self, other: Optional["Usage"]) -> None:
        if other is not None:
            self.input_tokens += other.input_tokens
            self.output_tokens += other.output_tokens


class ModelResponse(BaseModel):
    """Normalized response from any provider"""
    content: List[ContentBlock] = []
    stop_reason: StopReason
    usage: Optional[Usage] = None

    def tool_uses(self) -> list[ToolUseBlock]:
        return [b for b in self.content if isinstance(b, ToolUseBlock)]

    def text(self) -> str:
        return "\n".join(b.text for b in self.content if isinstance(b, TextBlock) and b.text)


class ModelOptions(BaseModel):
    max_tokens: int = 8192
    temperature: float = 0.3


class ToolDefinition(BaseModel):
    """Capability advertised to the model (Anthropic tool schema shape)"""
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    input_schema: dict[str, Any]


class ToolResult(BaseModel):
    """Uniform output of every tool dispatch"""
    success: bool
    data: Any = None
    summary: str
    error: Optional[str] = None


# Decision


class Recommendation(str, Enum):
    HOME = "HOME"
    OFFICE = "OFFICE"
    BOTH = "BOTH"
    COURIER = "COURIER"


class AddressInfo(BaseModel):
    address: str
    confidence: Optional[float] = None
    reasoning: Optional[str] = None


class AgentDecision(BaseModel):
    model_config = ConfigDict(extra="ignore")

    recommendation: Recommendation
    confidence: float = Field(ge=0, le=100)
    reasoning: str
    home_address: Optional[AddressInfo] = None
    office_address: Optional[AddressInfo] = None
    flags: Optional[list[str]] = None
    career_summary: Optional[str] = None
    profile_image_url: Optional[str] = None

    @field_validator("recommendation", mode="before")
    @classmethod
    def _upper(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value


# Run result


class RunStatus(str, Enum):
    DECIDED = "decided"
    INCOMPLETE = "incomplete"
    CANCELLED = "cancelled"
    FAILED = "failed"


class AgentResult(BaseModel):
    input: str
    iterations: int
    decision: Optional[AgentDecision] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: RunStatus
    error: Optional[str] = None
    usage: Usage = Usage()
