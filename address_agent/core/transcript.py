"""
Transcript for one agent run.

Every tool_use the model proposes must be answered by a tool_result with the
same id, in the same order, before the transcript is sent back to the model.
"""

from typing import Sequence, Union

from pydantic import BaseModel

from .protocol import ContentBlock, Message, Role, ToolResultBlock


class Transcript(BaseModel):
    """Ordered messages exchanged with the model. Owned by exactly one run."""
    messages: list[Message] = []

    def add_user_message(self, content: Union[str, Sequence[ContentBlock]]):
        """Add a user turn (instructions or nudges)"""
        if self.pending_tool_use_ids():
            raise ValueError("Cannot add a user message while tool calls are unanswered")
        self.messages.append(Message(role=Role.USER, content=self._coerce(content)))

    def add_assistant_message(self, content: Sequence[ContentBlock]):
        """Add the model's turn verbatim. Empty turns are dropped."""
        if not content:
            return
        self.messages.append(Message(role=Role.ASSISTANT, content=list(content)))

    def add_tool_results(self, results: Sequence[ToolResultBlock]):
        """Answer the pending tool calls of the last assistant turn"""
        expected = self.pending_tool_use_ids()
        got = [r.tool_use_id for r in results]
        if got != expected:
            raise ValueError(f"Tool results {got} do not answer pending tool calls {expected}")
        self.messages.append(Message(role=Role.USER, content=list(results)))

    def pending_tool_use_ids(self) -> list[str]:
        """Tool call ids of the last assistant turn that have no result yet"""
        if not self.messages or self.messages[-1].role != Role.ASSISTANT:
            return []
        return [b.id for b in self.messages[-1].tool_uses()]

    def _coerce(self, content):
        if isinstance(content, str):
            return content
        return list(content)

    def __len__(self) -> int:
        return len(self.messages)
