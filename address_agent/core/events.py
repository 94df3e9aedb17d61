"""
Event Stream Module
Typed lifecycle events emitted by the orchestrator, in strict causal order.

DESIGN DECISIONS:
- A sink is any callable taking one AgentEvent, called synchronously
- Events are never buffered or reordered; persistence relies on append order
- EventLog records a run so it can be dumped to JSONL and replayed later
"""

import json
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Optional, Union

from pydantic import BaseModel, Field


class AgentEventType(str, Enum):
    AGENT_START = "agent_start"
    ITERATION_START = "iteration_start"
    THINKING = "thinking"
    TOOL_CALL_START = "tool_call_start"
    TOOL_CALL_RESULT = "tool_call_result"
    DECISION_REJECTED = "decision_rejected"
    DECISION_ACCEPTED = "decision_accepted"
    PROVIDER_FAILOVER = "provider_failover"
    ERROR = "error"
    CANCELLED = "cancelled"
    COMPLETE = "complete"


class AgentEvent(BaseModel):
    type: AgentEventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    iteration: Optional[int] = None
    data: dict[str, Any] = {}


EventSink = Callable[[AgentEvent], None]


class EventEmitter:
    """Stamps and forwards events to a single sink"""

    def __init__(self, sink: Optional[EventSink] = None):
        self._sink = sink
        self.count = 0

    def emit(
        self,
        event_type: AgentEventType,
        data: Optional[dict[str, Any]] = None,
        iteration: Optional[int] = None,
    ) -> AgentEvent:
        event = AgentEvent(type=event_type, iteration=iteration, data=data or {})
        self.count += 1
        if self._sink is not None:
            self._sink(event)
        return event


def tee(*sinks: Optional[EventSink]) -> EventSink:
    """Fan one event out to several sinks, in argument order"""
    active = [s for s in sinks if s is not None]

    def _sink(event: AgentEvent) -> None:
        for sink in active:
            sink(event)

    return _sink


class EventLog:
    """Recording sink. Usable directly as the on_event callback."""

    def __init__(self, events: Optional[Iterable[AgentEvent]] = None):
        self.events: list[AgentEvent] = list(events or [])

    def __call__(self, event: AgentEvent) -> None:
        self.events.append(event)

    def __iter__(self) -> Iterator[AgentEvent]:
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)

    def types(self) -> list[str]:
        return [e.type.value for e in self.events]

    def of_type(self, event_type: Union[AgentEventType, str]) -> list[AgentEvent]:
        wanted = AgentEventType(event_type)
        return [e for e in self.events if e.type == wanted]

    def last(self) -> Optional[AgentEvent]:
        return self.events[-1] if self.events else None

    def to_jsonl(self) -> str:
        return "".join(e.model_dump_json() + "\n" for e in self.events)

    def dump(self, path: Path) -> None:
        Path(path).write_text(self.to_jsonl(), encoding="utf-8")

    @classmethod
    def from_jsonl(cls, text: str) -> "EventLog":
        events = [
            AgentEvent.model_validate(json.loads(line))
            for line in text.splitlines()
            if line.strip()
        ]
        return cls(events)

    @classmethod
    def load(cls, path: Path) -> "EventLog":
        return cls.from_jsonl(Path(path).read_text(encoding="utf-8"))

    def replay(self, sink: EventSink) -> int:
        """Feed the recorded events to another sink in their original order"""
        for event in self.events:
            sink(event)
        return len(self.events)
