"""
Orchestrator Module
Runs the tool-use loop for one research subject.

DESIGN DECISIONS:
- One run = one coroutine; transcript, usage and failover session are local to run()
- Tool calls of a turn are dispatched sequentially, in proposed order
- The model may never end a run by going silent: it gets nudged instead
- Decisions only become terminal after passing the confidence gate
- Every run ends with exactly one `complete` event
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

from config.settings import AgentProfile

from .confidence import ConfidenceGate
from .errors import AgentError, MaxTokensReached, RunCancelled
from .events import AgentEventType, EventEmitter, EventSink
from .failover import FailoverPolicy, FailoverSession
from .llm_interface import ModelProvider
from .protocol import (
    AgentDecision,
    AgentResult,
    ModelOptions,
    RunStatus,
    StopReason,
    ToolDefinition,
    ToolResult,
    ToolResultBlock,
    ToolUseBlock,
    Usage,
)
from .transcript import Transcript

logger = logging.getLogger(__name__)

CancelCheck = Callable[[], Union[bool, Awaitable[bool]]]


def render_instructions(profile: AgentProfile, subject: str) -> str:
    """Fill the variant's instruction template for one subject"""
    return (
        profile.instruction_template
        .replace("{{agent_prompt}}", profile.agent_prompt)
        .replace("{{input}}", subject)
    )


class _RunState:
    """Mutable bookkeeping for a single run"""

    def __init__(self, subject: str):
        self.subject = subject
        self.transcript = Transcript()
        self.iteration = 0
        self.decision: Optional[AgentDecision] = None
        self.usage = Usage()

    def result(self, status: RunStatus, error: Optional[str] = None) -> AgentResult:
        return AgentResult(
            input=self.subject,
            iterations=self.iteration,
            decision=self.decision,
            status=status,
            error=error,
            usage=self.usage,
        )


class Orchestrator:
    """
    Agent loop shared by every variant.

    Flow per iteration:
    1. Check for cancellation, stop at the iteration budget
    2. Call the model with the transcript and tool definitions
    3. Emit `thinking` for any text
    4. max_tokens: abort. No tool calls: nudge. Otherwise dispatch each call
    5. Route decision submissions through the confidence gate
    6. Stop once a decision is accepted

    The orchestrator holds configuration only, so one instance can serve
    many concurrent runs.
    """

    def __init__(
        self,
        provider: ModelProvider,
        profile: AgentProfile,
        dispatcher: Any,
        tools: Sequence[ToolDefinition],
        failover: Optional[FailoverPolicy] = None,
        enable_logging: bool = True,
    ):
        self.provider = provider
        self.profile = profile
        self.dispatcher = dispatcher
        self.tools = list(tools)
        self.failover = failover
        self.gate = ConfidenceGate(profile.min_confidence, profile.rejection_hint)
        self.options = ModelOptions(
            max_tokens=profile.max_tokens_per_call,
            temperature=profile.temperature,
        )
        self.enable_logging = enable_logging

    def _log(self, message: str, level: str = "info"):
        """Log message if logging is enabled"""
        if self.enable_logging:
            getattr(logger, level)(message)

    def _session(self) -> FailoverSession:
        if self.failover is not None:
            return self.failover.start(self.provider)
        return FailoverSession(self.provider)

    async def run(
        self,
        subject: str,
        on_event: Optional[EventSink] = None,
        cancel_check: Optional[CancelCheck] = None,
    ) -> AgentResult:
        """Research one subject until a decision is accepted or the run ends"""
        state = _RunState(subject)
        emitter = EventEmitter(on_event)
        session = self._session()

        try:
            result = await self._loop(state, emitter, session, cancel_check)
        except RunCancelled as e:
            self._log(f"Run cancelled after {state.iteration} iteration(s): {e.reason}")
            self._emit_terminal(emitter, state, AgentEventType.CANCELLED, {"reason": e.reason})
            result = state.result(RunStatus.CANCELLED, e.reason)
        except asyncio.CancelledError:
            self._log(f"Run task cancelled after {state.iteration} iteration(s)", "warning")
            self._emit_terminal(emitter, state, AgentEventType.CANCELLED, {"reason": "Task cancelled"})
            self._emit_terminal(
                emitter, state, AgentEventType.COMPLETE,
                {"result": state.result(RunStatus.CANCELLED, "Task cancelled").model_dump(mode="json")},
            )
            raise
        except AgentError as e:
            self._log(f"Run failed on iteration {state.iteration}: {e}", "error")
            self._emit_terminal(emitter, state, AgentEventType.ERROR, {"message": str(e)})
            result = state.result(RunStatus.FAILED, str(e))
        except Exception as e:
            logger.exception(f"Unexpected failure on iteration {state.iteration}")
            self._emit_terminal(emitter, state, AgentEventType.ERROR, {"message": str(e)})
            result = state.result(RunStatus.FAILED, str(e))

        self._emit_terminal(emitter, state, AgentEventType.COMPLETE, {"result": result.model_dump(mode="json")})
        return result

    def _emit_terminal(self, emitter: EventEmitter, state: _RunState, event_type: AgentEventType, data: dict):
        # Terminal events always go out; a cancelling sink cannot stop run() from returning
        try:
            emitter.emit(event_type, data, iteration=state.iteration or None)
        except RunCancelled:
            self._log(f"Ignoring cancellation while emitting {event_type.value}", "debug")

    async def _check_cancel(self, cancel_check: Optional[CancelCheck]):
        if cancel_check is None:
            return
        flag = cancel_check()
        if inspect.isawaitable(flag):
            flag = await flag
        if flag:
            raise RunCancelled()

    async def _loop(
        self,
        state: _RunState,
        emitter: EventEmitter,
        session: FailoverSession,
        cancel_check: Optional[CancelCheck],
    ) -> AgentResult:
        profile = self.profile
        emitter.emit(AgentEventType.AGENT_START, {
            "input": state.subject,
            **self.provider.describe(),
            "variant": profile.name,
            "max_iterations": profile.max_iterations,
            "min_confidence": profile.min_confidence,
            "toolset": profile.toolset.value,
        })
        self._log(f"[{profile.name}] Starting run for: {state.subject}")

        state.transcript.add_user_message(render_instructions(profile, state.subject))

        while True:
            # Cancellation wins over budget exhaustion at the same boundary
            await self._check_cancel(cancel_check)
            if state.iteration >= profile.max_iterations:
                self._log(f"Iteration budget of {profile.max_iterations} exhausted without a decision")
                return state.result(RunStatus.INCOMPLETE)

            state.iteration += 1
            iteration = state.iteration
            emitter.emit(
                AgentEventType.ITERATION_START,
                {"max_iterations": profile.max_iterations},
                iteration=iteration,
            )

            def on_failover(failed: ModelProvider, secondary: ModelProvider, error: BaseException):
                emitter.emit(AgentEventType.PROVIDER_FAILOVER, {
                    "from_provider": failed.provider_name,
                    "from_model": failed.model_id,
                    "to_provider": secondary.provider_name,
                    "to_model": secondary.model_id,
                    "error": str(error),
                }, iteration=iteration)

            response = await session.call_model(
                state.transcript.messages, self.tools, self.options, on_failover=on_failover
            )
            state.usage.add(response.usage)

            text = response.text()
            if text:
                emitter.emit(AgentEventType.THINKING, {"text": text}, iteration=iteration)

            if response.stop_reason == StopReason.MAX_TOKENS:
                raise MaxTokensReached("Hit max_tokens limit.")

            state.transcript.add_assistant_message(response.content)

            tool_uses = response.tool_uses()
            if not tool_uses:
                self._log(f"Iteration {iteration}: no tool calls, nudging", "debug")
                state.transcript.add_user_message(profile.nudge_message)
                continue

            results = []
            for tool_use in tool_uses:
                results.append(await self._handle_tool_use(tool_use, state, emitter))
            state.transcript.add_tool_results(results)

            if state.decision is not None:
                self._log(
                    f"Decision accepted on iteration {iteration}: "
                    f"{state.decision.recommendation.value} ({state.decision.confidence:g}%)"
                )
                return state.result(RunStatus.DECIDED)

    async def _handle_tool_use(
        self,
        tool_use: ToolUseBlock,
        state: _RunState,
        emitter: EventEmitter,
    ) -> ToolResultBlock:
        iteration = state.iteration
        emitter.emit(AgentEventType.TOOL_CALL_START, {
            "tool_name": tool_use.name,
            "tool_use_id": tool_use.id,
            "tool_input": tool_use.input,
        }, iteration=iteration)
        self._log(f"Iteration {iteration}: calling {tool_use.name}", "debug")

        outcome = await self.dispatcher.dispatch(tool_use.name, tool_use.input)
        result: ToolResult = outcome.result
        content = result.model_dump_json(exclude_none=True)

        if outcome.decision is not None and state.decision is None:
            verdict = self.gate.evaluate(outcome.decision)
            if verdict.accepted:
                state.decision = outcome.decision
                emitter.emit(
                    AgentEventType.DECISION_ACCEPTED,
                    {"decision": outcome.decision.model_dump(mode="json")},
                    iteration=iteration,
                )
            else:
                self._log(f"Iteration {iteration}: {self.gate.rejection_summary(verdict)}")
                emitter.emit(AgentEventType.DECISION_REJECTED, {
                    "confidence": verdict.confidence,
                    "threshold": verdict.threshold,
                    "reason": verdict.reason,
                }, iteration=iteration)
                result = ToolResult(
                    success=False,
                    data=self.gate.rejection_payload(verdict),
                    summary=self.gate.rejection_summary(verdict),
                )
                content = self.gate.rejection_content(verdict)

        emitter.emit(AgentEventType.TOOL_CALL_RESULT, {
            "tool_name": tool_use.name,
            "tool_use_id": tool_use.id,
            "success": result.success,
            "summary": result.summary,
            "data": result.data,
        }, iteration=iteration)

        return ToolResultBlock(tool_use_id=tool_use.id, content=content)
