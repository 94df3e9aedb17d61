"""
Tool dispatcher: maps a tool name to its capability, validates the input
against the tool's pydantic model and always answers with a ToolResult.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, ValidationError

from ..core.errors import RunCancelled, ToolExecutionError
from ..core.protocol import AddressInfo, AgentDecision, ToolResult
from .definitions import DECISION_TOOL, INPUT_MODELS
from .services import ResearchServices

logger = logging.getLogger(__name__)

Executor = Callable[..., Awaitable[ToolResult]]


class DispatchOutcome(BaseModel):
    result: ToolResult
    decision: Optional[AgentDecision] = None


def sanitize_address(value: Any) -> Optional[AddressInfo]:
    """Accept an address object or a bare address string, drop anything else"""
    if not value:
        return None
    if isinstance(value, dict) and "address" in value:
        return AddressInfo.model_validate(value)
    if isinstance(value, str) and value.strip() and "<parameter" not in value:
        return AddressInfo(address=value.strip())
    return None


def parse_decision(payload: dict[str, Any]) -> AgentDecision:
    """Validate a submit_decision payload, tolerating string addresses"""
    data = dict(payload)
    data["home_address"] = sanitize_address(payload.get("home_address"))
    data["office_address"] = sanitize_address(payload.get("office_address"))
    return AgentDecision.model_validate(data)


def _validation_summary(name: str, error: ValidationError) -> str:
    problems = "; ".join(
        f"{'.'.join(str(p) for p in e['loc']) or 'input'}: {e['msg']}" for e in error.errors()
    )
    return f"Invalid input for {name}: {problems}"


class ToolDispatcher:
    """
    Executes tool calls by name.

    dispatch() never raises for tool problems: unknown tools, invalid input
    and capability failures all come back as an unsuccessful ToolResult.
    Only cancellation passes through.
    """

    def __init__(
        self,
        services: ResearchServices,
        decision_tool: str = DECISION_TOOL,
        enable_logging: bool = True,
    ):
        self.services = services
        self.decision_tool = decision_tool
        self.enable_logging = enable_logging
        self.executors: dict[str, Executor] = {}
        for name in INPUT_MODELS:
            method = getattr(services, name, None)
            if method is not None:
                self.executors[name] = method

    def _log(self, message: str, level: str = "info"):
        if self.enable_logging:
            getattr(logger, level)(message)

    def register(self, name: str, executor: Executor):
        """Add or replace the executor for a tool"""
        self.executors[name] = executor

    def can_dispatch(self, name: str) -> bool:
        return name == self.decision_tool or name in self.executors

    async def dispatch(self, name: str, tool_input: dict[str, Any]) -> DispatchOutcome:
        if name == self.decision_tool:
            return self._submit_decision(tool_input)

        executor = self.executors.get(name)
        if executor is None:
            self._log(f"Unknown tool requested: {name}", "warning")
            return DispatchOutcome(result=ToolResult(success=False, summary=f"Unknown tool: {name}"))

        kwargs = tool_input
        model = INPUT_MODELS.get(name)
        if model is not None:
            try:
                kwargs = model.model_validate(tool_input).model_dump(exclude_none=True)
            except ValidationError as e:
                summary = _validation_summary(name, e)
                self._log(summary, "warning")
                return DispatchOutcome(result=ToolResult(success=False, summary=summary, error=str(e)))

        try:
            result = await executor(**kwargs)
        except RunCancelled:
            raise
        except ToolExecutionError as e:
            self._log(f"Tool {name} failed: {e}", "warning")
            result = ToolResult(success=False, summary=str(e), error=str(e))
        except Exception as e:
            logger.exception(f"Tool {name} raised unexpectedly")
            result = ToolResult(success=False, summary=f"{name} failed: {e}", error=repr(e))

        return DispatchOutcome(result=result)

    def _submit_decision(self, tool_input: dict[str, Any]) -> DispatchOutcome:
        try:
            decision = parse_decision(tool_input)
        except ValidationError as e:
            summary = _validation_summary(self.decision_tool, e)
            self._log(summary, "warning")
            return DispatchOutcome(result=ToolResult(success=False, summary=summary, error=str(e)))

        return DispatchOutcome(
            result=ToolResult(
                success=True,
                summary="Decision submitted",
                data=decision.model_dump(mode="json", exclude_none=True),
            ),
            decision=decision,
        )
