"""Shared fakes for the test suite"""

from typing import Optional

from address_agent.core.llm_interface import ModelProvider
from address_agent.core.orchestrator import Orchestrator
from address_agent.core.protocol import (
    ModelResponse,
    StopReason,
    TextBlock,
    ToolResult,
    ToolUseBlock,
    Usage,
)
from address_agent.tools import ToolDispatcher, build_tool_definitions
from config.settings import AgentProfile, Toolset


class ScriptedProvider(ModelProvider):
    """Replays a fixed list of responses (or raises listed exceptions)"""

    provider_name = "fake"

    def __init__(self, script, model_id: str = "fake-model"):
        super().__init__(model_id)
        self.script = list(script)
        self.calls = []

    async def call_model(self, messages, tools, options=None):
        self.calls.append([m.model_copy(deep=True) for m in messages])
        if not self.script:
            raise AssertionError("Unexpected model call")
        step = self.script.pop(0)
        if isinstance(step, BaseException):
            raise step
        return step

    async def chat(self, system_prompt, messages, options=None):
        return "ok"


class FakeServices:
    """Stands in for ResearchServices with a single web search capability"""

    def __init__(self):
        self.queries = []

    async def search_web(self, query: str, category: str = "auto", num_results: int = 5) -> ToolResult:
        self.queries.append(query)
        return ToolResult(success=True, data=[], summary=f'0 web results for "{query}"')

    async def aclose(self):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()


def text_response(text: str = "Let me think.", usage: Optional[Usage] = None) -> ModelResponse:
    return ModelResponse(content=[TextBlock(text=text)], stop_reason=StopReason.END_TURN, usage=usage)


def tool_response(*calls, text: Optional[str] = None, usage: Optional[Usage] = None) -> ModelResponse:
    """calls are (id, name, input) tuples"""
    content = [TextBlock(text=text)] if text else []
    content += [ToolUseBlock(id=i, name=n, input=inp) for i, n, inp in calls]
    return ModelResponse(content=content, stop_reason=StopReason.TOOL_USE, usage=usage)


def search_call(tool_id: str = "t1", query: str = "Acme Corp office address"):
    return (tool_id, "search_web", {"query": query})


def decision_call(tool_id: str, confidence: float, recommendation: str = "HOME"):
    return (tool_id, "submit_decision", {
        "recommendation": recommendation,
        "confidence": confidence,
        "reasoning": "Ownership confirmed and the person works remotely.",
        "home_address": "12 Elm St, Nashville, TN 37205",
    })


def make_profile(max_iterations: int = 10, min_confidence: float = 75, **kwargs) -> AgentProfile:
    return AgentProfile(
        name="test",
        max_iterations=max_iterations,
        min_confidence=min_confidence,
        agent_prompt="Find the address.",
        **kwargs,
    )


def make_orchestrator(script, failover=None, **profile_kwargs):
    provider = ScriptedProvider(script)
    services = FakeServices()
    profile = make_profile(**profile_kwargs)
    orchestrator = Orchestrator(
        provider,
        profile,
        ToolDispatcher(services),
        build_tool_definitions(Toolset.BASE),
        failover=failover,
        enable_logging=False,
    )
    return orchestrator, provider, services
