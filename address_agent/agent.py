"""
Agent assembly: builds an orchestrator for a variant from the application
config, and runs it for one subject.
"""

import logging
from typing import Optional

from config.settings import AppConfig, ServiceConfig, Toolset

from .core.events import EventSink
from .core.failover import FailoverPolicy
from .core.llm_interface import ModelProvider
from .core.orchestrator import CancelCheck, Orchestrator
from .core.protocol import AgentResult
from .providers import provider_from_config
from .tools import ExperimentalServices, ResearchServices, ToolDispatcher, build_tool_definitions
from .variants import get_variant

logger = logging.getLogger(__name__)


def create_services(toolset: Toolset, settings: Optional[ServiceConfig] = None) -> ResearchServices:
    """Data-source services backing a toolset"""
    if Toolset(toolset) == Toolset.EXPERIMENTAL:
        return ExperimentalServices(settings)
    return ResearchServices(settings)


def create_orchestrator(
    variant: Optional[str] = None,
    config: Optional[AppConfig] = None,
    provider: Optional[ModelProvider] = None,
    services: Optional[ResearchServices] = None,
    model: Optional[str] = None,
    enable_logging: bool = True,
) -> Orchestrator:
    """
    Wire provider, dispatcher, tools and failover for a variant.

    Raises ConfigurationError for an unknown variant or missing credentials,
    before any run starts.
    """
    config = config or AppConfig.from_env()
    profile = get_variant(variant or config.default_variant, config.variant_overrides)

    if provider is None:
        provider = provider_from_config(config.model, model)
    if services is None:
        services = create_services(profile.toolset, config.services)

    failover = None
    if profile.failover.enabled:
        # Built now so missing secondary credentials fail before any run
        secondary = provider_from_config(config.model, profile.failover.secondary_model)
        failover = FailoverPolicy(lambda: secondary)

    dispatcher = ToolDispatcher(services, profile.decision_tool, enable_logging=enable_logging)
    tools = build_tool_definitions(profile.toolset, profile.tool_descriptions)

    logger.debug(f"Built {profile.name} orchestrator with {len(tools)} tools on {provider!r}")
    return Orchestrator(
        provider,
        profile,
        dispatcher,
        tools,
        failover=failover,
        enable_logging=enable_logging,
    )


async def run_agent(
    subject: str,
    on_event: Optional[EventSink] = None,
    variant: Optional[str] = None,
    config: Optional[AppConfig] = None,
    cancel_check: Optional[CancelCheck] = None,
    model: Optional[str] = None,
) -> AgentResult:
    """Build an orchestrator, run it once and release its HTTP client"""
    orchestrator = create_orchestrator(variant, config, model=model)
    async with orchestrator.dispatcher.services:
        return await orchestrator.run(subject, on_event=on_event, cancel_check=cancel_check)
