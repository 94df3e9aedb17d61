"""
Built-in agent variants. A variant is configuration only: every variant runs
the same orchestrator loop.
"""

from typing import Any, Optional

from config.settings import AgentProfile, Toolset

from . import prompts
from .core.errors import ConfigurationError


VARIANTS: dict[str, AgentProfile] = {
    "standard": AgentProfile(
        name="standard",
        max_iterations=15,
        toolset=Toolset.BASE,
        agent_prompt=prompts.STANDARD_PROMPT,
        instruction_template=prompts.STANDARD_TEMPLATE,
        nudge_message=prompts.DEFAULT_NUDGE,
    ),
    "streaming": AgentProfile(
        name="streaming",
        max_iterations=30,
        toolset=Toolset.BASE,
        agent_prompt=prompts.DELIVERY_SPECIALIST_PROMPT,
        instruction_template=prompts.DELIVERY_SPECIALIST_TEMPLATE,
        nudge_message=prompts.DEFAULT_NUDGE,
    ),
    "experimental": AgentProfile(
        name="experimental",
        max_iterations=20,
        toolset=Toolset.EXPERIMENTAL,
        agent_prompt=prompts.EXPERIMENTAL_PROMPT,
        instruction_template=prompts.EXPERIMENTAL_TEMPLATE,
        nudge_message=prompts.EXPERIMENTAL_NUDGE,
    ),
}


def get_variant(name: str, overrides: Optional[dict[str, dict[str, Any]]] = None) -> AgentProfile:
    """Look up a variant and apply any configured field overrides"""
    base = VARIANTS.get(name)
    if base is None:
        raise ConfigurationError(f"Unknown agent variant: {name} (expected one of {', '.join(VARIANTS)})")

    changes = (overrides or {}).get(name)
    if not changes:
        return base.model_copy(deep=True)
    return AgentProfile.model_validate({**base.model_dump(), **changes, "name": name})


def list_variants(overrides: Optional[dict[str, dict[str, Any]]] = None) -> list[dict[str, Any]]:
    """Summary of each variant, overrides applied"""
    summaries = []
    for name in VARIANTS:
        p = get_variant(name, overrides)
        summaries.append({
            "name": p.name,
            "max_iterations": p.max_iterations,
            "min_confidence": p.min_confidence,
            "toolset": p.toolset.value,
        })
    return summaries
