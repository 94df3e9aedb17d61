"""
Provider failover on rate limits.

A FailoverSession wraps the primary provider for one run. The first
rate-limited call switches the session to a secondary provider and retries
once; after that the secondary stays active and every error propagates.
"""

import logging
from typing import Callable, Optional, Sequence

from .llm_interface import ModelProvider
from .protocol import Message, ModelOptions, ModelResponse, ToolDefinition

logger = logging.getLogger(__name__)


RATE_LIMIT_SIGNATURES = ("too many tokens", "throttlingexception", "rate limit", "ratelimit", "429")
RATE_LIMIT_CLASS_NAMES = ("RateLimitError", "ThrottlingException")


def _cause_chain(error: BaseException):
    seen = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def is_rate_limit_error(error: BaseException) -> bool:
    """True when the error, or anything in its cause chain, looks like a rate limit"""
    for exc in _cause_chain(error):
        if type(exc).__name__ in RATE_LIMIT_CLASS_NAMES:
            return True
        text = str(exc).lower()
        if any(sig in text for sig in RATE_LIMIT_SIGNATURES):
            return True
    return False


FailoverCallback = Callable[[ModelProvider, ModelProvider, BaseException], None]


class FailoverSession:
    """Per-run provider holder. Never shared between runs."""

    def __init__(self, primary: ModelProvider, secondary_factory: Optional[Callable[[], ModelProvider]] = None):
        self.primary = primary
        self.active = primary
        self._secondary_factory = secondary_factory
        self.switched = False

    async def call_model(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition],
        options: Optional[ModelOptions] = None,
        on_failover: Optional[FailoverCallback] = None,
    ) -> ModelResponse:
        try:
            return await self.active.call_model(messages, tools, options)
        except Exception as e:
            if self.switched or self._secondary_factory is None or not is_rate_limit_error(e):
                raise
            failed = self.active
            secondary = self._secondary_factory()
            logger.warning(f"{failed!r} rate limited, failing over to {secondary!r}: {e}")
            self.active = secondary
            self.switched = True
            if on_failover is not None:
                on_failover(failed, secondary, e)
            return await secondary.call_model(messages, tools, options)


class FailoverPolicy:
    """Builds a FailoverSession for each run"""

    def __init__(self, secondary_factory: Callable[[], ModelProvider]):
        self.secondary_factory = secondary_factory

    def start(self, primary: ModelProvider) -> FailoverSession:
        return FailoverSession(primary, self.secondary_factory)
