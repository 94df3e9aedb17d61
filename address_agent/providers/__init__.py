"""Model provider adapters and the provider factory"""
from typing import Optional

from pydantic import BaseModel

from config.settings import ModelConfig

from ..core.errors import ConfigurationError
from ..core.llm_interface import ModelProvider
from .bedrock import BedrockProvider
from .openai_chat import OpenAIProvider


PROVIDERS = ("bedrock", "openai")


class ModelSpec(BaseModel):
    provider: str
    model_id: str
    label: str = ""


AVAILABLE_MODELS: list[ModelSpec] = [
    # Bedrock Claude
    ModelSpec(provider="bedrock", model_id="global.anthropic.claude-sonnet-4-5-20250929-v1:0", label="Claude Sonnet 4.5"),
    ModelSpec(provider="bedrock", model_id="anthropic.claude-sonnet-4-20250514-v1:0", label="Claude Sonnet 4"),
    ModelSpec(provider="bedrock", model_id="anthropic.claude-opus-4-20250514-v1:0", label="Claude Opus 4"),
    ModelSpec(provider="bedrock", model_id="us.anthropic.claude-opus-4-20250514-v1:0", label="Claude Opus 4 (US)"),
    # OpenAI
    ModelSpec(provider="openai", model_id="gpt-5", label="GPT-5"),
    ModelSpec(provider="openai", model_id="gpt-5-mini", label="GPT-5 Mini"),
    ModelSpec(provider="openai", model_id="gpt-4o", label="GPT-4o"),
    ModelSpec(provider="openai", model_id="gpt-4o-mini", label="GPT-4o Mini"),
    ModelSpec(provider="openai", model_id="o3", label="o3"),
    ModelSpec(provider="openai", model_id="o4-mini", label="o4 Mini"),
]


def parse_model_config(value: str) -> ModelSpec:
    """Parse "<provider>::<model_id>". A bare model id is a Bedrock model."""
    parts = value.split("::")
    if len(parts) == 2 and parts[0] in PROVIDERS:
        return ModelSpec(provider=parts[0], model_id=parts[1])
    return ModelSpec(provider="bedrock", model_id=value)


def serialize_model_config(provider: str, model_id: str) -> str:
    return f"{provider}::{model_id}"


def create_provider(
    provider: str,
    model_id: str,
    config: Optional[ModelConfig] = None,
) -> ModelProvider:
    """Build a provider adapter. Raises ConfigurationError on bad input."""
    config = config or ModelConfig()
    if not model_id:
        raise ConfigurationError("Model id is required")

    if provider == "bedrock":
        return BedrockProvider(
            model_id,
            region=config.aws_region,
            access_key_id=config.aws_access_key_id,
            secret_access_key=config.aws_secret_access_key,
        )
    if provider == "openai":
        return OpenAIProvider(model_id, api_key=config.openai_api_key)

    raise ConfigurationError(f"Unknown AI provider: {provider}")


def provider_from_config(config: ModelConfig, model: Optional[str] = None) -> ModelProvider:
    spec = parse_model_config(model or config.model)
    return create_provider(spec.provider, spec.model_id, config)


__all__ = [
    "AVAILABLE_MODELS",
    "BedrockProvider",
    "ModelSpec",
    "OpenAIProvider",
    "create_provider",
    "parse_model_config",
    "provider_from_config",
    "serialize_model_config",
]
