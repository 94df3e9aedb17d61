"""
Configuration settings for the Address Verification Agent
Credentials come from the environment, everything else has a sane default.
"""

import os
from enum import Enum
from pathlib import Path
from pydantic import BaseModel, Field
from typing import Any, Optional


DEFAULT_MODEL = "bedrock::global.anthropic.claude-sonnet-4-5-20250929-v1:0"


class Toolset(str, Enum):
    """Which tool registry a variant advertises"""
    BASE = "base"
    EXPERIMENTAL = "experimental"


class ModelConfig(BaseModel):
    """Model provider configuration"""
    # "<provider>::<model_id>", a bare model id means bedrock
    model: str = DEFAULT_MODEL

    # AWS credentials for Bedrock
    aws_region: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None

    # OpenAI credentials
    openai_api_key: Optional[str] = None

    # Used by the one-shot chat capability
    chat_max_tokens: int = 4096


class ServiceConfig(BaseModel):
    """Credentials and limits for the research tool backends"""
    bright_data_api_key: Optional[str] = None
    linkedin_dataset_id: str = "gd_l1viktl72bvl7bjuj0"

    whitepages_api_key: Optional[str] = None
    endato_api_name: Optional[str] = None
    endato_api_password: Optional[str] = None

    exa_api_key: Optional[str] = None
    propmix_access_token: Optional[str] = None
    google_maps_api_key: Optional[str] = None

    # Experimental sources
    fec_api_key: str = "DEMO_KEY"
    opencorporates_api_key: Optional[str] = None
    census_api_key: Optional[str] = None

    # Per-request timeout in seconds
    timeout: float = 30.0

    # Truncate web search text to avoid burning context
    max_text_per_result: int = 1500

    # Bright Data snapshot polling (~20 seconds total)
    poll_attempts: int = 10
    poll_interval: float = 2.0


class FailoverConfig(BaseModel):
    """Single-shot provider failover on rate limits"""
    enabled: bool = False
    secondary_model: str = "openai::gpt-4o"


class AgentProfile(BaseModel):
    """
    Everything that distinguishes one agent variant from another.
    The loop itself never changes between variants.
    """
    name: str
    max_iterations: int = Field(default=15, ge=1)
    max_tokens_per_call: int = Field(default=8192, ge=1)
    temperature: float = 0.3

    # Decisions below this confidence are rejected
    min_confidence: float = Field(default=75, ge=0, le=100)

    toolset: Toolset = Toolset.BASE
    decision_tool: str = "submit_decision"

    # {{agent_prompt}} and {{input}} are substituted into the template
    agent_prompt: str = ""
    instruction_template: str = "{{agent_prompt}}\n\nTarget: {{input}}"

    nudge_message: str = (
        "You must call tools to gather evidence. "
        "Start by searching for the person and company."
    )
    rejection_hint: str = "Gather more evidence and try again."

    # Per-tool description overrides, keyed by tool name
    tool_descriptions: dict[str, str] = {}

    failover: FailoverConfig = FailoverConfig()


class APIConfig(BaseModel):
    """API server configuration"""
    host: str = "127.0.0.1"
    port: int = 8000

    # Enable request logging
    enable_logging: bool = True

    # Log directory
    log_dir: str = "./logs"


class AppConfig(BaseModel):
    """Complete application configuration"""
    model: ModelConfig = ModelConfig()
    services: ServiceConfig = ServiceConfig()
    api: APIConfig = APIConfig()

    default_variant: str = "streaming"

    # Field overrides applied on top of the built-in variants
    variant_overrides: dict[str, dict[str, Any]] = {}

    @classmethod
    def from_env(cls, base: Optional["AppConfig"] = None) -> "AppConfig":
        """Fill credentials from environment variables"""
        cfg = (base or cls()).model_copy(deep=True)
        env = os.environ

        model = env.get("AGENT_MODEL")
        if model:
            cfg.model.model = model
        elif env.get("BEDROCK_MODEL_ID"):
            cfg.model.model = env["BEDROCK_MODEL_ID"]

        cfg.model.aws_region = env.get("AWS_REGION", cfg.model.aws_region)
        cfg.model.aws_access_key_id = env.get("AWS_ACCESS_KEY_ID", cfg.model.aws_access_key_id)
        cfg.model.aws_secret_access_key = env.get(
            "AWS_SECRET_ACCESS_KEY", cfg.model.aws_secret_access_key
        )
        cfg.model.openai_api_key = env.get("OPENAI_API_KEY", cfg.model.openai_api_key)

        svc = cfg.services
        svc.bright_data_api_key = env.get("BRIGHT_DATA_API_KEY", svc.bright_data_api_key)
        svc.whitepages_api_key = env.get("WHITEPAGES_API_KEY", svc.whitepages_api_key)
        svc.endato_api_name = env.get("ENDATO_API_NAME", svc.endato_api_name)
        svc.endato_api_password = env.get("ENDATO_API_PASSWORD", svc.endato_api_password)
        svc.exa_api_key = env.get("EXA_AI_KEY", svc.exa_api_key)
        svc.propmix_access_token = env.get("PROPMIX_ACCESS_TOKEN", svc.propmix_access_token)
        svc.google_maps_api_key = env.get("GOOGLE_SEARCH_API_KEY", svc.google_maps_api_key)
        svc.fec_api_key = env.get("FEC_API_KEY", svc.fec_api_key)
        svc.opencorporates_api_key = env.get("OPENCORPORATES_API_KEY", svc.opencorporates_api_key)
        svc.census_api_key = env.get("CENSUS_API_KEY", svc.census_api_key)

        return cfg


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load configuration from a JSON file (if given) and the environment"""
    config = AppConfig()
    if config_path and config_path.exists():
        import json
        with open(config_path) as f:
            data = json.load(f)
        config = AppConfig(**data)
    return AppConfig.from_env(config)
