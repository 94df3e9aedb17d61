"""Configuration module"""
from .settings import (
    AgentProfile,
    APIConfig,
    AppConfig,
    FailoverConfig,
    ModelConfig,
    ServiceConfig,
    Toolset,
    load_config,
)

__all__ = [
    "AgentProfile",
    "APIConfig",
    "AppConfig",
    "FailoverConfig",
    "ModelConfig",
    "ServiceConfig",
    "Toolset",
    "load_config",
]
