"""Configuration package for c3p1.

This package provides Pydantic configuration models and loading utilities.
"""

from c3p1.core.config.loader import (
    check_unexpanded_vars,
    expand_env_vars,
    expand_env_vars_recursive,
    load_config,
    load_config_or_default,
)
from c3p1.core.config.models import (
    AgentConfig,
    AnthropicConfig,
    Config,
    DatabaseConfig,
    LoggingConfig,
    MemoryConfig,
    PromptTaskDefinition,
    SchedulerConfig,
)

__all__ = [
    # Models
    "AgentConfig",
    "AnthropicConfig",
    "Config",
    "DatabaseConfig",
    "LoggingConfig",
    "MemoryConfig",
    "PromptTaskDefinition",
    "SchedulerConfig",
    # Loaders
    "check_unexpanded_vars",
    "expand_env_vars",
    "expand_env_vars_recursive",
    "load_config",
    "load_config_or_default",
]
