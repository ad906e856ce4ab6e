"""Model call layer: builds the chat model used by the conversation loop."""

import logging

from langchain_anthropic import ChatAnthropic

from c3p1.agent.tools import MEMORY_TOOL_BETA
from c3p1.core.config import AnthropicConfig

logger = logging.getLogger(__name__)


def create_chat_model(config: AnthropicConfig) -> ChatAnthropic:
    """Create the Anthropic chat model.

    Transient upstream failures (rate limits, overload, connection errors)
    are retried inside the Anthropic SDK with exponential backoff, up to
    `config.max_retries` attempts, before surfacing to the caller.

    Args:
        config: Model call configuration.

    Returns:
        Configured ChatAnthropic instance (tools are bound by the caller).
    """
    kwargs = {
        "model": config.model,
        "max_tokens": config.max_tokens,
        "max_retries": config.max_retries,
        "timeout": config.timeout_seconds,
        # Required for the built-in memory tool
        "betas": [MEMORY_TOOL_BETA],
    }
    if config.api_key:
        kwargs["api_key"] = config.api_key

    logger.info(f"Creating ChatAnthropic: model={config.model}, max_retries={config.max_retries}")
    return ChatAnthropic(**kwargs)
