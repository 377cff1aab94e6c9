"""Conversation engine backends."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mindlink.engines.base import AgentResponse, Engine, EngineError

if TYPE_CHECKING:
    from mindlink.config import EngineConfig

__all__ = ["AgentResponse", "Engine", "EngineError", "build_engine"]


def build_engine(config: EngineConfig) -> Engine:
    """Instantiate the engine named in the configuration."""
    if config.name == "anthropic_api":
        from mindlink.engines.anthropic_api import AnthropicAPIEngine

        return AnthropicAPIEngine(
            model=config.model,
            max_tokens=config.max_tokens,
            timeout=config.timeout,
        )
    raise ValueError(f"Unknown engine: {config.name}")
