"""Configuration loading from environment variables and mindlink.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_DATA_DIR = Path.home() / ".mindlink"
_CONFIG_FILENAME = "mindlink.toml"


@dataclass
class EngineConfig:
    """Configuration for the conversation engine."""

    name: str = "anthropic_api"
    model: str = "claude-sonnet-4-5-20250929"
    plan_model: str = "claude-opus-4-1-20250805"
    max_tokens: int = 4096
    timeout: int = 120
    chat_temperature: float = 0.9
    plan_temperature: float = 0.8


@dataclass
class MindlinkConfig:
    """Top-level Mindlink configuration."""

    engine: EngineConfig = field(default_factory=EngineConfig)
    data_dir: Path = _DEFAULT_DATA_DIR
    history_turns: int = 20
    log_level: str = "INFO"

    @property
    def memories_file(self) -> Path:
        return self.data_dir / "memories.json"

    @property
    def chat_file(self) -> Path:
        return self.data_dir / "chat.json"


def load_config(config_path: Path | None = None) -> MindlinkConfig:
    """Load configuration from environment variables and optional mindlink.toml.

    Priority: environment variables > mindlink.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        for candidate in [Path.cwd() / _CONFIG_FILENAME, _DEFAULT_DATA_DIR / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    engine_data = file_data.get("engine", {})
    defaults = EngineConfig()

    config = MindlinkConfig(
        engine=EngineConfig(
            name=os.getenv("MINDLINK_ENGINE", engine_data.get("name", defaults.name)),
            model=os.getenv("MINDLINK_MODEL", engine_data.get("model", defaults.model)),
            plan_model=os.getenv(
                "MINDLINK_PLAN_MODEL", engine_data.get("plan_model", defaults.plan_model)
            ),
            max_tokens=int(
                os.getenv("MINDLINK_MAX_TOKENS", engine_data.get("max_tokens", defaults.max_tokens))
            ),
            timeout=int(os.getenv("MINDLINK_TIMEOUT", engine_data.get("timeout", defaults.timeout))),
            chat_temperature=float(
                engine_data.get("chat_temperature", defaults.chat_temperature)
            ),
            plan_temperature=float(
                engine_data.get("plan_temperature", defaults.plan_temperature)
            ),
        ),
        data_dir=Path(
            os.getenv("MINDLINK_DATA_DIR", file_data.get("data_dir", str(_DEFAULT_DATA_DIR)))
        ).expanduser(),
        history_turns=int(file_data.get("history_turns", 20)),
        log_level=os.getenv("MINDLINK_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
