"""Configuration loading for MiniClaw."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import tomli_w
from pydantic import BaseModel, Field, ValidationError

from miniclaw.core.agent_loop import DEFAULT_AGENT_MAX_ITERATIONS
from miniclaw.core.llm.types import DEFAULT_BASE_URL, DEFAULT_MODEL, DEFAULT_SYSTEM_PROMPT, LLMSettings

DEFAULT_CONFIG_DIR = Path(os.environ.get("MINICLAW_HOME", Path.home() / ".miniclaw"))
CONFIG_FILENAME = "config.toml"

# Environment variable -> config field.
ENV_VARS: dict[str, str] = {
    "OLLAMA_HOST": "llm_base_url",
    "OLLAMA_MODEL": "llm_model",
    "DEBUG": "debug",
    "TELEGRAM_BOT_TOKEN": "telegram_bot_token",
    "TELEGRAM_LOCAL_ADDRESS": "telegram_local_address",
    "MINICLAW_MAX_SESSIONS": "max_sessions",
}


class ConfigurationError(RuntimeError):
    """Raised when configuration loading fails."""


class MiniClawConfig(BaseModel):
    """MiniClaw configuration settings."""

    llm_base_url: str = DEFAULT_BASE_URL
    llm_model: str = DEFAULT_MODEL
    llm_timeout_seconds: float | None = 300.0
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    debug: bool = False
    max_iterations: int = Field(default=DEFAULT_AGENT_MAX_ITERATIONS, ge=1)
    max_sessions: int | None = Field(default=None, ge=1)
    telegram_bot_token: str | None = None
    telegram_local_address: str | None = None
    telegram_poll_timeout: int = Field(default=30, ge=0)

    def llm_settings(self) -> LLMSettings:
        return LLMSettings(
            base_url=self.llm_base_url,
            model=self.llm_model,
            system_prompt=self.system_prompt,
            timeout_seconds=self.llm_timeout_seconds,
        )


def _env_flag(raw: str) -> bool:
    return raw.strip().lower() not in {"", "0", "false", "no"}


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for variable, field_name in ENV_VARS.items():
        raw = environ.get(variable)
        if raw is None or raw == "":
            continue
        overrides[field_name] = _env_flag(raw) if field_name == "debug" else raw
    return overrides


class ConfigManager:
    """Loads configuration from defaults, a TOML file, the environment and explicit overrides."""

    def __init__(
        self,
        config_dir: Path | None = None,
        *,
        override_config_path: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.config_dir = config_dir or DEFAULT_CONFIG_DIR
        self.config_path = override_config_path or self.config_dir / CONFIG_FILENAME
        self._environ = os.environ if environ is None else environ

    def load(self, **overrides: Any) -> MiniClawConfig:
        data = self._read_file()
        data.update(_env_overrides(self._environ))
        data.update({key: value for key, value in overrides.items() if value is not None})
        try:
            return MiniClawConfig.model_validate(data)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    def save(self, config: MiniClawConfig) -> Path:
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        payload = config.model_dump(exclude_none=True)
        # Secrets stay in the environment.
        payload.pop("telegram_bot_token", None)
        tmp_path = self.config_path.with_suffix(".toml.tmp")
        tmp_path.write_text(tomli_w.dumps(payload), encoding="utf-8")
        tmp_path.replace(self.config_path)
        return self.config_path

    def _read_file(self) -> dict[str, Any]:
        if not self.config_path.exists():
            return {}
        try:
            with self.config_path.open("rb") as fh:
                return tomllib.load(fh)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ConfigurationError(f"Unable to read {self.config_path}: {exc}") from exc


__all__ = [
    "CONFIG_FILENAME",
    "ConfigManager",
    "ConfigurationError",
    "DEFAULT_CONFIG_DIR",
    "ENV_VARS",
    "MiniClawConfig",
]
