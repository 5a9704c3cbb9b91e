"""
Configuration for dirqueue.

Two layers:

QueueLayout
  Where everything lives on disk, derived from a single home directory
  (``--home`` / ``DIRQUEUE_HOME``, default ``.dirqueue``).

Settings
  The shared ``settings.json`` document, also read by the channel adapters.
  The coordinator re-reads it for every job so edits take effect without a
  restart. Unknown keys are ignored; per-channel credentials are kept as
  opaque extra data.

    {
      "channels": {"enabled": ["telegram", "discord"], "telegram": {...}},
      "models": {"anthropic": {"model": "sonnet"}},
      "monitoring": {"heartbeat_interval": 3600}
    }
"""
from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, PositiveInt, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_HOME = Path(".dirqueue")
HOME_ENV_VAR = "DIRQUEUE_HOME"

# Model alias → concrete model id passed to the generator.
MODEL_IDS: dict[str, str] = {
    "sonnet": "claude-sonnet-4-5",
    "opus": "claude-opus-4-6",
}

DEFAULT_HEARTBEAT_INTERVAL = 3600


@dataclasses.dataclass(frozen=True)
class QueueLayout:
    """Filesystem layout rooted at `home`."""

    home: Path

    @classmethod
    def from_env(cls, home: str | Path | None = None) -> QueueLayout:
        return cls(Path(home or os.getenv(HOME_ENV_VAR) or DEFAULT_HOME))

    @property
    def queue_dir(self) -> Path:
        return self.home / "queue"

    @property
    def log_dir(self) -> Path:
        return self.home / "logs"

    @property
    def queue_log_file(self) -> Path:
        return self.log_dir / "queue.log"

    @property
    def heartbeat_log_file(self) -> Path:
        return self.log_dir / "heartbeat.log"

    @property
    def settings_file(self) -> Path:
        return self.home / "settings.json"

    @property
    def heartbeat_prompt_file(self) -> Path:
        return self.home / "heartbeat.md"

    @property
    def reset_flag(self) -> Path:
        return self.home / "reset_flag"


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class ChannelSettings(BaseModel):
    # Channel credentials (channels.telegram.bot_token, ...) belong to the
    # adapters; they are carried through as extra data and never inspected.
    model_config = ConfigDict(frozen=True, extra="allow")

    enabled: list[str] = []


class AnthropicSettings(_Section):
    model: str | None = None


class ModelSettings(_Section):
    anthropic: AnthropicSettings = AnthropicSettings()


class MonitoringSettings(_Section):
    heartbeat_interval: PositiveInt = DEFAULT_HEARTBEAT_INTERVAL


class Settings(_Section):
    channels: ChannelSettings = ChannelSettings()
    models: ModelSettings = ModelSettings()
    monitoring: MonitoringSettings = MonitoringSettings()

    def model_id(self) -> str | None:
        """Concrete model id for the configured alias, None if unset or unknown."""
        alias = self.models.anthropic.model
        if not alias:
            return None
        return MODEL_IDS.get(alias)


def load_settings(path: Path) -> Settings:
    """
    Read the settings document.

    A missing file yields defaults. An unreadable or invalid file is logged
    and also yields defaults, so a bad edit never stops the queue.
    """
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        return Settings()
    except OSError as exc:
        logger.error("Cannot read settings %s: %s", path, exc)
        return Settings()
    try:
        return Settings.model_validate_json(data)
    except ValidationError as exc:
        logger.error("Invalid settings %s: %s", path, exc)
        return Settings()
