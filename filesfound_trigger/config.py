"""filesfound-trigger — Configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. Environment variables prefixed with FILESFOUND_
    3. System config: /etc/filesfound/config.yaml
    4. User config:   ~/.filesfound/config.yaml
    5. An explicit ``--config`` file

Top-level blocks read from files replace the environment's value for
that block as a whole.

Call ``Settings.load()`` once at startup and pass the instance down to the
daemon, the agent app and the node registry.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    format: Literal["json", "console"] = "console"
    file: Path | None = None


class AgentConfig(BaseModel):
    """The scan agent served on remote nodes (``filesfound agent start``)."""

    host: str = "127.0.0.1"
    port: int = Field(default=40100, ge=1024, le=65535)
    log_level: Literal["debug", "info", "warning", "error"] = "info"
    api_token: str | None = Field(
        default=None,
        description="Token required in the X-FilesFound-Token header. None = no auth.",
    )


class NodeEntry(BaseModel):
    """A remote execution location reachable through its scan agent."""

    url: str = Field(description="Base URL of the node's scan agent, e.g. http://build-02:40100.")
    api_token: str | None = None
    timeout_seconds: Annotated[float, Field(ge=1.0, le=3600.0)] = Field(
        default=60.0,
        description="Upper bound for one remote scan round-trip.",
    )
    health_timeout_seconds: Annotated[float, Field(ge=0.1, le=60.0)] = Field(
        default=5.0,
        description="Timeout of the reachability probe made before each scan.",
    )

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")


class TriggerConfig(BaseModel):
    """Settings of the trigger daemon."""

    db_path: Path = Field(
        default=Path("~/.filesfound/jobs.db"),
        description="SQLite database holding job definitions and build records.",
    )
    quiet_period_seconds: Annotated[int, Field(ge=0, le=86_400)] = Field(
        default=0,
        description="Delay between a trigger firing and its build becoming runnable.",
    )
    scan_timeout_seconds: Annotated[float, Field(ge=1.0, le=86_400.0)] = Field(
        default=300.0,
        description="Maximum duration of one tick; the scan is cancelled past this bound.",
    )
    max_concurrent_builds: Annotated[int, Field(ge=1, le=64)] = 2
    dispatch_interval_seconds: Annotated[float, Field(ge=0.05, le=60.0)] = 1.0
    global_properties: dict[str, str] = Field(
        default_factory=dict,
        description=(
            "Host-wide properties used for $name / ${name} expansion. "
            "They override process environment variables of the same name."
        ),
    )

    @field_validator("db_path", mode="before")
    @classmethod
    def expand_db_path(cls, v: object) -> object:
        if isinstance(v, str):
            return Path(v).expanduser()
        return v


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FILESFOUND_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    triggers: TriggerConfig = Field(default_factory=TriggerConfig)
    nodes: dict[str, NodeEntry] = Field(default_factory=dict)

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from files + environment variables."""
        data: dict[str, object] = {}

        candidates = [
            Path("/etc/filesfound/config.yaml"),
            Path.home() / ".filesfound" / "config.yaml",
        ]
        if config_file:
            candidates.append(config_file)

        for path in candidates:
            if path.exists():
                with path.open() as f:
                    loaded = yaml.safe_load(f) or {}
                    data.update(loaded)

        return cls(**data)


# Module-level singleton — replaced by ``Settings.load()`` at startup.
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def override_settings(settings: Settings) -> None:
    """Replace the module-level singleton. Used in tests."""
    global _settings
    _settings = settings
