"""Configuration schema and loader."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, PrivateAttr, ValidationError

from mimic.utils.errors import ConfigurationError

DEFAULT_LIMIT = 150


class TeamConfig(BaseModel):
    """Configuration for one bot instance (one Slack team)."""
    token: str | None = None
    name: str | None = None
    connection: str | None = None  # SQLite path; relative paths resolve against the config file
    limit: int | None = Field(default=None, ge=1)
    ignored_subtypes: list[str] = Field(default_factory=lambda: ["file_share"])
    reconnect_delay: float = Field(default=5.0, ge=0)

    def missing_fields(self) -> list[str]:
        return [key for key in ("token", "name", "connection") if not getattr(self, key)]


class Config(BaseModel):
    """Root configuration.

    Team entries stay raw until `parse_team`, so one bad team cannot keep the others from starting.
    """
    limit: int = Field(default=DEFAULT_LIMIT, ge=1)
    log_level: str = "INFO"
    teams: list[Any] = Field(default_factory=list)
    _config_dir: Path = PrivateAttr(default_factory=lambda: Path.cwd())

    def parse_team(self, raw: Any) -> TeamConfig:
        """Validate one team entry, with its store address resolved."""
        if not isinstance(raw, dict):
            raise ConfigurationError(f"team entry must be a mapping, got {type(raw).__name__}")
        try:
            team = TeamConfig(**raw)
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise ConfigurationError(f"invalid team settings: {fields}", cause=e) from e
        return team.model_copy(update={"connection": self.connection_path(team)})

    def team_limit(self, team: TeamConfig) -> int:
        return team.limit or self.limit

    def connection_path(self, team: TeamConfig) -> str | None:
        """Resolve a team's store address relative to the config file directory."""
        if not team.connection or team.connection == ":memory:":
            return team.connection
        path = Path(team.connection).expanduser()
        if not path.is_absolute():
            path = self._config_dir / path
        return str(path.resolve())


def load_config(path: str | Path = "config.yaml") -> Config:
    """Load config from YAML file."""
    p = Path(path).expanduser()
    resolved_path = p.resolve()
    if p.exists():
        with open(resolved_path) as f:
            data = yaml.safe_load(f) or {}
        config = Config(**data)
    else:
        config = Config()
    config._config_dir = resolved_path.parent
    return config
