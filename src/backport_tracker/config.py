"""Configuration management for the backport tracker."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = Path("config.yaml")

DEFAULT_JQL = (
    'project = OCPBUGS AND component = Hypershift AND "Target Version" = 4.19.0 AND "Target Backport Versions" is not EMPTY'
)


class JiraConfig(BaseModel):
    """Jira connection settings."""

    url: str = Field(default="https://issues.redhat.com", description="Jira instance URL")
    token: str | None = Field(default=None, description="Personal access token (falls back to JIRA_TOKEN env var)")
    timeout: float = Field(default=30.0, description="Per-request timeout in seconds", gt=0)
    max_retries: int = Field(default=5, description="Retries for rate-limited (429) requests", ge=0)
    initial_backoff: float = Field(default=1.0, description="First backoff wait in seconds, doubled per retry", ge=0)


class MongoConfig(BaseModel):
    """MongoDB settings."""

    uri: str = Field(default="mongodb://localhost:27017", description="MongoDB connection URI")
    database: str = Field(default="backports", description="Database name")
    collection: str = Field(default="issues", description="Collection holding issue snapshots")
    timeout: float = Field(default=10.0, description="Per-operation timeout in seconds", gt=0)


class ServerConfig(BaseModel):
    """Document API server settings."""

    host: str = "0.0.0.0"  # nosec B104
    port: int = Field(default=8080, ge=1, le=65535)
    static_dir: Path | None = Field(default=Path("ui"), description="Directory served at / if it exists")


class SyncConfig(BaseModel):
    """What to sync and how deep to follow clone chains."""

    jql: str = Field(default=DEFAULT_JQL, description="Tracking query selecting the root issues")
    page_size: int = Field(default=50, description="Issues per search page", gt=0)
    max_depth: int = Field(default=6, description="Deepest clone level fetched (root is 0)", ge=0)
    target_version_field: str = Field(default="customfield_12319940", description="Custom field id of Target Version")
    backport_versions_field: str = Field(
        default="customfield_12323940",
        description="Custom field id of Target Backport Versions",
    )


class Config(BaseModel):
    """Backport tracker configuration."""

    jira: JiraConfig = Field(default_factory=JiraConfig)
    mongodb: MongoConfig = Field(default_factory=MongoConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)

    @classmethod
    def load(cls, config_path: Path | None = None) -> Config:
        """Load configuration from file or use defaults."""
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        if config_path.exists():
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
            return cls.model_validate(data)

        return cls()

    def save(self, config_path: Path) -> None:
        """Save configuration to file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with config_path.open("w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)
