"""Configuration models using Pydantic."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WatcherConfig(BaseModel):
    """Change-detection timing."""

    settle_delay: float = Field(default=1.0, ge=0)  # Wait after mount/navigation before scanning
    debounce_window: float = Field(default=0.5, ge=0)
    periodic_interval: float = Field(default=30.0, gt=0)  # Fallback rescan
    occlusion_skip_threshold: int = Field(default=0, ge=0)  # 0 = never skip the hit test


class IdentityConfig(BaseModel):
    """Target id generation."""

    random_suffix_length: int = Field(default=6, ge=4, le=16)
    max_collision_retries: int = Field(default=8, ge=1)


class SyncConfig(BaseModel):
    """Sync gateway configuration."""

    enabled: bool = False
    base_url: str = "http://localhost:3000"
    endpoint: str = "/api/ai-component-map/update"
    timeout: float = Field(default=10.0, gt=0)


class LogConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    structured: bool = False


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AITARGET_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    watcher: WatcherConfig = Field(default_factory=WatcherConfig)
    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logs: LogConfig = Field(default_factory=LogConfig)

    @classmethod
    def from_yaml(cls, path: Path | str) -> Config:
        """Load configuration from YAML file."""
        import yaml

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with path.open() as f:
            data = yaml.safe_load(f)

        return cls(**data) if data else cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Create configuration from dictionary."""
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return self.model_dump()

    def to_yaml(self, path: Path | str) -> None:
        """Save configuration to YAML file."""
        import yaml

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with path.open("w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False)
