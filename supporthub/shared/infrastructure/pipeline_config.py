"""
Pipeline YAML Configuration
===========================

List-valued pipeline tunables that do not fit in environment variables.
Loaded once at startup; rules and policies themselves live in the database.
"""

import threading
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from supporthub.core import ConfigurationException
from supporthub.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class PipelineConfig(BaseModel):
    """Validated contents of the pipeline YAML file."""

    ignored_senders: List[str] = Field(
        default_factory=list,
        description="Shell-style sender patterns skipped by every mailbox"
    )

    @field_validator("ignored_senders")
    @classmethod
    def normalize_patterns(cls, v: List[str]) -> List[str]:
        return [p.strip().lower() for p in v if p and p.strip()]


class PipelineConfigManager:
    """Thread-safe holder for the loaded pipeline configuration."""

    def __init__(self):
        self._config: Optional[PipelineConfig] = None
        self._lock = threading.Lock()
        self._path: Optional[Path] = None

    def load(self, path: Path) -> PipelineConfig:
        """Load (or reload) configuration from ``path``."""
        config = self._load_from_file(path)
        with self._lock:
            self._path = path
            self._config = config
        return config

    def _load_from_file(self, path: Path) -> PipelineConfig:
        if not path.exists():
            logger.warning(
                "Pipeline config file not found, using defaults",
                extra={"path": str(path)}
            )
            return PipelineConfig()

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
            return PipelineConfig(**data)
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigurationException(
                f"Invalid pipeline config {path}: {e}", {"path": str(path)}
            ) from e

    @property
    def config(self) -> PipelineConfig:
        """Get current configuration."""
        with self._lock:
            if self._config is None:
                raise RuntimeError("Pipeline configuration not loaded")
            return self._config
