"""
Infrastructure Layer
=====================

Low-level technical concerns:
- Logging setup
- Audit sink
- Pipeline YAML configuration
- Periodic job scheduling
"""

from supporthub.shared.infrastructure.audit import AuditLogModel, SQLAlchemyAuditSink
from supporthub.shared.infrastructure.pipeline_config import (
    PipelineConfig,
    PipelineConfigManager,
)
from supporthub.shared.infrastructure.resilience import CircuitBreaker, CircuitState
from supporthub.shared.infrastructure.scheduler import PipelineScheduler

__all__ = [
    "AuditLogModel",
    "SQLAlchemyAuditSink",
    "PipelineConfig",
    "PipelineConfigManager",
    "CircuitBreaker",
    "CircuitState",
    "PipelineScheduler",
]
