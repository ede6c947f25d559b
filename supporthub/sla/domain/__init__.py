"""
SLA Domain Layer
================

Domain layer for SLA monitoring module.

Contains:
- Entities: policies, clock/ticket status, breach and warning records
- Value Objects: urgency thresholds
- Domain Services: the stateless SLA evaluator

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from supporthub.sla.domain.entities import (
    ClockStatus,
    SlaBreachRecord,
    SlaMonitorRunSummary,
    SlaPolicy,
    SlaStatus,
    SlaWarningRecord,
)
from supporthub.sla.domain.value_objects import SlaEvaluator, UrgencyThresholds

__all__ = [
    # Entities
    "ClockStatus",
    "SlaBreachRecord",
    "SlaMonitorRunSummary",
    "SlaPolicy",
    "SlaStatus",
    "SlaWarningRecord",
    # Value Objects & Services
    "SlaEvaluator",
    "UrgencyThresholds",
]
