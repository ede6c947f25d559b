"""
SLA Infrastructure Layer
=========================

Infrastructure implementations for SLA monitoring:
- Models: SQLAlchemy ORM models
- Repositories: Data access layer
- External: Slack notification sink
"""

from supporthub.sla.infrastructure.external import SlackNotificationSink
from supporthub.sla.infrastructure.models import (
    SlaBreachRecordModel,
    SlaPolicyModel,
    SlaWarningRecordModel,
)
from supporthub.sla.infrastructure.repositories import (
    SQLAlchemySlaPolicyRepository,
    SQLAlchemySlaRecordRepository,
)

__all__ = [
    "SlaPolicyModel",
    "SlaBreachRecordModel",
    "SlaWarningRecordModel",
    "SQLAlchemySlaPolicyRepository",
    "SQLAlchemySlaRecordRepository",
    "SlackNotificationSink",
]
