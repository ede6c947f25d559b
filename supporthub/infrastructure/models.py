"""
Model registry.

Importing this module registers every ORM model on ``Base.metadata``.
"""

from supporthub.ingestion.infrastructure.models import InboundMessageRecordModel
from supporthub.routing.infrastructure.models import RoutingRuleModel
from supporthub.shared.infrastructure.audit import AuditLogModel
from supporthub.sla.infrastructure.models import (
    SlaBreachRecordModel,
    SlaPolicyModel,
    SlaWarningRecordModel,
)
from supporthub.tenancy.infrastructure.models import MailboxModel, QueueModel, TenantModel
from supporthub.tickets.infrastructure.models import (
    TicketAttachmentModel,
    TicketMessageModel,
    TicketModel,
    TicketTagModel,
)

__all__ = [
    "TenantModel",
    "MailboxModel",
    "QueueModel",
    "TicketModel",
    "TicketTagModel",
    "TicketMessageModel",
    "TicketAttachmentModel",
    "RoutingRuleModel",
    "InboundMessageRecordModel",
    "SlaPolicyModel",
    "SlaBreachRecordModel",
    "SlaWarningRecordModel",
    "AuditLogModel",
]
