"""
SLA Application Layer
======================

Application layer for SLA monitoring module.

Contains:
- Services: on-demand SLA status and the periodic monitor worker
- DTOs: response models for the HTTP surface

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from supporthub.sla.application.dto import (
    ClockStatusResponse,
    SlaBreachResponse,
    TicketSlaResponse,
)
from supporthub.sla.application.services import (
    INotificationSink,
    ISlaPolicyRepository,
    ISlaRecordRepository,
    PolicySnapshot,
    SlaService,
)
from supporthub.sla.application.worker import SlaMonitorWorker

__all__ = [
    # DTOs
    "ClockStatusResponse",
    "SlaBreachResponse",
    "TicketSlaResponse",
    # Services
    "SlaService",
    "SlaMonitorWorker",
    # Repository Interfaces
    "INotificationSink",
    "ISlaPolicyRepository",
    "ISlaRecordRepository",
    "PolicySnapshot",
]
