"""
Audit Sink Interface
====================

Write-only structured audit trail. Routing applications, SLA breaches and
sent replies each produce exactly one event.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from supporthub.config import SYSTEM_ACTOR


@dataclass(frozen=True)
class AuditEvent:
    """One audit trail entry."""
    action: str
    entity_type: str
    entity_id: UUID
    tenant_id: UUID
    timestamp: datetime
    actor: str = SYSTEM_ACTOR
    old_values: Optional[Dict[str, Any]] = None
    new_values: Dict[str, Any] = field(default_factory=dict)


class IAuditSink(ABC):
    """Interface for recording audit events."""

    @abstractmethod
    async def record(self, event: AuditEvent) -> None:
        """Persist an event alongside the change it describes."""
