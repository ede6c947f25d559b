"""
Tenancy Infrastructure Layer
============================

SQLAlchemy models and the directory repository.
"""

from supporthub.tenancy.infrastructure.models import MailboxModel, QueueModel, TenantModel
from supporthub.tenancy.infrastructure.repositories import SQLAlchemyTenantDirectory

__all__ = [
    "MailboxModel",
    "QueueModel",
    "TenantModel",
    "SQLAlchemyTenantDirectory",
]
