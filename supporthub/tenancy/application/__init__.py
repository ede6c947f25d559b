"""
Tenancy Application Layer
=========================

Directory query interface consumed by every pipeline.
"""

from supporthub.tenancy.application.services import ITenantDirectory

__all__ = ["ITenantDirectory"]
