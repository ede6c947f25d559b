"""
Routing Infrastructure Layer
============================

SQLAlchemy model and snapshot repository for routing rules.
"""

from supporthub.routing.infrastructure.models import RoutingRuleModel
from supporthub.routing.infrastructure.repositories import SQLAlchemyRoutingRuleRepository

__all__ = ["RoutingRuleModel", "SQLAlchemyRoutingRuleRepository"]
