"""
Routing Application Layer
=========================

Rule repository interface and the service that applies routing decisions.
"""

from supporthub.routing.application.services import IRoutingRuleRepository, RoutingService

__all__ = ["IRoutingRuleRepository", "RoutingService"]
