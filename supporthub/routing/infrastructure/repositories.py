"""
Routing Infrastructure Repositories
===================================

Builds the per-call rule-set snapshot from the database.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from supporthub.config import Priority, RuleMatchOperator, RuleMatchType
from supporthub.routing.application.services import IRoutingRuleRepository
from supporthub.routing.domain.entities import RoutingRule, RuleSet, split_list
from supporthub.routing.infrastructure.models import RoutingRuleModel
from supporthub.tenancy.infrastructure.models import QueueModel


def to_rule(model: RoutingRuleModel, queue_tenant_id: UUID) -> RoutingRule:
    return RoutingRule(
        id=model.id,
        tenant_id=model.tenant_id,
        name=model.name,
        match_type=RuleMatchType(model.match_type),
        operator=RuleMatchOperator(model.match_operator),
        match_value=model.match_value,
        sort_order=model.sort_order,
        queue_id=model.queue_id,
        queue_tenant_id=queue_tenant_id,
        is_active=model.is_active,
        assign_agent_id=model.auto_assign_agent_id,
        set_priority=Priority(model.auto_set_priority) if model.auto_set_priority else None,
        add_tags=split_list(model.auto_add_tags),
    )


class SQLAlchemyRoutingRuleRepository(IRoutingRuleRepository):
    """Read-only access to routing rules and the fallback queue."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_rule_set(self, tenant_id: UUID) -> RuleSet:
        # Inactive rules are kept in the snapshot; the engine skips them
        stmt = (
            select(RoutingRuleModel, QueueModel.tenant_id)
            .join(QueueModel, QueueModel.id == RoutingRuleModel.queue_id)
            .where(
                RoutingRuleModel.tenant_id == tenant_id,
                RoutingRuleModel.is_deleted.is_(False),
                QueueModel.is_deleted.is_(False),
            )
            .order_by(RoutingRuleModel.sort_order, RoutingRuleModel.id)
        )
        result = await self._session.execute(stmt)
        rules = tuple(to_rule(model, queue_tenant_id) for model, queue_tenant_id in result.all())

        default_stmt = (
            select(QueueModel.id)
            .where(
                QueueModel.tenant_id == tenant_id,
                QueueModel.is_default.is_(True),
                QueueModel.is_active.is_(True),
                QueueModel.is_deleted.is_(False),
            )
            .order_by(QueueModel.name)
            .limit(1)
        )
        default_queue_id = (await self._session.execute(default_stmt)).scalar_one_or_none()

        return RuleSet(tenant_id=tenant_id, rules=rules, default_queue_id=default_queue_id)
