"""
Routing rule engine.

``evaluate`` is a pure function over a routing context and a rule-set
snapshot: same inputs, same decision. First matching rule wins.
"""

from typing import Iterable, List, Optional

from supporthub.config import RuleMatchOperator, RuleMatchType
from supporthub.routing.domain.entities import (
    RoutingContext, RoutingDecision, RoutingRule, RuleError, RuleSet, split_list,
)
from supporthub.routing.domain.regex_guard import (
    RegexEvaluationError, execute_regex_with_timeout,
)


def _normalize_match_value(rule: RoutingRule) -> str:
    value = (rule.match_value or "").strip()
    if rule.match_type == RuleMatchType.SENDER_DOMAIN and rule.operator != RuleMatchOperator.REGEX:
        # "@acme.com" and "acme.com" name the same domain
        if rule.operator == RuleMatchOperator.IN_LIST:
            return ",".join(v.lstrip("@") for v in split_list(value))
        return value.lstrip("@")
    return value


def apply_operator(
    value: str,
    match_value: str,
    operator: RuleMatchOperator,
    regex_timeout_ms: Optional[int] = None,
    max_pattern_length: Optional[int] = None,
) -> bool:
    """Case-insensitive comparison of one field value against a rule value."""
    if operator == RuleMatchOperator.REGEX:
        return execute_regex_with_timeout(
            match_value, value, regex_timeout_ms, max_pattern_length
        )

    value = (value or "").lower()
    needle = match_value.lower()

    if operator == RuleMatchOperator.EQUALS:
        return value == needle
    if operator == RuleMatchOperator.CONTAINS:
        return needle in value
    if operator == RuleMatchOperator.STARTS_WITH:
        return value.startswith(needle)
    if operator == RuleMatchOperator.ENDS_WITH:
        return value.endswith(needle)
    if operator == RuleMatchOperator.IN_LIST:
        return value in {v.lower() for v in split_list(match_value)}
    return False


def _field_values(rule: RoutingRule, context: RoutingContext) -> Iterable[str]:
    match_type = rule.match_type
    if match_type == RuleMatchType.SENDER_DOMAIN:
        return [context.sender_domain or ""]
    if match_type == RuleMatchType.SUBJECT_KEYWORD:
        return [context.subject]
    if match_type == RuleMatchType.BODY_KEYWORD:
        return [context.body]
    if match_type == RuleMatchType.ISSUE_TYPE:
        return [context.issue_type or ""]
    if match_type == RuleMatchType.SYSTEM:
        return [context.system or ""]
    if match_type == RuleMatchType.REQUESTER_EMAIL:
        return [context.requester_email]
    if match_type == RuleMatchType.TAG:
        return sorted(context.tags)
    return []


def rule_matches(
    rule: RoutingRule,
    context: RoutingContext,
    regex_timeout_ms: Optional[int] = None,
    max_pattern_length: Optional[int] = None,
) -> bool:
    """True when any selected field value satisfies the rule's operator."""
    match_value = _normalize_match_value(rule)
    if not match_value:
        return False
    return any(
        apply_operator(value, match_value, rule.operator, regex_timeout_ms, max_pattern_length)
        for value in _field_values(rule, context)
    )


def evaluate(
    context: RoutingContext,
    rule_set: RuleSet,
    regex_timeout_ms: Optional[int] = None,
    max_pattern_length: Optional[int] = None,
) -> RoutingDecision:
    """
    Pick the destination for a ticket.

    Active rules are tried in (sort_order, id) order. Rules pointing at
    another tenant's queue and rules whose regex cannot be evaluated are
    skipped and reported in ``rule_errors``.
    """
    errors: List[RuleError] = []

    for rule in sorted(rule_set.rules, key=lambda r: (r.sort_order, str(r.id))):
        if not rule.is_active:
            continue

        if rule.tenant_id != context.tenant_id or rule.queue_tenant_id != context.tenant_id:
            errors.append(RuleError(rule.id, rule.name, "destination queue belongs to another tenant"))
            continue

        try:
            matched = rule_matches(rule, context, regex_timeout_ms, max_pattern_length)
        except RegexEvaluationError as e:
            errors.append(RuleError(rule.id, rule.name, e.message))
            continue

        if matched:
            return RoutingDecision(
                queue_id=rule.queue_id,
                is_fallback=False,
                matched_rule_id=rule.id,
                matched_rule_name=rule.name,
                assign_agent_id=rule.assign_agent_id,
                set_priority=rule.set_priority,
                add_tags=tuple(t.lower() for t in rule.add_tags),
                rule_errors=tuple(errors),
            )

    return RoutingDecision(
        queue_id=rule_set.default_queue_id,
        is_fallback=rule_set.default_queue_id is not None,
        rule_errors=tuple(errors),
    )
