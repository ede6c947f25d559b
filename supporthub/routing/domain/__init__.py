"""
Routing Domain Layer
====================

Rule snapshots and the pure rule engine.
"""

from supporthub.routing.domain.engine import apply_operator, evaluate, rule_matches
from supporthub.routing.domain.entities import (
    RoutingContext,
    RoutingDecision,
    RoutingRule,
    RuleError,
    RuleSet,
)
from supporthub.routing.domain.regex_guard import (
    RegexEvaluationError,
    execute_regex_with_timeout,
)

__all__ = [
    "apply_operator",
    "evaluate",
    "rule_matches",
    "RoutingContext",
    "RoutingDecision",
    "RoutingRule",
    "RuleError",
    "RuleSet",
    "RegexEvaluationError",
    "execute_regex_with_timeout",
]
