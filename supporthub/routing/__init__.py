"""
Routing Module
==============

Bounded context for deterministic ticket routing.

Responsibilities:
- Evaluate a tenant's ordered rule list against a ticket
- Fall back to the tenant's default queue when nothing matches
- Apply queue, agent, priority and tags in one versioned write
"""
