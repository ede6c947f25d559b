"""
SLA Monitoring Module
=====================

Bounded Context for Service Level Agreement monitoring.

Responsibilities:
- Evaluate first-response and resolution clocks against tenant policies
- Record each breach and warning tier exactly once per ticket
- Notify via Slack after the records are committed
- Expose on-demand SLA status and monitor run summaries over HTTP
"""
