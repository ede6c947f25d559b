"""
Tickets Bounded Context
=======================

The ticket aggregate: lifecycle rules, versioned persistence and the
retrying mutation service shared by ingestion, routing and SLA monitoring.
"""
