"""
Shared Kernel Module
====================

This module contains shared infrastructure used across all bounded
contexts (tenancy, tickets, routing, ingestion, SLA).

Architecture Pattern: Modular Monolith
- Each module is a bounded context
- Shared kernel contains only generic infrastructure (logging, audit sink,
  scheduling, pipeline YAML config, HTTP middleware)

DO NOT add routing, ingestion or SLA business logic to the shared kernel.
"""

__version__ = "1.0.0"
