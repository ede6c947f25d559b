"""
Shared Application Layer
========================

Cross-context interfaces: the audit sink every pipeline writes to.
"""

from supporthub.shared.application.audit import AuditEvent, IAuditSink

__all__ = ["AuditEvent", "IAuditSink"]
