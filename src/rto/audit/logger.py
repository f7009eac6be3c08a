"""Audit trail adapters.

``StructlogAuditLogger`` writes audit entries to a dedicated ``rto.audit``
logger so they can be routed to their own sink. ``InMemoryAuditLogger`` keeps
them in a list for tests.
"""

from datetime import UTC, datetime

import structlog

from rto.audit.port import AuditLogger

audit_logger = structlog.get_logger("rto.audit")


class StructlogAuditLogger(AuditLogger):
    def record(
        self,
        actor: str,
        company_id: str,
        action: str,
        resource: str,
        resource_id: str,
        details: dict | None = None,
    ) -> None:
        audit_logger.info(
            "audit",
            actor=actor,
            company_id=company_id,
            action=action,
            resource=resource,
            resource_id=resource_id,
            details=details or {},
        )


class InMemoryAuditLogger(AuditLogger):
    def __init__(self) -> None:
        self.entries: list[dict] = []

    def record(
        self,
        actor: str,
        company_id: str,
        action: str,
        resource: str,
        resource_id: str,
        details: dict | None = None,
    ) -> None:
        self.entries.append(
            {
                "actor": actor,
                "company_id": company_id,
                "action": action,
                "resource": resource,
                "resource_id": resource_id,
                "details": details or {},
                "recorded_at": datetime.now(UTC),
            }
        )
