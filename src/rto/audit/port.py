"""Audit logger port."""

from abc import ABC, abstractmethod


class AuditLogger(ABC):
    @abstractmethod
    def record(
        self,
        actor: str,
        company_id: str,
        action: str,
        resource: str,
        resource_id: str,
        details: dict | None = None,
    ) -> None:
        ...
