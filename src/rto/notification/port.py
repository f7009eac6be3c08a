"""Notification port — fire-and-forget RTO notifications.

Failures never roll back the workflow; callers log them and carry on.
"""

from abc import ABC, abstractmethod


class NotificationDispatcher(ABC):
    @abstractmethod
    def notify_rto_initiated(self, rto_event, shipment) -> None:
        """Tell the warehouse a return is incoming and the customer their order is coming back."""
        ...

    @abstractmethod
    def notify_rto_delivered_to_warehouse(self, rto_event) -> None:
        ...

    @abstractmethod
    def notify_rto_qc_completed(self, rto_event) -> None:
        ...
