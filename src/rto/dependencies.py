"""Collaborators of the RTO engine, bundled so they can be injected as one."""

from dataclasses import dataclass, field

from rto.audit.logger import StructlogAuditLogger
from rto.audit.port import AuditLogger
from rto.config import RTOSettings
from rto.courier import CourierAdapterFactory, build_courier_factory
from rto.courier.registry import CourierRegistry
from rto.inventory.fake_adapter import InMemoryInventory
from rto.inventory.port import InventoryAdjuster
from rto.notification.dispatcher import LoggingNotificationDispatcher
from rto.notification.port import NotificationDispatcher
from rto.rate_card import build_rate_card
from rto.rate_card.port import RateCardCalculator
from rto.rate_limit.port import RateLimiter
from rto.rate_limit.sliding_window import SlidingWindowRateLimiter
from rto.wallet.fake_adapter import InMemoryWallet
from rto.wallet.port import WalletChargeGateway


@dataclass
class RTODependencies:
    wallet: WalletChargeGateway
    rate_card: RateCardCalculator
    couriers: CourierAdapterFactory
    inventory: InventoryAdjuster
    rate_limiter: RateLimiter
    notifier: NotificationDispatcher
    audit: AuditLogger
    settings: RTOSettings = field(default_factory=RTOSettings)

    @property
    def courier_registry(self) -> CourierRegistry:
        return self.couriers.registry


def build_dependencies(settings: RTOSettings | None = None) -> RTODependencies:
    """Wire the default adapters for the given settings (``RTOSettings.from_env()`` if omitted)."""
    settings = settings or RTOSettings.from_env()
    return RTODependencies(
        wallet=InMemoryWallet(),
        rate_card=build_rate_card(settings.rate_card, flat_charge=settings.flat_charge),
        couriers=build_courier_factory(settings.courier_adapter),
        inventory=InMemoryInventory(),
        rate_limiter=SlidingWindowRateLimiter(limit=settings.rate_limit, window_seconds=settings.rate_window_seconds),
        notifier=LoggingNotificationDispatcher(),
        audit=StructlogAuditLogger(),
        settings=settings,
    )
