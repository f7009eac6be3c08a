"""Runtime settings for the RTO engine, read from the environment."""

import os
from dataclasses import dataclass


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class RTOSettings:
    flat_charge: float = 50.0
    rate_limit: int = 10  # RTO triggers per window per company
    rate_window_seconds: int = 60
    expected_return_days: int = 7
    courier_adapter: str = "fake"
    rate_card: str = "flat"  # "flat" or "zone"
    environment: str = "development"

    @classmethod
    def from_env(cls) -> "RTOSettings":
        return cls(
            flat_charge=_env_float("RTO_FLAT_CHARGE", cls.flat_charge),
            rate_limit=_env_int("RTO_RATE_LIMIT", cls.rate_limit),
            rate_window_seconds=_env_int("RTO_RATE_WINDOW_SECONDS", cls.rate_window_seconds),
            expected_return_days=_env_int("RTO_EXPECTED_RETURN_DAYS", cls.expected_return_days),
            courier_adapter=os.environ.get("RTO_COURIER_ADAPTER", cls.courier_adapter),
            rate_card=os.environ.get("RTO_RATE_CARD", cls.rate_card),
            environment=os.environ.get("PROTEAN_ENV", cls.environment),
        )
