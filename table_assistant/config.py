"""
Centralized configuration with environment variable overrides.

Dialogue limits, business hours, and scheduler tuning live here. The
restaurant's runtime settings (durations, toggles, queue size) are served
separately by the settings store, seeded from DEFAULT_SETTINGS.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from table_assistant.logging_context import UserIdFilter

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


# System settings served by the settings store when nothing overrides them.
DEFAULT_SETTINGS: dict[str, str] = {
    "default_reservation_duration": "60",
    "min_reservation_duration": "30",
    "max_reservation_duration": "180",
    "max_reservation_days_ahead": "30",
    "notification_minutes_before": "5",
    "max_queue_size": "50",
    "queue_enabled": "true",
    "reservation_enabled": "true",
}


@dataclass(frozen=True)
class SessionConfig:
    """Conversation session lifetime."""

    timeout_seconds: int = _safe_int("SESSION_TIMEOUT_SECONDS", "300")


@dataclass(frozen=True)
class DiningConfig:
    """Business hours and dialogue limits."""

    open_hour: int = _safe_int("OPEN_HOUR", "10")
    close_hour: int = _safe_int("CLOSE_HOUR", "22")
    slot_interval_minutes: int = _safe_int("SLOT_INTERVAL_MINUTES", "30")
    min_booking_lead_minutes: int = _safe_int("MIN_BOOKING_LEAD_MINUTES", "30")
    min_party_size: int = _safe_int("MIN_PARTY_SIZE", "1")
    max_party_size: int = _safe_int("MAX_PARTY_SIZE", "20")
    max_tables_offered: int = _safe_int("MAX_TABLES_OFFERED", "5")
    max_slot_quick_replies: int = _safe_int("MAX_SLOT_QUICK_REPLIES", "5")
    max_slots_listed: int = _safe_int("MAX_SLOTS_LISTED", "12")
    queue_minutes_per_party: int = _safe_int("QUEUE_MINUTES_PER_PARTY", "15")


@dataclass(frozen=True)
class NotificationConfig:
    """Manager notification feed and vacate scheduler tuning."""

    retention: int = _safe_int("NOTIFICATION_RETENTION", "50")
    nearing_vacate_extra_minutes: int = _safe_int("NEARING_VACATE_EXTRA_MINUTES", "5")
    misfire_grace_seconds: int = _safe_int("SCHEDULER_MISFIRE_GRACE_SECONDS", "300")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    session: SessionConfig = field(default_factory=SessionConfig)
    dining: DiningConfig = field(default_factory=DiningConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    restaurant_name: str = os.getenv("RESTAURANT_NAME", "The Corner Table")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.session.timeout_seconds < 1:
        raise ValueError(
            f"SESSION_TIMEOUT_SECONDS must be >= 1, got {config.session.timeout_seconds}"
        )

    dining = config.dining
    if not 0 <= dining.open_hour < dining.close_hour <= 24:
        raise ValueError(
            "OPEN_HOUR and CLOSE_HOUR must satisfy 0 <= OPEN_HOUR < CLOSE_HOUR <= 24, "
            f"got {dining.open_hour} and {dining.close_hour}"
        )
    if dining.slot_interval_minutes < 1 or 60 % dining.slot_interval_minutes:
        raise ValueError(
            "SLOT_INTERVAL_MINUTES must be a positive divisor of 60, "
            f"got {dining.slot_interval_minutes}"
        )
    if dining.min_booking_lead_minutes < 0:
        raise ValueError(
            f"MIN_BOOKING_LEAD_MINUTES must be >= 0, got {dining.min_booking_lead_minutes}"
        )
    if not 1 <= dining.min_party_size <= dining.max_party_size:
        raise ValueError(
            "MIN_PARTY_SIZE and MAX_PARTY_SIZE must satisfy 1 <= MIN <= MAX, "
            f"got {dining.min_party_size} and {dining.max_party_size}"
        )

    for name, value in [
        ("MAX_TABLES_OFFERED", dining.max_tables_offered),
        ("MAX_SLOT_QUICK_REPLIES", dining.max_slot_quick_replies),
        ("MAX_SLOTS_LISTED", dining.max_slots_listed),
        ("QUEUE_MINUTES_PER_PARTY", dining.queue_minutes_per_party),
        ("NOTIFICATION_RETENTION", config.notifications.retention),
        ("SCHEDULER_MISFIRE_GRACE_SECONDS", config.notifications.misfire_grace_seconds),
    ]:
        if value < 1:
            raise ValueError(f"{name} must be >= 1, got {value}")

    if config.notifications.nearing_vacate_extra_minutes < 0:
        raise ValueError(
            "NEARING_VACATE_EXTRA_MINUTES must be >= 0, "
            f"got {config.notifications.nearing_vacate_extra_minutes}"
        )


LOG_FORMAT = "%(asctime)s [%(name)s] [user %(user_id)s] %(levelname)s: %(message)s"


def _log_handler() -> logging.Handler:
    """Console handler that stamps each record with the current user id."""
    handler = logging.StreamHandler()
    handler.addFilter(UserIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        handlers=[_log_handler()],
    )
    logger.info("Configuration loaded for '%s'", config.restaurant_name)
    return config


# Singleton instance
settings = load_config()
