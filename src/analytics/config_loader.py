"""Load, validate, and hot-reload the Cruxlog analytics configuration.

The config lives in ``analytics_config.yaml`` alongside this module.  At
startup it is loaded once and cached.  Call ``reload_analytics_config()`` to
re-read from disk without restarting.

Usage::

    from src.analytics.config_loader import get_analytics_config

    config = get_analytics_config()
    config.reminders.overdue_threshold_days   # 32
    config.scheduler.checkpoint("cycle")      # 9
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger("cruxlog.analytics.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "analytics_config.yaml"

# Named windows understood by the statistics aggregator
TIMEFRAMES: tuple[str, ...] = ("1week", "1month", "3months", "6months", "1year", "custom")

# Reminder families driven by the scheduler
REMINDER_FAMILIES: tuple[str, ...] = ("cycle", "inactivity", "activity", "retest")


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class StatisticsConfig:
    """Statistics aggregator settings."""

    streak_lookback_days: int = 365
    custom_range_default_days: int = 30


@dataclass
class ReminderConfig:
    """Thresholds shared by the reminder evaluators."""

    overdue_threshold_days: int = 32
    default_inactivity_days: int = 3
    activity_window: str = "3months"
    mental_session_gap_days: int = 7
    fall_gap_days: int = 30
    days_per_week: int = 7
    days_per_month: int = 30


@dataclass
class SchedulerConfig:
    """Polling interval and per-family daily checkpoints."""

    poll_interval_seconds: int = 300
    checkpoints: dict[str, int] = field(
        default_factory=lambda: {"cycle": 9, "inactivity": 9, "activity": 10, "retest": 10}
    )

    def checkpoint(self, family: str) -> int:
        """Return the checkpoint hour for a reminder family.

        Args:
            family: One of ``REMINDER_FAMILIES``.

        Returns:
            Local hour (0–23).
        """
        return self.checkpoints[family]


@dataclass
class NotificationStoreConfig:
    """Notification store persistence settings."""

    storage_key: str = "notification-messages"
    settings_key: str = "notification-settings"


@dataclass
class AnalyticsConfig:
    """Complete, validated analytics configuration.

    This is the single in-memory representation of analytics_config.yaml.
    The aggregator, evaluators and scheduler all read from this object.

    Attributes:
        version:       Config schema version string.
        statistics:    Statistics aggregator settings.
        reminders:     Reminder evaluator thresholds.
        scheduler:     Poll interval and checkpoint hours.
        notifications: Notification store settings.
    """

    version: str = "1.0"
    statistics: StatisticsConfig = field(default_factory=StatisticsConfig)
    reminders: ReminderConfig = field(default_factory=ReminderConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    notifications: NotificationStoreConfig = field(default_factory=NotificationStoreConfig)
    _raw: dict = field(default_factory=dict, repr=False)


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when analytics_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed dict.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Analytics config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> AnalyticsConfig:
    """Validate the raw YAML dict and construct an AnalyticsConfig.

    Missing sections fall back to the defaults above; every invalid value is
    collected so the error lists all problems at once.

    Args:
        raw: Parsed YAML dict.

    Returns:
        Validated AnalyticsConfig instance.

    Raises:
        ConfigValidationError: If any value is invalid.
    """
    errors: list[str] = []

    def _positive_int(section: dict, key: str, default: int, path: str) -> int:
        value = section.get(key, default)
        try:
            number = int(value)
        except (TypeError, ValueError):
            errors.append(f"{path}.{key} must be an integer, got {value!r}")
            return default
        if number <= 0:
            errors.append(f"{path}.{key} must be positive, got {number}")
        return number

    version = str(raw.get("version", "1.0"))

    # ── Statistics ──
    st_raw = raw.get("statistics") or {}
    statistics_cfg = StatisticsConfig(
        streak_lookback_days=_positive_int(st_raw, "streak_lookback_days", 365, "statistics"),
        custom_range_default_days=_positive_int(
            st_raw, "custom_range_default_days", 30, "statistics"
        ),
    )

    # ── Reminders ──
    rm_raw = raw.get("reminders") or {}
    cycle_raw = rm_raw.get("cycle") or {}
    inactivity_raw = rm_raw.get("inactivity") or {}
    activity_raw = rm_raw.get("activity") or {}
    retest_raw = rm_raw.get("retest") or {}

    activity_window = str(activity_raw.get("window", "3months"))
    if activity_window not in TIMEFRAMES or activity_window == "custom":
        errors.append(
            f"reminders.activity.window must be one of {TIMEFRAMES[:-1]}, got {activity_window!r}"
        )

    reminders_cfg = ReminderConfig(
        overdue_threshold_days=_positive_int(
            cycle_raw, "overdue_threshold_days", 32, "reminders.cycle"
        ),
        default_inactivity_days=_positive_int(
            inactivity_raw, "default_days", 3, "reminders.inactivity"
        ),
        activity_window=activity_window,
        mental_session_gap_days=_positive_int(
            activity_raw, "mental_session_gap_days", 7, "reminders.activity"
        ),
        fall_gap_days=_positive_int(activity_raw, "fall_gap_days", 30, "reminders.activity"),
        days_per_week=_positive_int(retest_raw, "days_per_week", 7, "reminders.retest"),
        days_per_month=_positive_int(retest_raw, "days_per_month", 30, "reminders.retest"),
    )

    # ── Scheduler ──
    sc_raw = raw.get("scheduler") or {}
    checkpoints_raw = sc_raw.get("checkpoints") or {}
    default_checkpoints = SchedulerConfig().checkpoints
    checkpoints: dict[str, int] = {}
    for family in REMINDER_FAMILIES:
        value = checkpoints_raw.get(family, default_checkpoints[family])
        try:
            hour = int(value)
        except (TypeError, ValueError):
            errors.append(f"scheduler.checkpoints.{family} must be an integer, got {value!r}")
            continue
        if not (0 <= hour <= 23):
            errors.append(f"scheduler.checkpoints.{family} = {hour} is out of range [0, 23]")
        checkpoints[family] = hour
    for family in checkpoints_raw:
        if family not in REMINDER_FAMILIES:
            errors.append(f"scheduler.checkpoints.{family} is not a known reminder family")

    scheduler_cfg = SchedulerConfig(
        poll_interval_seconds=_positive_int(sc_raw, "poll_interval_seconds", 300, "scheduler"),
        checkpoints=checkpoints,
    )

    # ── Notifications ──
    nt_raw = raw.get("notifications") or {}
    storage_key = str(nt_raw.get("storage_key", "notification-messages")).strip()
    if not storage_key:
        errors.append("notifications.storage_key must not be empty")
    settings_key = str(nt_raw.get("settings_key", "notification-settings")).strip()
    if not settings_key:
        errors.append("notifications.settings_key must not be empty")
    elif settings_key == storage_key:
        errors.append("notifications.settings_key must differ from storage_key")

    if errors:
        raise ConfigValidationError(
            f"analytics_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return AnalyticsConfig(
        version=version,
        statistics=statistics_cfg,
        reminders=reminders_cfg,
        scheduler=scheduler_cfg,
        notifications=NotificationStoreConfig(
            storage_key=storage_key, settings_key=settings_key
        ),
        _raw=raw,
    )


def load_analytics_config(path: Path | None = None) -> AnalyticsConfig:
    """Load and validate the analytics config from disk.

    Args:
        path: Override path to YAML. Uses the bundled analytics_config.yaml by default.

    Returns:
        Validated AnalyticsConfig instance.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded analytics config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: AnalyticsConfig | None = None
_config_lock = threading.Lock()


def get_analytics_config() -> AnalyticsConfig:
    """Return the global AnalyticsConfig singleton, loading it on first call.

    Thread-safe.  Use ``reload_analytics_config()`` to refresh after YAML changes.

    Returns:
        The current AnalyticsConfig instance.
    """
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_analytics_config()
    return _config


def reload_analytics_config(path: Path | None = None) -> AnalyticsConfig:
    """Reload the analytics config from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.

    Args:
        path: Override path to YAML. Defaults to bundled analytics_config.yaml.

    Returns:
        The newly loaded AnalyticsConfig.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_analytics_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info(
        "Reloaded analytics config: %s → %s",
        old_version,
        new_config.version,
    )
    return new_config
