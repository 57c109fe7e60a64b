"""Cruxlog training analytics and reminder engine.

Subpackages:
    cycle/     — Menstrual cycle phase calculation
    reminders/ — Reminder evaluators, dedup keys and the daily scheduler

Core modules:
    aggregator         — Workout statistics over named time windows
    notification_store — Persisted, deduplicated in-app notifications
    config_loader      — Load/validate/hot-reload analytics_config.yaml
"""
