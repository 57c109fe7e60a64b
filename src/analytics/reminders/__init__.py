"""Reminder evaluators and the daily reminder scheduler.

Modules:
    dedup      — Per-day dedup keys for fired reminders
    cycle      — Period-tomorrow and period-overdue reminders
    inactivity — Workout inactivity reminder
    activity   — Mental practice and falls nudges
    retest     — Periodic fingerboard retest reminder
    scheduler  — Polling scheduler running each family once a day

Import evaluators from their modules; this package keeps no re-exports so
the notification store can import ``dedup`` without pulling in the rest.
"""
