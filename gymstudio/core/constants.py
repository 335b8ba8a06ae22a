"""Common application-wide constants."""

from datetime import timedelta

# Weekly recurrence expansion defaults
RECURRENCE_DEFAULT_WINDOW = timedelta(days=84)
RECURRENCE_DEFAULT_MAX_OCCURRENCES = 24

# Promotional rule: a ten-class bundle comes with one extra credit
BONUS_CREDIT_BUNDLE_SIZE = 10
BONUS_CREDITS = 1
MONTHLY_PASS_VALIDITY_DAYS = 30
BUNDLE_PASS_VALIDITY_DAYS = 60

# Reminder sweep look-ahead windows, relative to the sweep time
REMINDER_WINDOWS = (
    (timedelta(minutes=110), timedelta(minutes=130)),
    (timedelta(hours=23, minutes=30), timedelta(hours=24, minutes=30)),
)
REMINDER_BATCH_LIMIT = 500
LISTING_LIMIT = 500

# Read-path cache namespace
CLASSES_CACHE_KEY = "class_schedules"

# Setting keys toggling notification kinds
NEW_SESSION_NOTIFICATION = "new_session_notification"


__all__ = [
    "RECURRENCE_DEFAULT_WINDOW",
    "RECURRENCE_DEFAULT_MAX_OCCURRENCES",
    "BONUS_CREDIT_BUNDLE_SIZE",
    "BONUS_CREDITS",
    "MONTHLY_PASS_VALIDITY_DAYS",
    "BUNDLE_PASS_VALIDITY_DAYS",
    "REMINDER_WINDOWS",
    "REMINDER_BATCH_LIMIT",
    "LISTING_LIMIT",
    "CLASSES_CACHE_KEY",
    "NEW_SESSION_NOTIFICATION",
]
