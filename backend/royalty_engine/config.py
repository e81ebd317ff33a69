# backend/royalty_engine/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///royalty_engine.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "production" disables unauthenticated cron access and GET triggers
    APP_ENV = os.environ.get("APP_ENV", "development")

    # Shared secret for the scheduler (Authorization: Bearer <secret>)
    CRON_SECRET = os.environ.get("CRON_SECRET") or None

    # Royalty rate applied when a tenant has no override (basis points, 1000 = 10%)
    DEFAULT_ROYALTY_RATE_BPS = int(os.environ.get("DEFAULT_ROYALTY_RATE_BPS", "1000"))

    ROYALTY_DUE_IN_DAYS = int(os.environ.get("ROYALTY_DUE_IN_DAYS", "30"))
    ROYALTY_BATCH_LIMIT = int(os.environ.get("ROYALTY_BATCH_LIMIT", "100"))
    ROYALTY_REMINDER_WINDOW_DAYS = int(os.environ.get("ROYALTY_REMINDER_WINDOW_DAYS", "7"))
    # datetime.weekday() value, 0 = Monday
    ROYALTY_WEEKLY_SUMMARY_WEEKDAY = int(os.environ.get("ROYALTY_WEEKLY_SUMMARY_WEEKDAY", "0"))

    NOTIFICATION_MAX_ATTEMPTS = int(os.environ.get("NOTIFICATION_MAX_ATTEMPTS", "3"))
