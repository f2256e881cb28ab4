import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as courtbook.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "courtbook.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # SQLite only: how long a writer waits for the database lock
    SQLITE_BUSY_TIMEOUT_MS = int(os.getenv("SQLITE_BUSY_TIMEOUT_MS", "15000"))

    # Identity is resolved upstream; these headers carry the result
    IDENTITY_USER_HEADER = os.getenv("IDENTITY_USER_HEADER", "X-User-Id")
    IDENTITY_ROLES_HEADER = os.getenv("IDENTITY_ROLES_HEADER", "X-User-Roles")

    # Court-local wall clock (slot times are local times of day)
    COURT_TIMEZONE = os.getenv("COURT_TIMEZONE")  # None = server local time

    # Hold / cutoff policy
    HOLD_MINUTES = 15                   # pending hold blocks the slot this long
    BOOKING_CUTOFF_MINUTES = 60         # no new holds/confirms closer than this to start

    # Retry policy for contended slot/date transactions
    BOOKING_MAX_RETRIES = int(os.getenv("BOOKING_MAX_RETRIES", "5"))
    BOOKING_RETRY_BACKOFF_SECONDS = 0.05

    # Janitor sweep intervals
    EXPIRY_SWEEP_SECONDS = int(os.getenv("EXPIRY_SWEEP_SECONDS", "60"))
    COMPLETION_SWEEP_SECONDS = int(os.getenv("COMPLETION_SWEEP_SECONDS", "900"))

    # Celery (broker + beat schedule for the janitor)
    CELERY = {
        "broker_url": os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0"),
        "task_ignore_result": True,
        "beat_schedule": {
            "expire-stale-holds": {
                "task": "reservations.expire_stale_holds",
                "schedule": float(EXPIRY_SWEEP_SECONDS),
                "options": {"expires": max(EXPIRY_SWEEP_SECONDS - 10, 1)},
            },
            "complete-past-bookings": {
                "task": "reservations.complete_past_bookings",
                "schedule": float(COMPLETION_SWEEP_SECONDS),
            },
        },
    }

    # Admin listing cap
    ADMIN_BOOKINGS_LIMIT = 200

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False
