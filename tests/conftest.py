"""
Test environment setup. Runs before any test module imports the app.

DATABASE_URL points at SQLite so importing app.core.database never needs a
PostgreSQL server; tests build their own in-memory engines via tests.support.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("APP_ENV", "dev")
os.environ.setdefault("INTERNAL_API_KEY", "test-internal-key")
os.environ.setdefault("NOTIFICATION_SERVICE_URL", "http://notifications.test")

import app.core.security as security  # noqa: E402

# Minimum bcrypt cost keeps hashing fast in tests.
security.BCRYPT_ROUNDS = 4
