"""Test configuration: point the app at a throwaway SQLite file before callbook is imported."""

import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="callbook-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'app.db')}"
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["APP_ENV"] = "dev"
os.environ["NOTIFY_WEBHOOK_URL"] = ""
os.environ["BOOTSTRAP_ADMIN_USERNAME"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

import callbook.core.security as security  # noqa: E402

# Minimum bcrypt cost keeps password hashing fast in tests.
security.BCRYPT_ROUNDS = 4
