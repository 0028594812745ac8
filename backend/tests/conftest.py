from __future__ import annotations

import os

# Settings are read once at import time; keep tests independent of a local .env.
os.environ.setdefault("ENV", "test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("CRON_SECRET", "cron-test-secret")
