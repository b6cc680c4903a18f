"""Settings for the test suite.

Provides defaults for the values the base settings require from the
environment, then swaps external services for in-process ones.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("MIDTRANS_SERVER_KEY", "SB-Mid-server-test-key")
os.environ.setdefault("MIDTRANS_CLIENT_KEY", "SB-Mid-client-test-key")
os.environ.setdefault("MIDTRANS_MERCHANT_ID", "G000000000")
os.environ.setdefault("APP_URL", "http://testserver")

from config.settings import *  # noqa: E402,F401,F403

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "storefront-tests",
    }
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
