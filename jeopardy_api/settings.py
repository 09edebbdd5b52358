"""
Django settings for jeopardy_api project.

Every game tunable can be overridden from the environment.
"""

import os
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name, default=None):
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


def _env_float(name, default=None):
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return float(value)


SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "django-insecure-jeopardy-dev-key-change-me")

DEBUG = _env_bool("DJANGO_DEBUG", True)

ALLOWED_HOSTS = [host.strip() for host in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if host.strip()]

TESTING = "test" in sys.argv or "pytest" in sys.argv[0]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.staticfiles",
    "django_prometheus",
    "jeopardy_app",
]

MIDDLEWARE = [
    "django_prometheus.middleware.PrometheusBeforeMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "django_prometheus.middleware.PrometheusAfterMiddleware",
]

ROOT_URLCONF = "jeopardy_api.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
            ],
        },
    },
]

WSGI_APPLICATION = "jeopardy_api.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django_prometheus.db.backends.sqlite3",
        "NAME": os.environ.get("DJANGO_DB_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

CACHES = {
    # Per-process; only provider responses live here
    "default": {
        "BACKEND": "django_prometheus.cache.backends.locmem.LocMemCache",
        "LOCATION": "jeopardy",
    },
    # Board start locks must be visible to every worker process.
    # Run `manage.py createcachetable` when using the database backend.
    "locks": {
        "BACKEND": os.environ.get("JEOPARDY_LOCK_CACHE_BACKEND", "django.core.cache.backends.db.DatabaseCache"),
        "LOCATION": os.environ.get("JEOPARDY_LOCK_CACHE_LOCATION", "jeopardy_locks"),
    },
}

# Boards live in the browser session, stored in the database shared by all workers
SESSION_ENGINE = "django.contrib.sessions.backends.db"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = False
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# Logging
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": os.environ.get("DJANGO_LOG_LEVEL", "INFO"),
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": os.environ.get("DJANGO_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}

# Board configuration
JEOPARDY_NUM_CATEGORIES = _env_int("JEOPARDY_NUM_CATEGORIES", 6)
JEOPARDY_CLUES_PER_CATEGORY = _env_int("JEOPARDY_CLUES_PER_CATEGORY", 5)
JEOPARDY_MIN_SOURCE_CLUES = _env_int("JEOPARDY_MIN_SOURCE_CLUES", 5)
JEOPARDY_ID_RANGE_MAX = _env_int("JEOPARDY_ID_RANGE_MAX", 28163)
JEOPARDY_ANSWER_EFFECT_DELAY_MS = _env_int("JEOPARDY_ANSWER_EFFECT_DELAY_MS", 1500)
JEOPARDY_MAX_ID_ATTEMPTS = _env_int("JEOPARDY_MAX_ID_ATTEMPTS")  # None = keep trying
JEOPARDY_ID_RETRY_BACKOFF = _env_float("JEOPARDY_ID_RETRY_BACKOFF", 0.0)
JEOPARDY_START_LOCK_TIMEOUT = _env_int("JEOPARDY_START_LOCK_TIMEOUT", 300)

# Trivia provider
JSERVICE_BASE_URL = os.environ.get("JSERVICE_BASE_URL", "https://jservice.io/api")
JSERVICE_TIMEOUT = _env_float("JSERVICE_TIMEOUT")  # None = no timeout
JSERVICE_CACHE_TIMEOUT = _env_int("JSERVICE_CACHE_TIMEOUT", 0)

# Prometheus metrics endpoint
PROMETHEUS_METRICS_ENABLED = _env_bool("PROMETHEUS_METRICS_ENABLED", False)
PROMETHEUS_METRICS_AUTH_USERNAME = os.environ.get("PROMETHEUS_METRICS_AUTH_USERNAME", "")
PROMETHEUS_METRICS_AUTH_PASSWORD = os.environ.get("PROMETHEUS_METRICS_AUTH_PASSWORD", "")
