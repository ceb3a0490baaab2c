"""Django settings for the signal pipeline project."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from config.env import env_bool, env_int, env_list, env_str, load_env

BASE_DIR = Path(__file__).resolve().parent.parent

load_env(BASE_DIR)

SECRET_KEY = env_str("DJANGO_SECRET_KEY", "django-insecure-dev-only-change-me")
DEBUG = env_bool("DJANGO_DEBUG", True)
ALLOWED_HOSTS = env_list("DJANGO_ALLOWED_HOSTS", ["localhost", "127.0.0.1"])

INSTALLED_APPS = [
    "config.apps.PipelineAdminConfig",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "django_object_actions",
    "django_json_widget",
    "apps.audit",
    "apps.events",
    "apps.intelligence",
    "apps.decisions",
    "apps.actions",
    "apps.simulation",
    "apps.orchestration",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "config" / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": env_str("DJANGO_DB_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

# --- Logging ---

LOG_LEVEL = env_str("LOG_LEVEL", "INFO")

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
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "apps": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}

# --- Celery ---

CELERY_BROKER_URL = env_str("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = env_str("CELERY_RESULT_BACKEND", "redis://localhost:6379/0")
CELERY_TASK_ALWAYS_EAGER = env_bool("CELERY_TASK_ALWAYS_EAGER", False)
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_BEAT_SCHEDULE = {
    "pipeline-tick": {
        "task": "apps.orchestration.tasks.run_tick_task",
        "schedule": timedelta(seconds=env_int("PIPELINE_TICK_INTERVAL_SECONDS", 60)),
    },
    "expire-approvals": {
        "task": "apps.decisions.tasks.expire_approvals_task",
        "schedule": timedelta(minutes=15),
    },
}

# --- Pipeline ---

PIPELINE_CLAIM_BATCH_SIZE = env_int("PIPELINE_CLAIM_BATCH_SIZE", 50)
PIPELINE_CLAIM_STALE_SECONDS = env_int("PIPELINE_CLAIM_STALE_SECONDS", 600)
PIPELINE_TICK_ASYNC = env_bool("PIPELINE_TICK_ASYNC", False)

# Reasoning capability. Empty provider name disables hypothesis generation.
REASONING_PROVIDER = env_str("REASONING_PROVIDER", "local")
REASONING_PROVIDER_CONFIG: dict = {}
REASONING_TIMEOUT_SECONDS = env_int("REASONING_TIMEOUT_SECONDS", 30)
ANTHROPIC_API_KEY = env_str("ANTHROPIC_API_KEY")
OPENAI_API_KEY = env_str("OPENAI_API_KEY")
MISTRAL_API_KEY = env_str("MISTRAL_API_KEY")

RISK_WEIGHTS: dict = {}
DECISION_P3_CLASSIFIER = "apps.decisions.policy.classify_by_hypothesis_category"
APPROVAL_TIMEOUT_HOURS = env_int("APPROVAL_TIMEOUT_HOURS", 24)

ACTION_TIMEOUT_SECONDS = env_int("ACTION_TIMEOUT_SECONDS", 30)
ACTIONS_LOCAL_FALLBACK = env_bool("ACTIONS_LOCAL_FALLBACK", True)

SIMULATION_MAX_EVENTS = env_int("SIMULATION_MAX_EVENTS", 50)
SIMULATION_MAX_MERCHANTS = env_int("SIMULATION_MAX_MERCHANTS", 10)

# --- Monitoring ---

ORCHESTRATION_METRICS_BACKEND = env_str("ORCHESTRATION_METRICS_BACKEND", "logging")
STATSD_HOST = env_str("STATSD_HOST", "localhost")
STATSD_PORT = env_int("STATSD_PORT", 8125)
STATSD_PREFIX = env_str("STATSD_PREFIX", "pipeline")
