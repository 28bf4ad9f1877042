"""Django settings for the site generation service.

Values come from the process environment (see config/env.py for dotenv
loading). Every pipeline knob has a safe default so tests and local runs work
without any configuration.
"""

from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path

from config.env import env_bool, env_int, env_list, load_env

BASE_DIR = Path(__file__).resolve().parent.parent

load_env(BASE_DIR)

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "insecure-dev-key-change-me")
DEBUG = env_bool("DJANGO_DEBUG", default=False)
ALLOWED_HOSTS = env_list("DJANGO_ALLOWED_HOSTS", default=["localhost", "127.0.0.1"])

INSTALLED_APPS = [
    "config.apps.SitegenAdminConfig",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "django_json_widget",
    "django_object_actions",
    "apps.intake",
    "apps.accounts",
    "apps.imaging",
    "apps.synthesis",
    "apps.renderer",
    "apps.notify",
    "apps.generation",
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

WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": os.environ.get("DB_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.environ.get("DB_NAME", str(BASE_DIR / "db.sqlite3")),
        "USER": os.environ.get("DB_USER", ""),
        "PASSWORD": os.environ.get("DB_PASSWORD", ""),
        "HOST": os.environ.get("DB_HOST", ""),
        "PORT": os.environ.get("DB_PORT", ""),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# Optimized images are written through default_storage under MEDIA_ROOT.
MEDIA_URL = os.environ.get("MEDIA_URL", "/media/")
MEDIA_ROOT = Path(os.environ.get("MEDIA_ROOT", str(BASE_DIR / "media")))

# Raw uploads are kept in the DB until optimized; cap the request body.
DATA_UPLOAD_MAX_MEMORY_SIZE = env_int("DATA_UPLOAD_MAX_MEMORY_SIZE", 25 * 1024 * 1024)

# --- Celery ---------------------------------------------------------------

CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")
CELERY_TASK_ALWAYS_EAGER = env_bool("CELERY_TASK_ALWAYS_EAGER", default=False)
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_ROUTES = {
    "apps.generation.tasks.*": {"queue": "generation"},
}

# --- Generation pipeline ---------------------------------------------------

GENERATION_SWEEP_INTERVAL_SECONDS = env_int("GENERATION_SWEEP_INTERVAL_SECONDS", 10)
GENERATION_LIVENESS_SECONDS = env_int("GENERATION_LIVENESS_SECONDS", 15 * 60)
GENERATION_MAX_ATTEMPTS = env_int("GENERATION_MAX_ATTEMPTS", 5)
GENERATION_METRICS_BACKEND = os.environ.get("GENERATION_METRICS_BACKEND", "logging")
GENERATED_SITES_ROOT = Path(
    os.environ.get("GENERATED_SITES_ROOT", str(BASE_DIR / "generated-sites"))
)
SITE_BASE_URL = os.environ.get("SITE_BASE_URL", "http://localhost:8000")
SITE_LOGIN_PATH = os.environ.get("SITE_LOGIN_PATH", "/login/")

CELERY_BEAT_SCHEDULE = {
    "sweep-generation-queue": {
        "task": "apps.generation.tasks.sweep_generation_queue",
        "schedule": timedelta(seconds=GENERATION_SWEEP_INTERVAL_SECONDS),
    },
}

# --- Collaborators ----------------------------------------------------------

CONTENT_SYNTHESIZER = os.environ.get("CONTENT_SYNTHESIZER", "local")
OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "")
OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4o-mini")

IMAGE_MAX_DIMENSION = env_int("IMAGE_MAX_DIMENSION", 12000)

# Targets notified for every generated site, ahead of active NotificationChannel rows.
# "customer" targets are addressed to the record's contact address.
NOTIFY_FROM_ADDRESS = os.environ.get("NOTIFY_FROM_ADDRESS", "noreply@localhost")
NOTIFY_SMTP_HOST = os.environ.get("NOTIFY_SMTP_HOST", "localhost")
NOTIFY_SMTP_PORT = env_int("NOTIFY_SMTP_PORT", 587)
SALES_NOTIFY_ADDRESS = os.environ.get("SALES_NOTIFY_ADDRESS", "")

GENERATION_NOTIFY_TARGETS = [
    {
        "name": "customer-email",
        "driver": "email",
        "audience": "customer",
        "config": {
            "smtp_host": NOTIFY_SMTP_HOST,
            "smtp_port": NOTIFY_SMTP_PORT,
            "from_address": NOTIFY_FROM_ADDRESS,
        },
    },
]
if SALES_NOTIFY_ADDRESS:
    GENERATION_NOTIFY_TARGETS.append(
        {
            "name": "sales-email",
            "driver": "email",
            "audience": "team",
            "config": {
                "smtp_host": NOTIFY_SMTP_HOST,
                "smtp_port": NOTIFY_SMTP_PORT,
                "from_address": NOTIFY_FROM_ADDRESS,
                "to_addresses": [SALES_NOTIFY_ADDRESS],
            },
        }
    )

NOTIFY_SKIP_ALL = env_bool("NOTIFY_SKIP_ALL", default=False)
NOTIFY_SKIP = env_list("NOTIFY_SKIP")

# --- Logging ----------------------------------------------------------------

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        "apps": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}
