"""
Django settings for the evidence custody backend.

Every deploy-specific value is read from the environment (a local ``.env``
file is loaded first through ``python-dotenv``).  When ``POSTGRES_DB`` is
not set the project falls back to a local SQLite file, which is also what
the test-suite runs against.
"""

import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR.parent / ".env")


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


# ── Core ─────────────────────────────────────────────────────────────
SECRET_KEY = os.getenv(
    "DJANGO_SECRET_KEY",
    "django-insecure-local-development-key-change-me",
)
DEBUG = _env_bool("DJANGO_DEBUG", True)
ALLOWED_HOSTS = [
    host.strip()
    for host in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",")
    if host.strip()
]

APP_ENV = os.getenv("APP_ENV", "development")
PORT = _env_int("PORT", 3001)

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Third-party
    "rest_framework",
    "rest_framework_simplejwt",
    "drf_spectacular",
    # Local apps
    "core",
    "accounts",
    "cases",
    "evidence",
    "tags",
    "retention",
    "ledger",
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

ROOT_URLCONF = "backend.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
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

WSGI_APPLICATION = "backend.wsgi.application"

# ── Database ─────────────────────────────────────────────────────────
if os.getenv("POSTGRES_DB"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB"),
            "USER": os.getenv("POSTGRES_USER", "postgres"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", ""),
            "HOST": os.getenv("POSTGRES_HOST", "localhost"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Auth ─────────────────────────────────────────────────────────────
AUTH_USER_MODEL = "accounts.User"

AUTHENTICATION_BACKENDS = [
    "accounts.backends.EmailAuthBackend",
    "django.contrib.auth.backends.ModelBackend",
]

AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": "django.contrib.auth.password_validation.MinimumLengthValidator",
        "OPTIONS": {"min_length": 6},
    },
]

EMAIL_VERIFICATION_TTL = timedelta(hours=_env_int("EMAIL_VERIFICATION_TTL_HOURS", 24))
MAX_ACTIVE_ADMINS = _env_int("MAX_ACTIVE_ADMINS", 10)

# ── i18n ─────────────────────────────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# ── Static / media ───────────────────────────────────────────────────
STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
MEDIA_URL = "media/"
MEDIA_ROOT = Path(os.getenv("MEDIA_ROOT", BASE_DIR / "media"))

# Uploads are streamed to a temporary file above this size.
FILE_UPLOAD_MAX_MEMORY_SIZE = 10 * 1024 * 1024
DATA_UPLOAD_MAX_MEMORY_SIZE = 10 * 1024 * 1024

# ── Rate limiting ────────────────────────────────────────────────────
# Windows are configured in milliseconds and converted to the
# "<requests>/<seconds>s" form understood by ``core.throttling``.
def _rate(max_var: str, default_max: int, window_var: str, default_window_ms: int) -> str:
    max_requests = _env_int(max_var, default_max)
    window_seconds = max(_env_int(window_var, default_window_ms) // 1000, 1)
    return f"{max_requests}/{window_seconds}s"


_FIFTEEN_MINUTES_MS = 15 * 60 * 1000

THROTTLE_RATES = {
    "api": _rate("RATE_LIMIT_MAX_REQUESTS", 100, "RATE_LIMIT_WINDOW_MS", _FIFTEEN_MINUTES_MS),
    "auth": _rate("RATE_LIMIT_AUTH_MAX", 5, "RATE_LIMIT_AUTH_WINDOW_MS", _FIFTEEN_MINUTES_MS),
    "admin": _rate("RATE_LIMIT_ADMIN_MAX", 50, "RATE_LIMIT_ADMIN_WINDOW_MS", _FIFTEEN_MINUTES_MS),
    "export": _rate("RATE_LIMIT_EXPORT_MAX", 100, "RATE_LIMIT_EXPORT_WINDOW_MS", 60 * 60 * 1000),
    "policy": _rate("RATE_LIMIT_POLICY_MAX", 200, "RATE_LIMIT_POLICY_WINDOW_MS", _FIFTEEN_MINUTES_MS),
}

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
    "DEFAULT_THROTTLE_CLASSES": (
        "core.throttling.WindowedScopedRateThrottle",
    ),
    "DEFAULT_THROTTLE_RATES": THROTTLE_RATES,
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "core.domain.exception_handler.domain_exception_handler",
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=_env_int("JWT_ACCESS_MINUTES", 60)),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=_env_int("JWT_REFRESH_DAYS", 7)),
    "AUTH_HEADER_TYPES": ("Bearer",),
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Evidence Custody API",
    "DESCRIPTION": (
        "Case management, evidence custody, tagging, retention and "
        "blockchain/IPFS anchoring."
    ),
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
}

# ── Blockchain / IPFS ────────────────────────────────────────────────
POLYGON_RPC_URL = os.getenv("POLYGON_RPC_URL", "")
PRIVATE_KEY = os.getenv("PRIVATE_KEY", "")
CONTRACT_ADDRESS = os.getenv("CONTRACT_ADDRESS", "")
CHAIN_ID = _env_int("CHAIN_ID", 80002)
BLOCKCHAIN_CONFIRMATIONS = _env_int("BLOCKCHAIN_CONFIRMATIONS", 2)
BLOCKCHAIN_TX_TIMEOUT = _env_int("BLOCKCHAIN_TX_TIMEOUT", 180)

PINATA_JWT = os.getenv("PINATA_JWT", "")
PINATA_API_URL = os.getenv("PINATA_API_URL", "https://api.pinata.cloud")
IPFS_GATEWAY = os.getenv("IPFS_GATEWAY", "https://gateway.pinata.cloud/ipfs/")
IPFS_MAX_RETRIES = _env_int("IPFS_MAX_RETRIES", 3)

# ── Logging ──────────────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} [{levelname}] {name}: {message}",
            "style": "{",
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
        "level": os.getenv("DJANGO_LOG_LEVEL", "INFO"),
    },
    "loggers": {
        "django.request": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
    },
}
