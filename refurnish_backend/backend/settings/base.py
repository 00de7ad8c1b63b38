"""
PATH: backend/settings/base.py

BASE SETTINGS (shared by dev + prod)

Refurnish BFF:
- Stateless JWT validation of tokens issued by the upstream marketplace API
- Upstream marketplace client config (base URL, timeouts)
- Payment gateway selection (mock by default)
- Checkout + seller dashboard tunables
- Throttling, CORS, Sentry (optional)
"""

from __future__ import annotations

import sys
from pathlib import Path

import environ
from corsheaders.defaults import default_headers, default_methods

# -----------------------------------------
# BASE DIRECTORY
# -----------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# -----------------------------------------
# TEST MODE DETECTION
# -----------------------------------------
TESTING = "test" in sys.argv or "pytest" in sys.modules

# -----------------------------------------
# ENV (django-environ)
# -----------------------------------------
env = environ.Env(
    DEBUG=(bool, True),
    SECRET_KEY=(str, ""),
    TIME_ZONE=(str, "Asia/Manila"),
    ALLOWED_HOSTS=(list, ["localhost", "127.0.0.1", "testserver"]),
    CORS_ALLOWED_ORIGINS=(list, ["http://localhost:3000"]),
    CSRF_TRUSTED_ORIGINS=(list, ["http://localhost:3000"]),
    DATABASE_URL=(str, f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
    CACHE_URL=(str, "locmemcache://refurnish"),
    LOG_LEVEL=(str, "INFO"),
    # Upstream marketplace API
    MARKETPLACE_API_URL=(str, "http://localhost:8080"),
    MARKETPLACE_TIMEOUT_SECONDS=(float, 25.0),
    MARKETPLACE_HEALTH_TIMEOUT_SECONDS=(float, 5.0),
    # Upstream JWT (HS256, shared secret)
    JWT_SECRET=(str, ""),
    # Payments
    PAYMENT_GATEWAY=(str, "mock"),
    MOCK_PAYMENT_DELAY_SECONDS=(float, 0.0),
    # Push notifications webhook (upstream -> this service)
    NOTIFICATIONS_WEBHOOK_SECRET=(str, ""),
    # Throttling
    THROTTLE_ANON_RATE=(str, "60/min"),
    THROTTLE_USER_RATE=(str, "600/min"),
    THROTTLE_CHECKOUT_WRITE_RATE=(str, "20/min"),
    THROTTLE_WEBHOOK_RATE=(str, "600/min"),
    # Sentry (optional; enable by setting SENTRY_DSN)
    SENTRY_DSN=(str, ""),
    SENTRY_ENVIRONMENT=(str, "development"),
    SENTRY_TRACES_SAMPLE_RATE=(float, 0.0),
    SENTRY_SEND_PII=(bool, False),
)

# -----------------------------------------
# LOAD .env
# -----------------------------------------
env_file_1 = BASE_DIR / ".env"
env_file_2 = BASE_DIR.parent / ".env"

if env_file_1.exists():
    env.read_env(str(env_file_1))
elif env_file_2.exists():
    env.read_env(str(env_file_2))

# -----------------------------------------
# CORE SECURITY
# -----------------------------------------
SECRET_KEY = (env("SECRET_KEY") or "dev-insecure-change-me").strip()
DEBUG = env.bool("DEBUG")
ALLOWED_HOSTS = env.list("ALLOWED_HOSTS")

# -----------------------------------------
# I18N / TZ
# -----------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = (env("TIME_ZONE") or "Asia/Manila").strip()
USE_I18N = True
USE_TZ = True

# -----------------------------------------
# INSTALLED APPS
# -----------------------------------------
INSTALLED_APPS = [
    "corsheaders",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.staticfiles",
    "rest_framework",
    "drf_spectacular",
    "marketplace.apps.MarketplaceConfig",
    "cart.apps.CartConfig",
    "checkout.apps.CheckoutConfig",
    "orders.apps.OrdersConfig",
    "seller.apps.SellerConfig",
]

# -----------------------------------------
# MIDDLEWARE
# -----------------------------------------
MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "backend.urls"
WSGI_APPLICATION = "backend.wsgi.application"
APPEND_SLASH = True

# -----------------------------------------
# TEMPLATES (browsable API + Swagger UI)
# -----------------------------------------
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
    }
]

# -----------------------------------------
# REST FRAMEWORK
# -----------------------------------------
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTStatelessUserAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": ("rest_framework.permissions.IsAuthenticated",),
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "UNAUTHENTICATED_USER": None,
    "DEFAULT_THROTTLE_CLASSES": (
        "rest_framework.throttling.AnonRateThrottle",
        "rest_framework.throttling.UserRateThrottle",
    ),
    "DEFAULT_THROTTLE_RATES": {
        "anon": env("THROTTLE_ANON_RATE"),
        "user": env("THROTTLE_USER_RATE"),
        "checkout_write": env("THROTTLE_CHECKOUT_WRITE_RATE"),
        "webhook": env("THROTTLE_WEBHOOK_RATE"),
    },
}

# -----------------------------------------
# SIMPLE JWT (stateless validation of upstream tokens)
# -----------------------------------------
# Upstream tokens carry {_id, email, role, firstName, lastName, exp}
# and no jti / token_type claims.
SIMPLE_JWT = {
    "ALGORITHM": "HS256",
    "SIGNING_KEY": (env("JWT_SECRET") or SECRET_KEY).strip(),
    "AUTH_HEADER_TYPES": ("Bearer",),
    "USER_ID_CLAIM": "_id",
    "USER_ID_FIELD": "id",
    "TOKEN_TYPE_CLAIM": None,
    "JTI_CLAIM": None,
}

# -----------------------------------------
# DATABASE (framework tables only; domain data lives upstream)
# -----------------------------------------
DATABASES = {
    "default": env.db("DATABASE_URL"),
}

# -----------------------------------------
# CACHE (pending e-wallet checkouts + per-line cart locks)
# -----------------------------------------
CACHES = {
    "default": env.cache("CACHE_URL"),
}

# -----------------------------------------
# UPSTREAM MARKETPLACE API
# -----------------------------------------
MARKETPLACE_API = {
    "BASE_URL": (env("MARKETPLACE_API_URL") or "http://localhost:8080").strip().rstrip("/"),
    "TIMEOUT_SECONDS": env.float("MARKETPLACE_TIMEOUT_SECONDS"),
    "HEALTH_TIMEOUT_SECONDS": env.float("MARKETPLACE_HEALTH_TIMEOUT_SECONDS"),
}

# -----------------------------------------
# PAYMENTS
# -----------------------------------------
PAYMENTS = {
    "GATEWAY": (env("PAYMENT_GATEWAY") or "mock").strip().lower(),
    "MOCK_DELAY_SECONDS": env.float("MOCK_PAYMENT_DELAY_SECONDS"),
}

# -----------------------------------------
# CHECKOUT
# -----------------------------------------
CHECKOUT = {
    "SHIPPING_FEE": "150.00",
    "MAX_LINE_QUANTITY": 99,
    # Pending e-wallet checkouts live in the cache this long (seconds).
    "EWALLET_PENDING_TTL": 15 * 60,
    # Per-line cart mutation lock (seconds), released when the call settles.
    "LINE_LOCK_TTL": 30,
}

# -----------------------------------------
# SELLER DASHBOARD
# -----------------------------------------
SELLER_DASHBOARD = {
    "REFRESH_INTERVAL_SECONDS": 30,
    "TOAST_SECONDS": 5,
    "PAGE_SIZE": 7,
    "RECENT_DAYS": 7,
}

NOTIFICATIONS_WEBHOOK_SECRET = (env("NOTIFICATIONS_WEBHOOK_SECRET") or "").strip()

# -----------------------------------------
# LOGGING
# -----------------------------------------
LOG_LEVEL = (env("LOG_LEVEL") or "INFO").strip().upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "console": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "console",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING" if TESTING else LOG_LEVEL,
    },
    "loggers": {
        "django": {"handlers": ["console"], "level": "WARNING", "propagate": False},
    },
}

# -----------------------------------------
# SENTRY (optional)
# -----------------------------------------
SENTRY_DSN = (env("SENTRY_DSN") or "").strip()
SENTRY_ENVIRONMENT = (env("SENTRY_ENVIRONMENT") or "development").strip()
SENTRY_TRACES_SAMPLE_RATE = float(env("SENTRY_TRACES_SAMPLE_RATE"))
SENTRY_SEND_PII = env.bool("SENTRY_SEND_PII")

if SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.django import DjangoIntegration

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        environment=SENTRY_ENVIRONMENT,
        integrations=[DjangoIntegration()],
        traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
        send_default_pii=SENTRY_SEND_PII,
    )

# -----------------------------------------
# CORS / CSRF
# -----------------------------------------
CORS_ALLOWED_ORIGINS = env.list("CORS_ALLOWED_ORIGINS")
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOW_METHODS = list(default_methods)
CORS_ALLOW_HEADERS = list(default_headers) + ["x-refurnish-signature"]

CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS")

# -----------------------------------------
# STATIC FILES
# -----------------------------------------
STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------------------------
# SWAGGER
# -----------------------------------------
SPECTACULAR_SETTINGS = {
    "TITLE": "Refurnish BFF API",
    "DESCRIPTION": "Cart, checkout, order tracking and seller dashboard for the Refurnish marketplace",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
}
