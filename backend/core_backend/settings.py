"""
Django settings for the food-ordering backend.

Only the order engine apps are installed here: discount policy, client cart,
order placement/status synchronization and the customer loyalty ledger.
"""

import os
from decimal import Decimal
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("SECRET_KEY", "django-insecure-dev-only-change-me")

DEBUG = os.environ.get("DEBUG", "True").lower() in ("1", "true", "yes")

ALLOWED_HOSTS = os.environ.get("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "channels",
    "rest_framework",
    "core_backend",
    "customers",
    "discounts",
    "cart",
    "orders",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "core_backend.urls"

ASGI_APPLICATION = "core_backend.asgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("DATABASE_NAME", str(BASE_DIR / "db.sqlite3")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "order-engine",
    }
}

SESSION_ENGINE = "django.contrib.sessions.backends.cache"

CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels.layers.InMemoryChannelLayer",
    }
}

REST_FRAMEWORK = {
    "COERCE_DECIMAL_TO_STRING": True,
    "UNAUTHENTICATED_USER": None,
}

USE_TZ = True
TIME_ZONE = "Asia/Kolkata"
LANGUAGE_CODE = "en-us"

# ============================================================================
# ORDER ENGINE
# ============================================================================

ORDER_CURRENCY = "INR"
ORDER_TAX_RATE = Decimal("0.05")
ORDER_DELIVERY_FEE = Decimal("49.00")

# Flat discount per coupon code (codes are matched upper-cased)
COUPON_CODES = {
    "TASTEBUD10": Decimal("50.00"),
    "WELCOME50": Decimal("50.00"),
    "THALI2X": Decimal("100.00"),
}

# (points threshold, discount percent)
LOYALTY_DISCOUNT_TIERS = [
    (100, 10),
    (200, 20),
    (300, 30),
    (400, 40),
    (500, 60),
    (700, 70),
    (800, 80),
]

DONATION_REWARD_POINTS = 50

CART_SESSION_KEY = "cart"

ORDER_WRITE_MAX_ATTEMPTS = 3
ORDER_WRITE_RETRY_DELAY = 0.1

ORDER_NOTIFIER = "orders.services.notification_service.SignalNotifier"

# ============================================================================
# LOGGING
# ============================================================================

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} {name} {message}",
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
        "level": os.environ.get("LOG_LEVEL", "INFO"),
    },
    "loggers": {
        "django.db.backends": {
            "level": "WARNING",
        },
    },
}
