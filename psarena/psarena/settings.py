from pathlib import Path
from decouple import config, Csv
from datetime import timedelta
from corsheaders.defaults import default_headers

# ─────────────────────────────────────────────
# Base
# ─────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = config("SECRET_KEY", default="dev-insecure-change-me")
DEBUG = config("DEBUG", default=False, cast=bool)

ALLOWED_HOSTS = config("ALLOWED_HOSTS", default="", cast=Csv()) or ["localhost", "127.0.0.1", "testserver"]

# ─────────────────────────────────────────────
# Installed Apps
# ─────────────────────────────────────────────
INSTALLED_APPS = [
    "corsheaders",
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    "rest_framework",

    "accounts",
    "tournaments",
    "wallet",
]

# ─────────────────────────────────────────────
# Middleware
# ─────────────────────────────────────────────
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",

    "corsheaders.middleware.CorsMiddleware",   # قبل از CommonMiddleware

    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

# ─────────────────────────────────────────────
# URLs / WSGI
# ─────────────────────────────────────────────
ROOT_URLCONF = "psarena.urls"
APPEND_SLASH = False

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "psarena.wsgi.application"

# ─────────────────────────────────────────────
# Database
# ─────────────────────────────────────────────
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / config("DATABASE_NAME", default="db.sqlite3"),
    }
}

# ─────────────────────────────────────────────
# Auth / REST / JWT
# ─────────────────────────────────────────────
AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator", "OPTIONS": {"min_length": 8}},
]

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.AllowAny",
    ),
    "EXCEPTION_HANDLER": "psarena.exceptions.api_exception_handler",
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(days=config("JWT_ACCESS_DAYS", default=7, cast=int)),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=30),
    "AUTH_HEADER_TYPES": ("Bearer",),
}

# ─────────────────────────────────────────────
# Internationalization
# ─────────────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "Asia/Tehran"
USE_I18N = True
USE_TZ = True

# ─────────────────────────────────────────────
# Static
# ─────────────────────────────────────────────
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ─────────────────────────────────────────────
# CORS
# ─────────────────────────────────────────────
CLIENT_ORIGINS = config("CLIENT_ORIGIN", default="http://localhost:5173", cast=Csv())
CORS_ALLOWED_ORIGINS = CLIENT_ORIGINS
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOW_HEADERS = list(default_headers)

# ─────────────────────────────────────────────
# Logging
# ─────────────────────────────────────────────
LOG_LEVEL = config("LOG_LEVEL", default="INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "root": {"handlers": ["console"], "level": LOG_LEVEL},
    "loggers": {
        "django": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        "wallet": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}

# ─────────────────────────────────────────────
# Payments
# ─────────────────────────────────────────────
API_BASE_URL = config("API_BASE_URL", default="http://localhost:8000").rstrip("/")

PAYMENTS = {
    "RETURN_PATH": "/wallet",
    "TIMEOUT": config("GATEWAY_TIMEOUT", default=15, cast=int),
    "GATEWAYS": {
        "zarrinpal": {
            "MERCHANT_ID": config("ZARRINPAL_MERCHANT_ID", default=""),
            "TEST_MODE": config("ZARRINPAL_TEST_MODE", default=False, cast=bool),
        },
        "payment4": {
            "API_KEY": config("PAYMENT4_API_KEY", default=""),
            "TEST_MODE": config("PAYMENT4_TEST_MODE", default=False, cast=bool),
            "SANDBOX": config("PAYMENT4_SANDBOX", default=DEBUG, cast=bool),
        },
    },
}

# ─────────────────────────────────────────────
# SMS / OTP
# ─────────────────────────────────────────────
SMS_DRY_RUN = config("SMS_DRY_RUN", default=True, cast=bool)
MELIPAYAMAK = {
    "WSDL": "http://api.payamak-panel.com/post/send.asmx?wsdl",
    "USERNAME": config("MELIPAYAMAK_USERNAME", default=""),
    "PASSWORD": config("MELIPAYAMAK_PASSWORD", default=""),
    "BODY_ID": config("MELIPAYAMAK_BODY_ID", default=0, cast=int),
}

OTP_COOLDOWN_SECONDS = 60
OTP_EXPIRY_MINUTES = 5
OTP_MAX_ATTEMPTS = 5
OTP_VERIFIED_WINDOW_MINUTES = 10

# ─────────────────────────────────────────────
# PSN
# ─────────────────────────────────────────────
PSN_TIMEOUT = config("PSN_TIMEOUT", default=15, cast=int)
