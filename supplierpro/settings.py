"""
Django settings for the Supplier Pro dashboard.

Every AWS and deployment value is read from the environment so the same build
runs locally and in the hosted environment.
"""
import os
from pathlib import Path

from django.core.exceptions import ImproperlyConfigured

BASE_DIR = Path(__file__).resolve().parent.parent

DEBUG = os.environ.get("DJANGO_DEBUG", "false").lower() in ("1", "true", "yes")

# The development key is only ever used with DEBUG on.
SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY")
if not SECRET_KEY:
    if not DEBUG:
        raise ImproperlyConfigured("DJANGO_SECRET_KEY must be set when DJANGO_DEBUG is off")
    SECRET_KEY = "supplier-pro-dev-key-change-me"

ALLOWED_HOSTS = [h for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "supplierapp",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "supplierapp.auth_middleware.CognitoLoginRequiredMiddleware",
]

ROOT_URLCONF = "supplierpro.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.messages.context_processors.messages",
                "supplierapp.context_processors.navigation",
            ],
        },
    },
]

WSGI_APPLICATION = "supplierpro.wsgi.application"

# Rows live in DynamoDB; Django itself keeps no relational state.
DATABASES = {}
SESSION_ENGINE = "django.contrib.sessions.backends.signed_cookies"
MESSAGE_STORAGE = "django.contrib.messages.storage.session.SessionStorage"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

# AWS
AWS_REGION = os.environ.get("AWS_REGION", "us-east-1")
AWS_S3_BUCKET_NAME = os.environ.get("AWS_S3_BUCKET_NAME", "contract-qr-codes")
CONTRACTS_TABLE = os.environ.get("CONTRACTS_TABLE", "contracts")
ISSUES_TABLE = os.environ.get("ISSUES_TABLE", "contract_issues")
AUDIT_LOGS_TABLE = os.environ.get("AUDIT_LOGS_TABLE", "audit_logs")

COGNITO_REGION = os.environ.get("COGNITO_REGION", AWS_REGION)
COGNITO_USER_POOL_ID = os.environ.get("COGNITO_USER_POOL_ID", "")
COGNITO_CLIENT_ID = os.environ.get("COGNITO_CLIENT_ID", "")
COGNITO_ADMIN_GROUP = os.environ.get("COGNITO_ADMIN_GROUP", "admin")
COGNITO_SUPPLIER_GROUP = os.environ.get("COGNITO_SUPPLIER_GROUP", "supplier")

QR_MAX_UPLOAD_BYTES = int(os.environ.get("QR_MAX_UPLOAD_BYTES", 2 * 1024 * 1024))
QR_SIGNED_URL_EXPIRY = int(os.environ.get("QR_SIGNED_URL_EXPIRY", 3600))

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "loggers": {
        "supplierapp": {
            "handlers": ["console"],
            "level": os.environ.get("SUPPLIERPRO_LOG_LEVEL", "INFO"),
            "propagate": True,
        },
    },
}
