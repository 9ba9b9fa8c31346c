"""
Django settings for Qwikker Loyalty tests.
"""

SECRET_KEY = "test-secret-key-for-qwikker-loyalty-tests"

DEBUG = True

ALLOWED_HOSTS = [".qwikker.com", "testserver", "localhost"]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "django.contrib.sessions",
    "django.contrib.messages",
    "qwikker_loyalty",
]

MIDDLEWARE = [
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "qwikker_loyalty.tenancy.CityTenantMiddleware",
]

ROOT_URLCONF = "qwikker_loyalty.tests.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = "Europe/London"

# Rate limits high enough that ledger tests can earn repeatedly; tests for
# the limits themselves lower them through the settings fixture.
QWIKKER_LOYALTY = {
    "BASE_DOMAIN": "qwikker.com",
    "ALLOWED_CITIES": ["bournemouth", "calgary"],
    "EARN_RATE_LIMIT_PER_USER_PER_HOUR": 1000,
    "EARN_RATE_LIMIT_PER_IP_PER_HOUR": 1000,
    "IP_VELOCITY_THRESHOLD": 1000,
    "CONSUME_RATE_LIMIT_MINUTES": 0,
    "WALLET_PASS_BACKEND": "qwikker_loyalty.tests.fakes.FakeWalletBackend",
    "NOTIFICATION_BACKEND": "qwikker_loyalty.tests.fakes.FakeNotifier",
}
