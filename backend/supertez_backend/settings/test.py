from .settings import *


class DisableMigrations:
    """Build the test schema straight from the models."""

    def __contains__(self, item):
        return True

    def __getitem__(self, item):
        return None


DEBUG = False
SECRET_KEY = "test-secret-key"

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}
MIGRATION_MODULES = DisableMigrations()

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

CHANNEL_LAYERS = {
    "default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}
}
CACHES = {
    "default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

MEDIA_ROOT = BASE_DIR / 'test-media'

PAYPAL_CLIENT_ID = "test-client"
PAYPAL_CLIENT_SECRET = "test-secret"
PAYPAL_PRODUCT_ID = "PROD-TEST"
RESEND_API_KEY = "re_test"
EMAIL_FROM = "Supertez <noreply@supertez.test>"
TWILIO_ACCOUNT_SID = "ACtest"
TWILIO_AUTH_TOKEN = "token"
TWILIO_FROM_NUMBER = "+15550000000"
