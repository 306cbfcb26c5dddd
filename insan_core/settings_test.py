"""
Test settings for INSAN MOBILE.

SQLite, in-memory cache & channel layer, eager Celery.
"""

import tempfile

from .settings import *  # noqa: F401,F403


class DisableMigrations:
    """Build the test schema straight from the models."""

    def __contains__(self, item):
        return True

    def __getitem__(self, item):
        return None


DEBUG = False
SECRET_KEY = 'test-secret-key'
ALLOWED_HOSTS = ['*']

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

MIGRATION_MODULES = DisableMigrations()

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    }
}

CHANNEL_LAYERS = {
    'default': {
        'BACKEND': 'channels.layers.InMemoryChannelLayer',
    },
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

MEDIA_ROOT = tempfile.mkdtemp(prefix='insan-test-media-')

RATE_LIMIT_ENABLED = False

GEMINI_API_KEY = 'test-gemini-key'
