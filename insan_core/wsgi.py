"""
WSGI config for INSAN MOBILE.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'insan_core.settings')

application = get_wsgi_application()
