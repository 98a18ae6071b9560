"""WSGI config for the Supplier Pro dashboard."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "supplierpro.settings")

application = get_wsgi_application()
