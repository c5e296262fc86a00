"""
WSGI config for the domainvalue project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "domainvalue.settings")

application = get_wsgi_application()
