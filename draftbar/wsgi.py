"""WSGI config for the draftbar project."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'draftbar.settings')

application = get_wsgi_application()
