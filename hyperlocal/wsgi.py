"""
WSGI config for hyperlocal project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "hyperlocal.settings")

application = get_wsgi_application()
