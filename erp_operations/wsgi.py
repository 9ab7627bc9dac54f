"""
WSGI config for erp_operations project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'erp_operations.settings')

application = get_wsgi_application()
