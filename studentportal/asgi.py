"""
ASGI config for studentportal project.

It exposes the ASGI callable as a module-level variable named ``application``.

For more information on this file, see
https://docs.djangoproject.com/en/5.1/howto/deployment/asgi/
"""

import os

# Import studentportal to ensure PyMySQL is loaded before Django initializes
import studentportal

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'studentportal.settings_production')

application = get_asgi_application()
