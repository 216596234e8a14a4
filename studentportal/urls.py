"""
URL configuration for studentportal project.

The JSON API is mounted at the site root so existing portal clients keep
their paths. Local fallback uploads are served from LOCAL_UPLOAD_URL.
"""
from django.conf import settings
from django.contrib import admin
from django.urls import path, include, re_path

from documents.api_views import local_upload

urlpatterns = [
    path('django-admin/', admin.site.urls),
    path('', include('education.api_urls')),
    path('', include('accounts.api_urls')),
    path('', include('documents.api_urls')),
    re_path(
        r'^%s(?P<path>.*)$' % settings.LOCAL_UPLOAD_URL.lstrip('/'),
        local_upload,
        name='local_uploads',
    ),
]
