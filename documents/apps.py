import atexit

from django.apps import AppConfig, apps
from django.conf import settings


class DocumentsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'documents'
    verbose_name = 'Student Documents'
    blob_storage = None

    def ready(self):
        from .storage import build_blob_storage

        self.blob_storage = build_blob_storage(settings)
        atexit.register(self.blob_storage.close)


def get_blob_storage():
    """The process-wide BlobStorage built at startup"""
    return apps.get_app_config('documents').blob_storage
