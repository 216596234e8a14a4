"""
Blob storage for uploaded student documents.

Files go to a Supabase Storage bucket when one is configured and reachable,
otherwise to a directory on local disk that the site serves back under
LOCAL_UPLOAD_URL. ``BlobStorage.store`` tries the two paths in order and
returns a ``StoredFile`` tagged with the method that served it.
"""
import logging
import os
import re
import time
from urllib.parse import quote

import requests
from django.core.exceptions import SuspiciousFileOperation
from django.core.files.base import ContentFile
from django.core.files.storage import FileSystemStorage
from django.utils.text import get_valid_filename

from education.exceptions import ValidationError, StorageFailure

logger = logging.getLogger(__name__)

PLACEHOLDER_URL = 'your_supabase_url'


class BucketNotFound(requests.exceptions.HTTPError):
    """The target bucket does not exist yet"""


class StoredFile:
    REMOTE = 'remote'
    LOCAL = 'local'

    def __init__(self, method, url, key):
        self.method = method
        self.url = url
        self.key = key

    def __repr__(self):
        return f"StoredFile(method={self.method!r}, key={self.key!r})"


def build_object_key(folder, key_prefix, filename):
    """
    ``{folder}/{prefix}_{timestamp_ms}_{filename}``

    Slashes and other separators in the prefix become '-' and the filename
    is reduced to a safe basename, so the key never leaves its folder.
    """
    prefix = re.sub(r'[^A-Za-z0-9_.-]+', '-', str(key_prefix or '')).strip('-.') or 'file'
    try:
        name = get_valid_filename(os.path.basename(filename or ''))
    except SuspiciousFileOperation:
        name = 'upload'
    return f"{folder}/{prefix}_{int(time.time() * 1000)}_{name}"


class SupabaseStorageClient:
    """
    Client for the Supabase Storage REST API.

    One ``requests.Session`` is reused for every call; ``close`` releases it.
    """

    def __init__(self, base_url, service_key, bucket, timeout=30, session=None):
        self.base_url = (base_url or '').rstrip('/')
        self.service_key = service_key or ''
        self.bucket = bucket
        self.timeout = timeout
        self.session = session or requests.Session()
        if self.service_key:
            self.session.headers.update({
                'Authorization': f'Bearer {self.service_key}',
                'apikey': self.service_key,
            })

    def is_configured(self):
        return bool(self.base_url and self.service_key) and self.base_url != PLACEHOLDER_URL

    def _object_url(self, key, action='object'):
        return f"{self.base_url}/storage/v1/{action}/{self.bucket}/{quote(key)}"

    def upload(self, key, content, content_type):
        response = self.session.post(
            self._object_url(key),
            data=content,
            headers={'Content-Type': content_type, 'x-upsert': 'false'},
            timeout=self.timeout,
        )
        if response.status_code in (400, 404) and 'bucket not found' in response.text.lower():
            raise BucketNotFound(f"Bucket '{self.bucket}' not found", response=response)
        response.raise_for_status()

    def create_bucket(self, file_size_limit):
        response = self.session.post(
            f"{self.base_url}/storage/v1/bucket",
            json={
                'id': self.bucket,
                'name': self.bucket,
                'public': True,
                'file_size_limit': file_size_limit,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        logger.info(f"Created storage bucket '{self.bucket}'")

    def create_signed_url(self, key, expires_in):
        response = self.session.post(
            self._object_url(key, action='object/sign'),
            json={'expiresIn': expires_in},
            timeout=self.timeout,
        )
        response.raise_for_status()
        signed_path = response.json().get('signedURL')
        if not signed_path:
            raise requests.exceptions.InvalidJSONError('No signedURL in signing response', response=response)
        return f"{self.base_url}/storage/v1{signed_path}"

    def public_url(self, key):
        return self._object_url(key, action='object/public')

    def remove(self, keys):
        response = self.session.delete(
            f"{self.base_url}/storage/v1/object/{self.bucket}",
            json={'prefixes': list(keys)},
            timeout=self.timeout,
        )
        response.raise_for_status()

    def close(self):
        self.session.close()


class BlobStorage:
    """
    Remote-then-local file storage.

    ``client`` may be None, in which case every file is stored locally.
    """

    def __init__(self, client, local_root, local_url, max_upload_size, signed_url_expiry):
        self.client = client
        self.local = FileSystemStorage(location=local_root, base_url=local_url)
        self.max_upload_size = max_upload_size
        self.signed_url_expiry = signed_url_expiry

    def store(self, uploaded_file, folder, key_prefix):
        """Store the file and return a StoredFile; raises StorageFailure if both paths fail"""
        content = b''.join(uploaded_file.chunks())
        if not content:
            raise ValidationError('File is required', details='The uploaded file is empty')

        key = build_object_key(folder, key_prefix, uploaded_file.name)
        content_type = getattr(uploaded_file, 'content_type', None) or 'application/octet-stream'

        stored = self._try_remote(key, content, content_type)
        if stored is None:
            stored = self._try_local(key, content)

        logger.info(f"Stored {key} using {stored.method} storage")
        return stored

    def _try_remote(self, key, content, content_type):
        """Upload to the bucket; None when not configured or on any remote error"""
        if self.client is None or not self.client.is_configured():
            logger.info("Remote storage not configured, using local storage")
            return None

        try:
            try:
                self.client.upload(key, content, content_type)
            except BucketNotFound:
                self.client.create_bucket(self.max_upload_size)
                self.client.upload(key, content, content_type)
        except requests.exceptions.RequestException as e:
            logger.warning(f"Remote upload of {key} failed, falling back to local storage: {str(e)}")
            return None

        return StoredFile(StoredFile.REMOTE, self._retrieval_url(key), key)

    def _retrieval_url(self, key):
        try:
            return self.client.create_signed_url(key, self.signed_url_expiry)
        except requests.exceptions.RequestException as e:
            logger.warning(f"Signing {key} failed, using public URL: {str(e)}")
            return self.client.public_url(key)

    def _try_local(self, key, content):
        """Write under the local upload root; raises StorageFailure"""
        try:
            name = self.local.save(key, ContentFile(content))
        except (OSError, SuspiciousFileOperation) as e:
            logger.error(f"Local storage of {key} failed: {str(e)}", exc_info=True)
            raise StorageFailure('File storage failed', details=f'Local storage failed: {str(e)}')
        return StoredFile(StoredFile.LOCAL, self.local.url(name), name)

    def discard(self, stored):
        """Best-effort removal of a stored file; failures are only logged"""
        try:
            if stored.method == StoredFile.REMOTE:
                self.client.remove([stored.key])
            else:
                self.local.delete(stored.key)
        except (requests.exceptions.RequestException, OSError) as e:
            logger.warning(f"Failed to clean up {stored.method} file {stored.key}: {str(e)}")
        else:
            logger.info(f"Cleaned up {stored.method} file {stored.key}")

    def close(self):
        if self.client is not None:
            self.client.close()


def build_blob_storage(settings):
    client = SupabaseStorageClient(
        settings.SUPABASE_URL,
        settings.SUPABASE_SERVICE_ROLE_KEY,
        settings.STORAGE_BUCKET,
        timeout=settings.STORAGE_TIMEOUT,
    )
    return BlobStorage(
        client,
        local_root=settings.LOCAL_UPLOAD_ROOT,
        local_url=settings.LOCAL_UPLOAD_URL,
        max_upload_size=settings.DOCUMENT_MAX_UPLOAD_SIZE,
        signed_url_expiry=settings.STORAGE_SIGNED_URL_EXPIRY,
    )
