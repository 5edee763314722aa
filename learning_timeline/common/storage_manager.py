import datetime
import logging
import os
import tempfile
from typing import Optional

from google.cloud import storage

from .ttl_cache import TTLCache

logger = logging.getLogger(__name__)

# Subtracted from the signed URL lifetime so a cached URL is never handed out
# moments before it lapses.
SIGNED_URL_SAFETY_MARGIN = 60
MIN_CACHE_TTL = 60


class StorageManager:
    """
    Access to the uploaded lecture videos in a Cloud Storage bucket.

    Signed read URLs are cached per object path for the lifetime of the
    process, minus a safety margin.
    """

    def __init__(self, bucket_name: str, project_id: Optional[str] = None,
                 signed_url_expiry: int = 3600, client=None,
                 url_cache: Optional[TTLCache] = None):
        self.client = client or storage.Client(project=project_id)
        self.bucket_name = bucket_name
        self.bucket = self.client.bucket(bucket_name)
        self.signed_url_expiry = signed_url_expiry
        self.url_cache = url_cache if url_cache is not None else TTLCache(maxsize=1024)

    def gcs_uri(self, storage_path: str) -> str:
        return f"gs://{self.bucket_name}/{storage_path}"

    def exists(self, storage_path: str) -> bool:
        return self.bucket.blob(storage_path).exists()

    def download(self, storage_path: str) -> str:
        """
        Downloads an object to a temporary local file.

        The caller owns the returned file and must delete it.
        """
        suffix = os.path.splitext(storage_path)[1] or ".mp4"
        temp_file = tempfile.NamedTemporaryFile(prefix="video-", suffix=suffix, delete=False)
        temp_file_path = temp_file.name
        temp_file.close()

        log_extra = {"extra_fields": {"storage_path": storage_path}}
        try:
            logger.info("Downloading %s to %s...", self.gcs_uri(storage_path), temp_file_path, extra=log_extra)
            self.bucket.blob(storage_path).download_to_filename(temp_file_path)
        except Exception:
            logger.error("Failed to download %s", storage_path, exc_info=True, extra=log_extra)
            if os.path.exists(temp_file_path):
                os.remove(temp_file_path)
            raise
        logger.info("Download complete: %s", temp_file_path, extra=log_extra)
        return temp_file_path

    def generate_read_url(self, storage_path: str) -> str:
        """
        Returns a V4 signed GET URL for an object, reusing a cached one while it is still valid.

        Raises:
            FileNotFoundError: if the object does not exist.
        """
        cached = self.url_cache.get(storage_path)
        if cached:
            return cached

        blob = self.bucket.blob(storage_path)
        if not blob.exists():
            raise FileNotFoundError(f"File not found: {storage_path}")

        signed_url = blob.generate_signed_url(
            version="v4",
            expiration=datetime.timedelta(seconds=self.signed_url_expiry),
            method="GET",
        )
        cache_ttl = max(MIN_CACHE_TTL, self.signed_url_expiry - SIGNED_URL_SAFETY_MARGIN)
        self.url_cache.set(storage_path, signed_url, cache_ttl)
        return signed_url

    def delete(self, storage_path: str) -> None:
        blob = self.bucket.blob(storage_path)
        if blob.exists():
            blob.delete()
            logger.info("Deleted %s", self.gcs_uri(storage_path),
                        extra={"extra_fields": {"storage_path": storage_path}})
        self.url_cache.invalidate(storage_path)
