import logging
import os
import pathlib
from urllib.parse import unquote, urlparse

from google.cloud import storage

logger = logging.getLogger("rollout.storage")


class StorageError(Exception):
    pass


class StorageClient:
    """Photo object storage: Google Cloud Storage, or local disk when LOCAL_STORAGE=1 or no bucket is set."""

    def __init__(self) -> None:
        self.bucket_name = os.getenv("GCS_BUCKET_FOTOS")
        self.use_local = os.getenv("LOCAL_STORAGE", "0") == "1" or not self.bucket_name
        self.base_dir = pathlib.Path(os.getenv("LOCAL_STORAGE_DIR", "storage")).resolve()
        if self.use_local:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        self._client = storage.Client() if self.bucket_name and not self.use_local else None

    def _ensure_bucket(self):
        if not self.bucket_name or not self._client:
            raise StorageError("GCS_BUCKET_FOTOS nao configurado.")
        return self._client.bucket(self.bucket_name)

    def upload_bytes(self, content: bytes, dest_path: str, content_type: str) -> str:
        if self.use_local:
            full_path = self.base_dir / dest_path
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_bytes(content)
            return full_path.as_uri()
        bucket = self._ensure_bucket()
        blob = bucket.blob(dest_path)
        blob.upload_from_string(content, content_type=content_type)
        return f"gs://{self.bucket_name}/{dest_path}"

    @staticmethod
    def _local_path(file_url: str) -> pathlib.Path:
        # as_uri() percent-encodes non-ASCII file names
        return pathlib.Path(unquote(urlparse(file_url).path))

    def owns(self, file_url: str) -> bool:
        """True when the URL points at an object this client wrote and may remove."""
        if not file_url:
            return False
        if self.use_local:
            return file_url.startswith("file://") and self._local_path(file_url).is_relative_to(self.base_dir)
        return file_url.startswith(f"gs://{self.bucket_name}/")

    def delete(self, file_url: str) -> None:
        if file_url.startswith("file://"):
            path = self._local_path(file_url)
            if not path.exists():
                logger.warning("photo already absent path=%s", path)
                return
            path.unlink()
            logger.info("photo removed path=%s", path)
            return
        if file_url.startswith("gs://"):
            _, path = file_url.split("gs://", 1)
            bucket_name, blob_path = path.split("/", 1)
            client = self._client or storage.Client()
            client.bucket(bucket_name).blob(blob_path).delete()
            logger.info("photo removed bucket=%s blob=%s", bucket_name, blob_path)
            return
        raise StorageError("URL de arquivo nao suportada.")
