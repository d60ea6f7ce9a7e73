"""
Object storage for user profile photos.

Buckets are directories under ``STORAGE_DIR`` served read-only at
``/storage/<bucket>/``. Uploads never overwrite an existing object unless
``upsert`` is requested.
"""

import logging
import os
import time
from typing import Iterable, List, Optional

from triptrack.config import Settings
from triptrack.errors import FormError, StorageError

logger = logging.getLogger("triptrack.storage")

STORAGE_ROUTE = "/storage"


class ObjectStorage:
    def __init__(self, root_dir: str, base_url: str):
        self.root_dir = root_dir
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "ObjectStorage":
        return cls(settings.storage_dir, settings.base_url)

    def _object_path(self, bucket: str, path: str) -> str:
        name = os.path.basename(path)
        if not name or name != path or name in (".", ".."):
            raise StorageError(f"Invalid object name: {path!r}")
        return os.path.join(self.root_dir, bucket, name)

    def upload(self, bucket: str, path: str, data: bytes, upsert: bool = False) -> str:
        target = self._object_path(bucket, path)
        os.makedirs(os.path.dirname(target), exist_ok=True)
        mode = "wb" if upsert else "xb"
        try:
            with open(target, mode) as fh:
                fh.write(data)
        except FileExistsError:
            raise StorageError("The resource already exists")
        except OSError as e:
            raise StorageError(f"Upload failed: {e}")
        logger.debug("Stored %s/%s (%d bytes)", bucket, path, len(data))
        return path

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}{STORAGE_ROUTE}/{bucket}/{path}"

    def remove(self, bucket: str, paths: Iterable[str]) -> List[str]:
        removed = []
        for path in paths:
            target = self._object_path(bucket, path)
            try:
                os.remove(target)
            except FileNotFoundError:
                raise StorageError(f"Object not found: {bucket}/{path}")
            except OSError as e:
                raise StorageError(f"Delete failed: {e}")
            removed.append(path)
        return removed


def validate_photo(content_type: Optional[str], size: int, max_bytes: int):
    if not content_type or not content_type.startswith("image/"):
        raise FormError("Please select an image file")
    if size > max_bytes:
        raise FormError(f"File size must be less than {max_bytes // (1024 * 1024)}MB")


def photo_object_name(user_id: int, filename: Optional[str], now_ms: Optional[int] = None) -> str:
    ext = (filename or "").rsplit(".", 1)[-1].lower() if "." in (filename or "") else "bin"
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{user_id}-{now_ms}.{ext}"


def upload_user_photo(storage: ObjectStorage, settings: Settings, user_id: int, filename: Optional[str],
                      content_type: Optional[str], data: bytes) -> str:
    """Validate and upload a profile photo, returning its public URL."""
    validate_photo(content_type, len(data), settings.max_photo_bytes)
    name = photo_object_name(user_id, filename)
    try:
        storage.upload(settings.photo_bucket, name, data, upsert=False)
    except StorageError:
        logger.exception("Error uploading photo for user %s", user_id)
        raise
    return storage.get_public_url(settings.photo_bucket, name)


def delete_user_photo(storage: ObjectStorage, settings: Settings, photo_url: Optional[str]):
    """Best effort: failures are logged and never raised."""
    if not photo_url:
        return
    name = photo_url.rstrip("/").split("/")[-1]
    if not name:
        logger.warning("Could not extract filename from URL: %s", photo_url)
        return
    try:
        storage.remove(settings.photo_bucket, [name])
    except StorageError as e:
        logger.warning("Error deleting photo %s: %s", photo_url, e)
