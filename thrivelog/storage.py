"""Reflection photos and voice notes in Supabase Storage."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import time
from typing import Any, Callable, Optional

import httpx
from storage3.utils import StorageException
from supabase import Client, create_client

from .config import STORAGE_BUCKET, SUPABASE_KEY, SUPABASE_URL
from .errors import NotFoundError, StorageError
from .schemas import MediaUpload
from .store._common import require_user

logger = logging.getLogger(__name__)

UPLOAD_MAX_RETRIES = 2
UPLOAD_RETRY_DELAY_SECONDS = 2.0

TIMEOUT_MESSAGE = "Upload timed out. Please check your internet connection and try again."
NETWORK_MESSAGE = "Network error. Please check your internet connection and try again."

_TIMEOUT_MARKERS = ("timeout", "timed out", "504", "408")


class _UploadTimeout(Exception):
    pass


def _extension(filename: Optional[str], content_type: Optional[str]) -> str:
    if filename and "." in filename:
        return filename.rsplit(".", 1)[1].lower()
    guessed = mimetypes.guess_extension(content_type or "") if content_type else None
    return guessed.lstrip(".") if guessed else "bin"


def _looks_like_timeout(exc: StorageException) -> bool:
    detail = str(exc).lower()
    return any(marker in detail for marker in _TIMEOUT_MARKERS)


class ReflectionStorage:
    """Uploads land at ``<user_id>/<epoch ms>.<ext>`` inside the bucket."""

    def __init__(
        self,
        base_url: str = SUPABASE_URL,
        api_key: str = SUPABASE_KEY,
        bucket: str = STORAGE_BUCKET,
        retry_delay: float = UPLOAD_RETRY_DELAY_SECONDS,
        clock: Callable[[], float] = time.time,
        client: Optional[Client] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.bucket = bucket
        self.retry_delay = retry_delay
        self._clock = clock
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self.base_url and self.api_key)

    def _bucket(self) -> Any:
        if self._client is None:
            if not self.configured:
                raise StorageError("Storage is not configured")
            self._client = create_client(self.base_url, self.api_key)
        return self._client.storage.from_(self.bucket)

    def object_path(self, user_id: str, filename: Optional[str], content_type: Optional[str]) -> str:
        return f"{user_id}/{int(self._clock() * 1000)}.{_extension(filename, content_type)}"

    async def upload(
        self,
        user_id: Optional[str],
        data: bytes,
        filename: Optional[str] = None,
        content_type: str = "application/octet-stream",
    ) -> MediaUpload:
        """Upload a file and return its public URL.

        Timeouts are retried up to twice with a fixed delay. Final timeouts
        and network failures are reported with a friendly message.
        """
        user_id = require_user(user_id)
        bucket = self._bucket()

        path = self.object_path(user_id, filename, content_type)
        for attempt in range(UPLOAD_MAX_RETRIES + 1):
            try:
                await self._put(bucket, path, data, content_type)
                break
            except _UploadTimeout as exc:
                if attempt == UPLOAD_MAX_RETRIES:
                    raise StorageError(TIMEOUT_MESSAGE) from exc
                logger.warning(
                    "Upload of %s timed out (attempt %d/%d), retrying",
                    path,
                    attempt + 1,
                    UPLOAD_MAX_RETRIES + 1,
                )
                await asyncio.sleep(self.retry_delay)

        public_url = await asyncio.to_thread(bucket.get_public_url, path)
        return MediaUpload(url=public_url.rstrip("?"), path=path)

    async def _put(self, bucket: Any, path: str, data: bytes, content_type: str) -> None:
        file_options = {
            "content-type": content_type,
            "cache-control": "3600",
            "upsert": "false",
        }
        try:
            await asyncio.to_thread(bucket.upload, path, data, file_options)
        except httpx.TimeoutException as exc:
            raise _UploadTimeout(str(exc)) from exc
        except httpx.TransportError as exc:
            raise StorageError(NETWORK_MESSAGE) from exc
        except StorageException as exc:
            if _looks_like_timeout(exc):
                raise _UploadTimeout(str(exc)) from exc
            raise StorageError(f"Upload failed: {exc}") from exc

    async def delete(self, user_id: Optional[str], file_url: str) -> bool:
        """Remove a file previously uploaded by ``user_id``."""
        user_id = require_user(user_id)
        file_name = file_url.rstrip("/").rsplit("/", 1)[-1]
        if not file_name:
            raise NotFoundError(f"No file in {file_url!r}")
        path = f"{user_id}/{file_name}"
        bucket = self._bucket()

        try:
            await asyncio.to_thread(bucket.remove, [path])
        except httpx.TimeoutException as exc:
            raise StorageError("Delete timed out. Please try again.") from exc
        except httpx.TransportError as exc:
            raise StorageError(NETWORK_MESSAGE) from exc
        except StorageException as exc:
            raise StorageError(f"Delete failed: {exc}") from exc
        return True
