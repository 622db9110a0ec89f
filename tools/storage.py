"""
Proof Photo Storage
Local blob store for dose proof photos with a base64 fallback
"""

import asyncio
import base64
import binascii
import logging
import re
import time
from pathlib import Path
from typing import Optional, Tuple, Union

from config import settings
from errors import ErrorKind, Result, ServiceError, with_timeout


logger = logging.getLogger(__name__)


DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?:;base64)?,(?P<data>.*)$", re.DOTALL)

MIME_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}


def is_data_url(payload) -> bool:
    return isinstance(payload, str) and payload.startswith("data:")


def decode_data_url(payload: str) -> Tuple[bytes, str]:
    """Return raw bytes and a file extension for a base64 data URL"""
    match = DATA_URL_PATTERN.match(payload)
    if not match:
        raise ValueError("Invalid data URL")
    try:
        data = base64.b64decode(match.group("data"), validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}")
    extension = MIME_EXTENSIONS.get((match.group("mime") or "").lower(), "jpg")
    return data, extension


class ProofPhotoStorage:
    """
    Stores proof photos under proof-photos/<account>/ and returns a URL.

    When storage is disabled or a write fails, a data URL payload is handed
    back unchanged so the dose can still be logged with its photo.
    """

    def __init__(self, root: Optional[str] = None, base_url: Optional[str] = None):
        self.root = Path(root) if root else (Path(settings.STORAGE_DIR) if settings.STORAGE_DIR else None)
        self.base_url = (base_url if base_url is not None else settings.STORAGE_BASE_URL).rstrip("/")

    @property
    def enabled(self) -> bool:
        return self.root is not None

    @staticmethod
    def build_key(account_id, medication_id, time_slot: str, extension: str) -> str:
        millis = int(time.time() * 1000)
        file_name = f"proof_{account_id}_{medication_id}_{time_slot}_{millis}.{extension}"
        return f"proof-photos/{account_id}/{file_name}"

    def _write(self, key: str, data: bytes) -> Path:
        path = self.root / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path

    async def upload_proof_photo(
        self,
        payload: Union[bytes, str, None],
        account_id,
        medication_id,
        time_slot: str,
        extension: str = "jpg"
    ) -> Result:
        if not self.enabled:
            logger.warning("Proof photo storage not configured")
            if is_data_url(payload):
                return Result.success(payload)
            return Result.failure(ErrorKind.NOT_CONFIGURED, "Photo storage is not configured")

        if not payload:
            return Result.failure(ErrorKind.VALIDATION, "No file provided")

        try:
            if is_data_url(payload):
                data, extension = decode_data_url(payload)
            elif isinstance(payload, (bytes, bytearray)):
                data = bytes(payload)
            else:
                return Result.failure(ErrorKind.VALIDATION, "Invalid file type")

            key = self.build_key(account_id, medication_id, time_slot, extension)
            await with_timeout(asyncio.to_thread(self._write, key, data))
        except (OSError, ValueError, ServiceError) as e:
            logger.error(f"Error uploading proof photo: {e}")
            if is_data_url(payload):
                logger.warning("Using base64 fallback due to upload error")
                return Result.success(payload)
            return Result.from_exception(e)

        url = f"{self.base_url}/{key}"
        logger.info(f"Proof photo stored at {url}")
        return Result.success(url)


# Singleton instance
proof_photo_storage = ProofPhotoStorage()
