"""Cloudinary implementation of StorageProvider.

Uses the signed upload REST endpoint directly through HttpClient: the
signature is SHA-1 over the sorted signed params followed by the API secret.
"""

import hashlib
from typing import Optional

import httpx

from config import StorageSettings
from errors import StorageError
from infrastructure.http_client import HttpClient
from shared.datetime_utils import Clock, utcnow
from shared.logging import get_logger

log = get_logger(__name__)

_UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"


def sign_params(params: dict, api_secret: str) -> str:
    """Cloudinary request signature for *params*."""
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


class CloudinaryStorage:
    def __init__(
        self,
        settings: StorageSettings,
        http_client: HttpClient,
        clock: Clock = utcnow,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._clock = clock

    async def upload(self, local_path: str) -> str:
        if not self._settings.is_configured:
            log.error("storage_upload_failed", reason="not_configured")
            raise StorageError("Image storage is not configured")

        params = {
            "folder": self._settings.cloudinary_folder,
            "timestamp": int(self._clock().timestamp()),
        }
        data = {
            **params,
            "api_key": self._settings.cloudinary_api_key,
            "signature": sign_params(params, self._settings.cloudinary_api_secret),
        }
        url = _UPLOAD_URL.format(cloud_name=self._settings.cloudinary_cloud_name)

        try:
            with open(local_path, "rb") as fh:
                response = await self._http.post(
                    url, data=data, files={"file": fh}
                )
        except (OSError, httpx.HTTPError) as e:
            log.error(
                "storage_upload_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StorageError("Failed to upload image") from e

        secure_url: Optional[str] = None
        if response.status_code == 200:
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                secure_url = body.get("secure_url")
        if not secure_url:
            log.error(
                "storage_upload_failed",
                status_code=response.status_code,
                response=response.text[:200],
            )
            raise StorageError("Failed to upload image")

        log.info("storage_upload_success", url=secure_url)
        return secure_url
