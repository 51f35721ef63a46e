from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Callable, Mapping, Protocol

import httpx

logger = logging.getLogger(__name__)


class ObjectStoreError(RuntimeError):
    """Raised when an upload could not be stored."""


@dataclass(frozen=True, slots=True)
class StoredObject:
    url: str
    name: str


class ObjectStore(Protocol):
    async def store(self, data: bytes, *, filename: str, content_type: str | None = None) -> StoredObject:
        ...


def sign_params(params: Mapping[str, str | int], api_secret: str) -> str:
    """Cloudinary request signature: SHA-1 over the sorted params followed by the secret."""

    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, ""))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


class CloudinaryObjectStore:
    """Upload files to Cloudinary and return their public HTTPS URL."""

    _UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/auto/upload"

    def __init__(
        self,
        *,
        cloud_name: str | None,
        api_key: str | None,
        api_secret: str | None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._cloud_name = cloud_name
        self._api_key = api_key
        self._api_secret = api_secret
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._clock = clock

    async def store(self, data: bytes, *, filename: str, content_type: str | None = None) -> StoredObject:
        if not (self._cloud_name and self._api_key and self._api_secret):
            raise ObjectStoreError("Object store is not configured")

        params = {"timestamp": int(self._clock())}
        form = {
            "api_key": self._api_key,
            "timestamp": str(params["timestamp"]),
            "signature": sign_params(params, self._api_secret),
        }
        files = {"file": (filename, data, content_type or "application/octet-stream")}

        try:
            response = await self._client.post(
                self._UPLOAD_URL.format(cloud_name=self._cloud_name), data=form, files=files
            )
        except httpx.HTTPError as exc:
            raise ObjectStoreError(f"Upload of {filename} failed: {exc}") from exc

        if response.status_code >= 400:
            raise ObjectStoreError(f"Object store rejected {filename} with status {response.status_code}")

        try:
            url = response.json()["secure_url"]
        except (ValueError, KeyError) as exc:
            raise ObjectStoreError(f"Object store returned no URL for {filename}") from exc

        logger.info("Stored upload %s at %s", filename, url)
        return StoredObject(url=url, name=filename)

    async def aclose(self) -> None:
        await self._client.aclose()
