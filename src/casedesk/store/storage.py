"""Storage API wrappers for file downloads and signed URLs.

:class:`StorageAPI` (sync) and :class:`AsyncStorageAPI` (async) cover the two
calls the dashboard needs on a bucket: download an object's bytes and mint a
time-limited signed URL for it.
"""

from __future__ import annotations

from urllib.parse import quote

from casedesk.errors import CasedeskValidationError

from .transport import AsyncStoreTransport, StoreTransport

STORAGE_PREFIX = "/storage/v1"


def _object_path(bucket: str, key: str) -> str:
    return f"{quote(bucket)}/{quote(key.lstrip('/'))}"


def _signed_url(base_url: str, body: dict | None, key: str) -> str:
    signed = (body or {}).get("signedURL") or (body or {}).get("signedUrl")
    if not signed:
        raise CasedeskValidationError(
            message=f"Storage did not return a signed URL for {key}",
            context={"storage_key": key, "body": body},
        )
    return f"{base_url}{STORAGE_PREFIX}{signed}"


class StorageAPI:
    """Synchronous wrapper for one Storage bucket.

    Parameters
    ----------
    transport:
        A configured :class:`StoreTransport` instance.
    bucket:
        Bucket name, e.g. ``"legal-bot"``.
    """

    def __init__(self, transport: StoreTransport, bucket: str) -> None:
        self._transport = transport
        self.bucket = bucket

    def download(self, key: str) -> bytes:
        """Return the raw bytes of the object stored under *key*."""
        path = f"{STORAGE_PREFIX}/object/{_object_path(self.bucket, key)}"
        return self._transport.send("GET", path).content

    def create_signed_url(self, key: str, expires_in: int) -> str:
        """Return an absolute URL granting read access for *expires_in* seconds."""
        path = f"{STORAGE_PREFIX}/object/sign/{_object_path(self.bucket, key)}"
        body = self._transport.request("POST", path, json={"expiresIn": expires_in})
        return _signed_url(self._transport.config.url, body, key)


class AsyncStorageAPI:
    """Asynchronous wrapper for one Storage bucket."""

    def __init__(self, transport: AsyncStoreTransport, bucket: str) -> None:
        self._transport = transport
        self.bucket = bucket

    async def download(self, key: str) -> bytes:
        path = f"{STORAGE_PREFIX}/object/{_object_path(self.bucket, key)}"
        response = await self._transport.send("GET", path)
        return response.content

    async def create_signed_url(self, key: str, expires_in: int) -> str:
        path = f"{STORAGE_PREFIX}/object/sign/{_object_path(self.bucket, key)}"
        body = await self._transport.request("POST", path, json={"expiresIn": expires_in})
        return _signed_url(self._transport.config.url, body, key)
