"""Content publishing to a content-addressed storage service.

Provides:
  - ``ContentPublisher`` -- abstract protocol
  - ``NFTStoragePublisher`` -- HTTP client uploading CAR archives
  - ``MockContentPublisher`` -- dev/test publisher with derived ids

The archive is opaque here: a CAR file bundling the product files with
their content-hash tree.  Uploads are not retried locally.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

import aiohttp

from recdapp.core.errors import UploadFailure

logger = logging.getLogger(__name__)

_DEFAULT_ENDPOINT = "https://api.nft.storage"

Archive = Union[bytes, bytearray, str, Path]


async def read_archive(archive: Archive) -> bytes:
    """Return archive bytes; ``str``/``Path`` values are read off the loop."""
    if isinstance(archive, (bytes, bytearray)):
        return bytes(archive)
    path = Path(archive)
    try:
        return await asyncio.to_thread(path.read_bytes)
    except OSError as exc:
        raise UploadFailure(f"Cannot read archive {path}: {exc}") from exc


# ---------------------------------------------------------------------------
# Abstract publisher
# ---------------------------------------------------------------------------

class ContentPublisher(ABC):
    """Uploads an archive and returns its content identifier."""

    @abstractmethod
    async def publish(self, archive: Archive) -> str:
        """Upload *archive*; return the content id or raise ``UploadFailure``."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Clean up resources."""
        ...


# ---------------------------------------------------------------------------
# NFT.Storage HTTP publisher
# ---------------------------------------------------------------------------

class NFTStoragePublisher(ContentPublisher):
    """Uploads CAR archives to an NFT.Storage compatible endpoint.

    The bearer token comes from the ``token`` argument or the
    ``NFT_STORAGE_TOKEN`` environment variable.
    """

    def __init__(
        self,
        token: str | None = None,
        endpoint: str | None = None,
        timeout_seconds: float = 60.0,
    ) -> None:
        self._token = token or os.environ.get("NFT_STORAGE_TOKEN", "")
        self._endpoint = (endpoint or _DEFAULT_ENDPOINT).rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: aiohttp.ClientSession | None = None

        if not self._token:
            logger.warning("NFT_STORAGE_TOKEN not set -- uploads will be rejected.")

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"Authorization": f"Bearer {self._token}"},
            )
        return self._session

    async def publish(self, archive: Archive) -> str:
        payload = await read_archive(archive)
        session = await self._get_session()

        try:
            async with session.post(
                f"{self._endpoint}/upload",
                data=payload,
                headers={"Content-Type": "application/car"},
            ) as resp:
                data = await resp.json(content_type=None)
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise UploadFailure(f"Upload request failed: {exc}") from exc

        if status >= 400 or not isinstance(data, dict) or not data.get("ok", False):
            raise UploadFailure(f"Storage service rejected upload: {status} {data}")

        cid = (data.get("value") or {}).get("cid")
        if not cid:
            raise UploadFailure(f"Storage response carries no cid: {data}")

        logger.info("Archive published: cid=%s bytes=%d", cid, len(payload))
        return cid

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            logger.info("NFT.Storage publisher closed")


# ---------------------------------------------------------------------------
# Mock publisher for dev/testing
# ---------------------------------------------------------------------------

class MockContentPublisher(ContentPublisher):
    """Returns ``bafy``-prefixed ids derived from the archive's SHA-256.

    Tracks published archives by id.
    """

    def __init__(self) -> None:
        self.archives: dict[str, bytes] = {}

    async def publish(self, archive: Archive) -> str:
        payload = await read_archive(archive)
        cid = "bafy" + hashlib.sha256(payload).hexdigest()[:52]
        self.archives[cid] = payload
        logger.info("Mock archive published: cid=%s", cid)
        return cid

    async def close(self) -> None:
        self.archives.clear()
