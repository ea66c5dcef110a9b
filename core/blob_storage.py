"""Public blob storage uploads and gallery bookkeeping."""

from __future__ import annotations

import re
import time
from typing import Any, Callable, Dict, Optional

import requests

from core.database import session_scope
from models.image_record import ImageRecord
from utils.logger import setup_logger

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "video/mp4": "mp4",
}


class BlobUploadError(RuntimeError):
    pass


def extension_for(content_type: Optional[str], default: str = "png") -> str:
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime in EXTENSIONS:
        return EXTENSIONS[mime]
    subtype = mime.split("/")[-1] if "/" in mime else ""
    return re.sub(r"[^a-z0-9]", "", subtype) or default


def blob_pathname(filename: str, *, folder: str = "images", prefix: str = "", timestamp_ms: Optional[int] = None) -> str:
    """``{folder}/{prefix}{timestamp}-{safe name}``"""
    stamp = int(time.time() * 1000) if timestamp_ms is None else timestamp_ms
    safe_name = re.sub(r"[^a-zA-Z0-9.-]", "-", filename)
    return f"{folder}/{prefix}{stamp}-{safe_name}"


class BlobStorageClient:
    """Public uploads through the blob store's REST ``PUT`` endpoint."""

    API_VERSION = "7"

    def __init__(
        self,
        token: str,
        *,
        api_base: str = "https://blob.vercel-storage.com",
        timeout: float = 60,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.token = token
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def put(self, pathname: str, data: bytes, content_type: str) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self.token}",
            "x-api-version": self.API_VERSION,
            "x-content-type": content_type,
            "x-add-random-suffix": "1",
        }
        try:
            response = self.session.put(f"{self.api_base}/{pathname}", data=data, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise BlobUploadError(f"Upload of {pathname} failed: {exc}") from exc
        if not 200 <= response.status_code < 300:
            raise BlobUploadError(f"Upload of {pathname} failed with HTTP {response.status_code}: {response.text}")
        payload = response.json()
        if not payload.get("url"):
            raise BlobUploadError(f"Upload of {pathname} returned no URL")
        return payload


class MediaLibrary:
    """Uploads images to blob storage and records them in the ``images`` table."""

    def __init__(
        self,
        blob_client: BlobStorageClient,
        session_factory: Optional[Callable[[], Any]] = None,
        *,
        folder: str = "ai-generated",
        logger=None,
    ) -> None:
        self.blob_client = blob_client
        self.session_factory = session_factory
        self.folder = folder
        self.logger = logger or setup_logger(self.__class__.__name__)

    def upload_image(
        self,
        data: bytes,
        *,
        filename: str,
        content_type: str,
        title: str = "",
        alt_tag: str = "",
        description: str = "",
        width: Optional[int] = None,
        height: Optional[int] = None,
        prefix: str = "",
    ) -> str:
        pathname = blob_pathname(filename, folder=self.folder, prefix=prefix)
        blob = self.blob_client.put(pathname, data, content_type)
        url = blob["url"]
        self._record(
            url=url,
            title=title,
            alt_tag=alt_tag,
            description=description,
            width=width,
            height=height,
            size=len(data),
            format=extension_for(content_type),
        )
        return url

    def _record(self, **fields: Any) -> None:
        if not self.session_factory:
            return
        with session_scope(self.session_factory) as session:
            session.add(ImageRecord(folder=self.folder, **fields))
