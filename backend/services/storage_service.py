"""Supabase Storage REST client for video blobs.

Objects live in a single private bucket under
``clients/{client_id}/{month}-{year}/{filename}``. Clients never read the
bucket directly; they receive short-lived signed URLs.
"""

import logging
import re
from typing import Any
from urllib.parse import quote

import httpx

from config import get_settings
from exceptions import NotFoundError, UpstreamFailure

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = (".mp4", ".mov", ".avi", ".wmv", ".mkv", ".webm")
PLACEHOLDER_FILE = ".emptyFolderPlaceholder"


def storage_path_for(client_id: str, month: int, year: int, filename: str) -> str:
    """Build the blob key for an upload. Path separators in the filename are dropped."""
    safe_name = re.sub(r"[\\/]+", "_", filename).strip() or "video.mp4"
    return f"clients/{client_id}/{month}-{year}/{safe_name}"


def is_video_file(name: str) -> bool:
    return name.lower().endswith(VIDEO_EXTENSIONS)


class StorageService:
    """Thin async wrapper over the Storage REST endpoints.

    Failures raise UpstreamFailure (or NotFoundError for missing objects) so
    callers decide whether a storage error is fatal.
    """

    def __init__(self, bucket: str | None = None):
        settings = get_settings()
        self.bucket = bucket or settings.storage_bucket
        self.base_url = f"{settings.supabase_url.rstrip('/')}/storage/v1"
        self.enabled = settings.supabase_enabled
        self._key = settings.supabase_service_key

    def _headers(self, **extra: str) -> dict[str, str]:
        return {"apikey": self._key, "Authorization": f"Bearer {self._key}", **extra}

    def _object_url(self, kind: str, path: str) -> str:
        return f"{self.base_url}/object/{kind}{self.bucket}/{quote(path)}"

    def _require_enabled(self) -> None:
        if not self.enabled:
            raise UpstreamFailure("Storage is not configured")

    async def _request(self, method: str, url: str, timeout: float = 30.0, **kwargs: Any) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Storage request %s %s failed: %s", method, url, e)
            raise UpstreamFailure("Storage service unavailable", details={"error": str(e)})

    @staticmethod
    def _check(resp: httpx.Response, action: str, path: str = "") -> Any:
        if resp.status_code in (400, 404) and "not found" in resp.text.lower():
            raise NotFoundError("File not found in storage")
        if not resp.is_success:
            logger.error("Storage %s failed for %s: %s %s", action, path, resp.status_code, resp.text)
            raise UpstreamFailure(
                f"Storage {action} failed",
                details={"status": resp.status_code, "body": resp.text[:500]},
            )
        return resp.json() if resp.content else None

    async def upload(self, path: str, content: bytes, content_type: str = "video/mp4") -> str:
        """Store bytes at ``path`` (overwriting). Returns the path."""
        self._require_enabled()
        resp = await self._request(
            "POST",
            self._object_url("", path),
            timeout=300.0,
            headers=self._headers(**{"Content-Type": content_type, "x-upsert": "true"}),
            content=content,
        )
        self._check(resp, "upload", path)
        logger.info("Uploaded %d bytes to %s/%s", len(content), self.bucket, path)
        return path

    async def remove(self, paths: list[str]) -> None:
        self._require_enabled()
        resp = await self._request(
            "DELETE",
            f"{self.base_url}/object/{self.bucket}",
            headers=self._headers(),
            json={"prefixes": paths},
        )
        self._check(resp, "delete", ", ".join(paths))

    async def create_signed_url(self, path: str, expires_in: int | None = None) -> str:
        """Return an absolute, time-limited download URL for ``path``."""
        self._require_enabled()
        expires_in = expires_in or get_settings().signed_url_expire_seconds
        resp = await self._request(
            "POST",
            self._object_url("sign/", path),
            timeout=10.0,
            headers=self._headers(),
            json={"expiresIn": expires_in},
        )
        data = self._check(resp, "signed url", path) or {}
        signed = data.get("signedURL") or data.get("signedUrl")
        if not signed:
            raise UpstreamFailure("Storage returned no signed URL", details=data)
        if signed.startswith("http"):
            return signed
        return f"{self.base_url}{signed if signed.startswith('/') else '/' + signed}"

    async def list(self, prefix: str = "", limit: int = 1000) -> list[dict]:
        """List one level under ``prefix``. Folders come back with ``id`` None."""
        self._require_enabled()
        resp = await self._request(
            "POST",
            f"{self.base_url}/object/list/{self.bucket}",
            headers=self._headers(),
            json={
                "prefix": prefix,
                "limit": limit,
                "offset": 0,
                "sortBy": {"column": "name", "order": "asc"},
            },
        )
        return self._check(resp, "list", prefix) or []

    async def ensure_bucket(self) -> bool:
        """Create the private bucket if missing. Returns True when it was created."""
        self._require_enabled()
        resp = await self._request("GET", f"{self.base_url}/bucket", timeout=10.0, headers=self._headers())
        buckets = self._check(resp, "list buckets") or []
        if any(b.get("name") == self.bucket for b in buckets):
            return False
        resp = await self._request(
            "POST",
            f"{self.base_url}/bucket",
            timeout=10.0,
            headers=self._headers(),
            json={"id": self.bucket, "name": self.bucket, "public": False},
        )
        self._check(resp, "create bucket", self.bucket)
        logger.info("Created storage bucket %s", self.bucket)
        return True


def get_storage_service() -> StorageService:
    """FastAPI dependency; overridden in tests."""
    return StorageService()
