"""
Proxy cache for externally hosted 360° images.
acquire(url) fetches a remote image once and stores it under a name derived from the
URL (name-based UUID + extension); later calls for the same URL are served from the
store without touching the network. resolve(name) returns what the serve endpoint streams.
"""
import hashlib
import logging
import mimetypes
import posixpath
import time
import uuid
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Callable, Iterator, Optional
from urllib.parse import urlsplit

import httpx

from app.config import settings
from app.core.errors import FetchError, ImageNotFound, InvalidInput
from app.core.image_store import FileSystemImageStore, ImageStore

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".jpg"
DEFAULT_MEDIA_TYPE = "image/jpeg"
MAX_EXTENSION_LENGTH = 5  # including the dot; longer suffixes are not real extensions
MAX_HOSTNAME_LENGTH = 253
MAX_LABEL_LENGTH = 63


def image_id_for_url(url: str) -> str:
    """Name-based (MD5, version 3) UUID of the URL bytes, stable across processes."""
    digest = hashlib.md5(url.encode("utf-8")).digest()
    return str(uuid.UUID(bytes=digest, version=3))


def extension_for_url(url: str) -> str:
    """File extension from the URL path (query and fragment ignored), '.jpg' if implausible."""
    path = urlsplit(url).path
    ext = posixpath.splitext(posixpath.basename(path))[1]
    if not ext or len(ext) > MAX_EXTENSION_LENGTH or not (ext[1:].isascii() and ext[1:].isalnum()):
        return DEFAULT_EXTENSION
    # Case preserved so names match files already in uploads/360
    return ext


def filename_for_url(url: str) -> str:
    return image_id_for_url(url) + extension_for_url(url)


def media_type_for(name: str) -> str:
    guessed, _ = mimetypes.guess_type(name)
    if guessed and guessed.startswith("image/"):
        return guessed
    return DEFAULT_MEDIA_TYPE


@dataclass(frozen=True)
class ResolvedImage:
    name: str
    media_type: str
    size: int
    path: Optional[Path] = None
    data: Optional[bytes] = None


class HttpImageFetcher:
    """Streams a remote image body with httpx. Errors propagate as httpx.HTTPError."""

    def __init__(self, timeout: float = 15.0, client: Optional[httpx.Client] = None):
        self.timeout = timeout
        self._client = client

    def iter_bytes(self, url: str) -> Iterator[bytes]:
        if self._client is not None:
            yield from self._stream(self._client, url)
            return
        with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
            yield from self._stream(client, url)

    def _stream(self, client: httpx.Client, url: str) -> Iterator[bytes]:
        with client.stream("GET", url) as r:
            r.raise_for_status()
            yield from r.iter_bytes()


class ImageProxyCache:
    def __init__(
        self,
        store: ImageStore,
        fetcher,
        max_attempts: int = 1,
        backoff_seconds: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.fetcher = fetcher
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    @staticmethod
    def _check_url(url: Optional[str]) -> str:
        url = (url or "").strip()
        if not url:
            raise InvalidInput("URL is required")
        try:
            parts = urlsplit(url)
            httpx.URL(url)
        except (ValueError, httpx.InvalidURL) as e:
            raise InvalidInput("Malformed URL") from e
        if parts.scheme not in ("http", "https") or not parts.hostname:
            raise InvalidInput("URL must be an absolute http(s) URL")
        labels = parts.hostname.rstrip(".").split(".")
        if len(parts.hostname) > MAX_HOSTNAME_LENGTH or any(
            not label or len(label) > MAX_LABEL_LENGTH for label in labels
        ):
            raise InvalidInput("Malformed URL")
        return url

    def acquire(self, url: str) -> str:
        """Ensure a local copy of url exists; return its file name."""
        url = self._check_url(url)
        name = filename_for_url(url)
        if self.store.get(name):
            logger.debug("Image cache hit %s", name)
            return name

        delay = self.backoff_seconds
        for attempt in range(1, self.max_attempts + 1):
            try:
                stored = self.store.put_if_absent(name, self.fetcher.iter_bytes(url))
            except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError, OSError, UnicodeError) as e:
                logger.warning(
                    "Image fetch failed url=%s attempt=%d/%d: %s", url, attempt, self.max_attempts, e
                )
                if attempt == self.max_attempts:
                    raise FetchError() from e
                if delay > 0:
                    self._sleep(delay)
                delay *= 2
                continue
            logger.info("Image cached url=%s name=%s bytes=%d", url, name, stored.size)
            return name
        raise FetchError()

    def resolve(self, name: str) -> ResolvedImage:
        """Look up a cached image by the name acquire() returned."""
        stored = self.store.get(name)
        if not stored:
            raise ImageNotFound()
        return ResolvedImage(
            name=stored.name,
            media_type=media_type_for(stored.name),
            size=stored.size,
            path=stored.path,
            data=stored.data,
        )


@lru_cache
def get_image_cache() -> ImageProxyCache:
    """Process-wide cache; built at startup so a bad storage dir fails the boot."""
    return ImageProxyCache(
        store=FileSystemImageStore(settings.image_storage_dir),
        fetcher=HttpImageFetcher(timeout=settings.image_fetch_timeout_seconds),
        max_attempts=settings.image_fetch_max_attempts,
        backoff_seconds=settings.image_fetch_backoff_seconds,
    )
