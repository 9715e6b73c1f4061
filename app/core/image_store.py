"""
Key-value storage for cached 360° images.
Entries are published atomically: writers stream into a private temp file and
os.replace() it into place, so a reader never sees a partial image. Zero-length
entries count as absent.
"""
import logging
import os
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

from app.core.errors import InvalidImageName, StorageInitError

logger = logging.getLogger(__name__)

_TMP_PREFIX = "."
_TMP_SUFFIX = ".part"


@dataclass(frozen=True)
class StoredImage:
    name: str
    size: int
    path: Optional[Path] = None  # set by filesystem stores
    data: Optional[bytes] = None  # set by in-memory stores


def validate_name(name: str) -> str:
    if not name or not isinstance(name, str):
        raise InvalidImageName()
    if name in (".", "..") or "\x00" in name or "/" in name or "\\" in name:
        raise InvalidImageName()
    if name.startswith(_TMP_PREFIX):
        raise InvalidImageName()
    return name


class ImageStore:
    """Interface: get() an entry, put_if_absent() a new one from byte chunks."""

    def get(self, name: str) -> Optional[StoredImage]:
        raise NotImplementedError

    def put_if_absent(self, name: str, chunks: Iterable[bytes]) -> StoredImage:
        raise NotImplementedError


class FileSystemImageStore(ImageStore):
    def __init__(self, root: Union[str, Path], stale_temp_seconds: float = 3600.0):
        self.root = Path(root).resolve()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageInitError() from e
        if not os.access(self.root, os.W_OK):
            raise StorageInitError()
        self.sweep_temp_files(stale_temp_seconds)
        logger.info("Image store at %s", self.root)

    def sweep_temp_files(self, older_than_seconds: float) -> int:
        """Remove temp files abandoned by crashed writers. Recent ones may still be in use."""
        cutoff = time.time() - older_than_seconds
        removed = 0
        for tmp in self.root.glob(f"{_TMP_PREFIX}*{_TMP_SUFFIX}"):
            try:
                if tmp.stat().st_mtime >= cutoff:
                    continue
                tmp.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning("Could not remove stale temp file %s: %s", tmp, e)
                continue
            removed += 1
        if removed:
            logger.info("Removed %d stale temp file(s) from %s", removed, self.root)
        return removed

    def path_for(self, name: str) -> Path:
        validate_name(name)
        path = (self.root / name).resolve()
        # resolve() also follows symlinks; anything outside the root is refused
        if path.parent != self.root:
            raise InvalidImageName()
        return path

    def get(self, name: str) -> Optional[StoredImage]:
        path = self.path_for(name)
        try:
            size = path.stat().st_size
        except OSError:
            return None
        if size <= 0 or not path.is_file() or not os.access(path, os.R_OK):
            return None
        return StoredImage(name=name, size=size, path=path)

    def put_if_absent(self, name: str, chunks: Iterable[bytes]) -> StoredImage:
        target = self.path_for(name)
        fd, tmp_name = tempfile.mkstemp(prefix=_TMP_PREFIX, suffix=_TMP_SUFFIX, dir=self.root)
        tmp_path = Path(tmp_name)
        try:
            size = 0
            with os.fdopen(fd, "wb") as out:
                for chunk in chunks:
                    if chunk:
                        out.write(chunk)
                        size += len(chunk)
                out.flush()
                os.fsync(out.fileno())
            if size == 0:
                raise OSError(f"empty body for {name}")
            existing = self.get(name)
            if existing:
                # Another writer published first; same URL, same content
                return existing
            os.replace(tmp_path, target)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
        return StoredImage(name=name, size=size, path=target)


class InMemoryImageStore(ImageStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._entries: Dict[str, bytes] = {}

    def get(self, name: str) -> Optional[StoredImage]:
        validate_name(name)
        with self._lock:
            data = self._entries.get(name)
        if not data:
            return None
        return StoredImage(name=name, size=len(data), data=data)

    def put_if_absent(self, name: str, chunks: Iterable[bytes]) -> StoredImage:
        validate_name(name)
        data = b"".join(chunks)
        if not data:
            raise OSError(f"empty body for {name}")
        with self._lock:
            data = self._entries.setdefault(name, data)
        return StoredImage(name=name, size=len(data), data=data)

    def __len__(self) -> int:
        return len(self._entries)
