"""Object storage for uploaded files.

`ObjectStorage` is the interface the file routes depend on;
`LocalObjectStorage` keeps objects under a directory that the application
serves at `UPLOAD_BASE_URL`.
"""

import re
import time
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import BinaryIO, Optional, Protocol

_UNSAFE = re.compile(r"[^A-Za-z0-9_-]+")
_PUBLIC_ID = re.compile(r"^[A-Za-z0-9_-]{1,200}$")


@dataclass
class StoredObject:
    url: str
    public_id: str
    size: int


class ObjectStorage(Protocol):
    def save(self, stream: BinaryIO, filename: str) -> StoredObject: ...

    def delete(self, public_id: str) -> bool: ...


def make_public_id(filename: str, now_ms: Optional[int] = None, token: Optional[str] = None) -> str:
    """`<stem>_<epoch-ms>_<token>` with the stem reduced to safe characters."""
    stem = _UNSAFE.sub("_", PurePath(filename).stem).strip("_") or "file"
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    if token is None:
        token = uuid.uuid4().hex[:8]
    return f"{stem[:100]}_{now_ms}_{token}"


class LocalObjectStorage:
    def __init__(self, root: Path, base_url: str = "/uploads"):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def open(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def close(self) -> None:
        pass

    def save(self, stream: BinaryIO, filename: str) -> StoredObject:
        self.open()
        suffix = PurePath(filename).suffix.lower()
        for _ in range(5):
            public_id = make_public_id(filename)
            name = public_id + suffix
            try:
                fh = (self.root / name).open("xb")
            except FileExistsError:
                continue
            break
        else:
            raise FileExistsError(f"could not allocate a unique name for {filename!r}")
        size = 0
        with fh:
            while True:
                chunk = stream.read(1024 * 1024)
                if not chunk:
                    break
                fh.write(chunk)
                size += len(chunk)
        return StoredObject(url=f"{self.base_url}/{name}", public_id=public_id, size=size)

    def delete(self, public_id: str) -> bool:
        """Remove the object; False when the id is unknown or malformed."""
        if not _PUBLIC_ID.match(public_id or ""):
            return False
        removed = False
        for path in self.root.glob(f"{public_id}.*"):
            path.unlink()
            removed = True
        return removed
