"""Local filesystem blob storage for audio files and other raw payloads."""

import uuid
from pathlib import Path

import structlog

logger = structlog.get_logger()


class BlobNotFoundError(FileNotFoundError):
    """Reference does not resolve to a stored blob."""


class BlobStore:
    """Stores blobs under `root` keyed by a relative reference like `user/abc.webm`."""

    def __init__(self, root: str | Path):
        self.root = Path(root).expanduser().resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, ref: str) -> Path:
        """Map a reference to a path inside root (prevent traversal)."""
        if not ref:
            raise ValueError("Empty blob reference")
        resolved = (self.root / ref).resolve()
        if not resolved.is_relative_to(self.root):
            raise ValueError(f"Invalid blob reference: {ref}")
        return resolved

    def put(self, data: bytes, prefix: str = "", suffix: str = "") -> str:
        ref = f"{prefix.strip('/')}/{uuid.uuid4().hex}{suffix}" if prefix else f"{uuid.uuid4().hex}{suffix}"
        path = self._resolve(ref)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return ref

    def read(self, ref: str) -> bytes:
        path = self._resolve(ref)
        if not path.exists():
            raise BlobNotFoundError(ref)
        return path.read_bytes()

    def exists(self, ref: str) -> bool:
        try:
            return self._resolve(ref).exists()
        except ValueError:
            return False

    def delete(self, ref: str) -> None:
        path = self._resolve(ref)
        if not path.exists():
            raise BlobNotFoundError(ref)
        path.unlink()
