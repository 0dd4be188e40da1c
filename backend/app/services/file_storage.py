"""
Blob storage for receipt attachments.

Files are kept outside the relational store. ``LocalBlobStore`` writes each
file under ``UPLOAD_DIR`` with a random hex id and a JSON sidecar holding
its original name, content type and metadata.
"""
import json
import logging
import os
import re
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, BinaryIO, Dict, Optional, Protocol
from app.core.config import settings

logger = logging.getLogger(__name__)

_FILE_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


@dataclass
class IncomingFile:
    """File received from a client, not yet stored."""
    data: bytes
    file_name: str
    content_type: str


@dataclass
class StoredFile:
    """Reference to a stored blob."""
    file_id: str
    file_name: str


class BlobStore(Protocol):
    """Port for receipt file storage."""

    def put(self, data: bytes, name: str, mime_type: str, metadata: Optional[Dict[str, Any]] = None) -> StoredFile:
        ...

    def get(self, file_id: str) -> BinaryIO:
        ...

    def describe(self, file_id: str) -> Dict[str, Any]:
        ...

    def delete(self, file_id: str) -> None:
        ...


def is_valid_file_id(file_id: str) -> bool:
    """True if ``file_id`` has the shape of an id issued by the store."""
    return bool(file_id) and bool(_FILE_ID_PATTERN.match(file_id))


def sanitize_file_name(name: str) -> str:
    """Drop any directory part and control characters from a client file name."""
    base = os.path.basename((name or "").replace("\\", "/"))
    cleaned = "".join(ch for ch in base if ch.isprintable()).strip()
    return cleaned or "file"


class LocalBlobStore:
    """Blob store on the local filesystem."""

    def __init__(self, root: str):
        self.root = root

    def _path(self, file_id: str) -> str:
        if not is_valid_file_id(file_id):
            raise FileNotFoundError(f"Invalid file id: {file_id!r}")
        return os.path.join(self.root, file_id)

    def put(self, data: bytes, name: str, mime_type: str, metadata: Optional[Dict[str, Any]] = None) -> StoredFile:
        os.makedirs(self.root, exist_ok=True)
        file_id = uuid.uuid4().hex
        file_name = sanitize_file_name(name)
        path = self._path(file_id)

        with open(path, "wb") as buffer:
            buffer.write(data)

        with open(path + ".json", "w", encoding="utf-8") as sidecar:
            json.dump({
                "file_name": file_name,
                "content_type": mime_type,
                "metadata": metadata or {},
                "upload_date": datetime.utcnow().isoformat(),
            }, sidecar)

        logger.info("Stored blob %s (%s, %d bytes)", file_id, file_name, len(data))
        return StoredFile(file_id=file_id, file_name=file_name)

    def get(self, file_id: str) -> BinaryIO:
        return open(self._path(file_id), "rb")

    def describe(self, file_id: str) -> Dict[str, Any]:
        with open(self._path(file_id) + ".json", encoding="utf-8") as sidecar:
            return json.load(sidecar)

    def delete(self, file_id: str) -> None:
        path = self._path(file_id)
        os.remove(path)
        if os.path.exists(path + ".json"):
            os.remove(path + ".json")


def get_blob_store() -> BlobStore:
    """Dependency for getting the configured blob store."""
    return LocalBlobStore(settings.UPLOAD_DIR)
