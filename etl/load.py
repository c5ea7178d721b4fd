"""
etl/load.py – Load layer.

History lives as whole JSON documents in a content store, one file per
currency:

    data/
        manifest.json        ["USD", "GBP", ...]
        last-updated.json    {"updatedAt": "2026-02-17T03:30:00.000Z"}
        usd.json             [{"date": "2026-02-17", "TTBUY": 296.5, ...}, ...]
        gbp.json

Every store hands back a revision token with each read. Writes pass it back
and fail with HistoryConflictError if someone else wrote in between
(optimistic concurrency – nothing here retries or locks).

Backends
--------
    LocalHistoryStore   files on disk (this module); local runs and tests
    GitHubHistoryStore  contents API of a GitHub repository (load_github.py)
    BlobHistoryStore    Azure Blob Storage, ETag as token (load_azure.py)
"""

import hashlib
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from etl.errors import HistoryConflictError, HistoryNotFoundError, StoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredDocument:
    revision: str
    content: Any


def serialize(content: Any) -> bytes:
    """JSON as committed to the store – 4-space indent, UTF-8."""
    return json.dumps(content, indent=4, ensure_ascii=False).encode("utf-8")


def decode(raw: bytes, path: str) -> Any:
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise StoreError(f"{path} is not valid JSON: {exc}") from exc


class HistoryStore(ABC):
    """Whole-document JSON store with conditional writes."""

    @abstractmethod
    def load(self, path: str) -> StoredDocument:
        """Return the parsed document and its revision; HistoryNotFoundError if absent."""

    @abstractmethod
    def save(self, path: str, content: Any, revision: str | None, message: str) -> str:
        """Create (revision None) or conditionally replace a document; return the new revision."""


# ---------------------------------------------------------------------------
# Local filesystem
# ---------------------------------------------------------------------------

class LocalHistoryStore(HistoryStore):
    """
    Documents under a root directory. The revision token is the SHA-1 of the
    file bytes, so any out-of-band edit invalidates a token.
    """

    def __init__(self, root: str | os.PathLike) -> None:
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            raise StoreError(f"Path escapes store root: {path}")
        return target

    @staticmethod
    def _revision(raw: bytes) -> str:
        return hashlib.sha1(raw).hexdigest()

    def load(self, path: str) -> StoredDocument:
        target = self._resolve(path)
        try:
            raw = target.read_bytes()
        except FileNotFoundError as exc:
            raise HistoryNotFoundError(path) from exc
        except OSError as exc:
            raise StoreError(f"Cannot read {path}: {exc}") from exc
        return StoredDocument(revision=self._revision(raw), content=decode(raw, path))

    def save(self, path: str, content: Any, revision: str | None, message: str) -> str:
        target = self._resolve(path)

        current = target.read_bytes() if target.exists() else None
        if revision is None and current is not None:
            raise HistoryConflictError(f"{path} already exists")
        if revision is not None and (current is None or self._revision(current) != revision):
            raise HistoryConflictError(f"{path} changed since it was read")

        raw = serialize(content)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(raw)
            os.replace(tmp, target)
        except OSError as exc:
            Path(tmp).unlink(missing_ok=True)
            raise StoreError(f"Cannot write {path}: {exc}") from exc

        logger.info("Wrote %s (%s)", target, message)
        return self._revision(raw)
