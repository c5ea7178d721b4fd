"""
etl/load_azure.py – Azure load layer.

Keeps the history documents in a Blob Storage container instead of a
repository, same file layout:

    fx-data/
        data/manifest.json
        data/last-updated.json
        data/usd.json
        ...

The blob ETag is the revision token. Creates use overwrite=False so a racing
writer fails instead of clobbering; updates send the ETag with
MatchConditions.IfNotModified.
"""

import logging
from typing import Any

from azure.core import MatchConditions
from azure.core.exceptions import (
    AzureError,
    ResourceExistsError,
    ResourceModifiedError,
    ResourceNotFoundError,
)
from azure.storage.blob import BlobServiceClient, ContentSettings

from etl.errors import HistoryConflictError, HistoryNotFoundError, StoreError
from etl.load import HistoryStore, StoredDocument, decode, serialize

logger = logging.getLogger(__name__)


class BlobHistoryStore(HistoryStore):

    def __init__(self, client: BlobServiceClient, container: str = "fx-data") -> None:
        self.container = client.get_container_client(container)

    @classmethod
    def from_connection_string(cls, conn_str: str, container: str = "fx-data") -> "BlobHistoryStore":
        return cls(BlobServiceClient.from_connection_string(conn_str), container)

    def load(self, path: str) -> StoredDocument:
        try:
            downloader = self.container.get_blob_client(path).download_blob()
            raw = downloader.readall()
        except ResourceNotFoundError as exc:
            raise HistoryNotFoundError(path) from exc
        except AzureError as exc:
            raise StoreError(f"Cannot read blob {path}: {exc}") from exc
        return StoredDocument(revision=downloader.properties.etag, content=decode(raw, path))

    def save(self, path: str, content: Any, revision: str | None, message: str) -> str:
        settings = ContentSettings(content_type="application/json")
        blob = self.container.get_blob_client(path)
        try:
            if revision is None:
                result = blob.upload_blob(
                    data=serialize(content), overwrite=False, content_settings=settings
                )
            else:
                result = blob.upload_blob(
                    data=serialize(content),
                    overwrite=True,
                    content_settings=settings,
                    etag=revision,
                    match_condition=MatchConditions.IfNotModified,
                )
        except (ResourceExistsError, ResourceModifiedError) as exc:
            raise HistoryConflictError(f"{path}: {exc}") from exc
        except AzureError as exc:
            raise StoreError(f"Cannot write blob {path}: {exc}") from exc

        logger.info("Uploaded %s (%s)", path, message)
        return result["etag"]
