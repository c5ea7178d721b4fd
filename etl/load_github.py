"""
etl/load_github.py – GitHub load layer.

Reads and commits history files through the repository contents API, so the
static dashboard picks up new data on its next deploy.

    GET  /repos/{repo}/contents/{path}?ref={branch}
         → {"sha": "...", "content": "<base64>", ...}
    PUT  /repos/{repo}/contents/{path}
         {"message": ..., "content": "<base64>", "branch": ..., "sha": ...}

The blob ``sha`` is the revision token. Omitting it creates the file; a stale
one makes GitHub answer 409 (or 422 when the file appeared meanwhile).
"""

import base64
import logging
from typing import Any

import requests

from config import GITHUB_API_URL, GITHUB_TIMEOUT_SECONDS
from etl.errors import HistoryConflictError, HistoryNotFoundError, StoreError
from etl.load import HistoryStore, StoredDocument, decode, serialize

logger = logging.getLogger(__name__)

_CONFLICT_STATUSES = {409, 422}


class GitHubHistoryStore(HistoryStore):

    def __init__(
        self,
        repo: str,
        token: str | None,
        branch: str = "main",
        api_url: str = GITHUB_API_URL,
        timeout: int = GITHUB_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.repo = repo
        self.branch = branch
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/vnd.github+json"})
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _url(self, path: str) -> str:
        return f"{self.api_url}/repos/{self.repo}/contents/{path}"

    def load(self, path: str) -> StoredDocument:
        try:
            response = self.session.get(
                self._url(path), params={"ref": self.branch}, timeout=self.timeout
            )
        except requests.exceptions.RequestException as exc:
            raise StoreError(f"Cannot reach GitHub for {path}: {exc}") from exc

        if response.status_code == 404:
            raise HistoryNotFoundError(path)
        if not response.ok:
            raise StoreError(f"GitHub GET {path} failed: {response.status_code} {response.text[:200]}")

        try:
            body = response.json()
        except ValueError as exc:
            raise StoreError(f"GitHub GET {path} returned a non-JSON body") from exc
        # A directory path answers with a listing instead of a file object.
        if not isinstance(body, dict) or not body.get("sha"):
            raise StoreError(f"GitHub GET {path} did not return a file")
        try:
            raw = base64.b64decode(body.get("content") or "")
        except (TypeError, ValueError) as exc:
            raise StoreError(f"GitHub GET {path} returned undecodable content") from exc
        return StoredDocument(revision=body["sha"], content=decode(raw, path))

    def save(self, path: str, content: Any, revision: str | None, message: str) -> str:
        payload = {
            "message": message,
            "content": base64.b64encode(serialize(content)).decode("ascii"),
            "branch": self.branch,
        }
        # Only updates carry the sha; without it GitHub creates the file.
        if revision:
            payload["sha"] = revision

        try:
            response = self.session.put(self._url(path), json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            raise StoreError(f"Cannot reach GitHub for {path}: {exc}") from exc

        if response.status_code in _CONFLICT_STATUSES:
            raise HistoryConflictError(f"{path}: {response.status_code} {response.text[:200]}")
        if not response.ok:
            raise StoreError(f"GitHub PUT {path} failed: {response.status_code} {response.text[:200]}")

        logger.info("Committed %s to %s@%s", path, self.repo, self.branch)
        return response.json()["content"]["sha"]
