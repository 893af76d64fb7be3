from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from .codec import decode_fields, encode_fields
from .errors import DocumentNotFoundError, DocumentStoreError

logger = logging.getLogger(__name__)


class DocumentStoreClient:
    """Create-or-replace and read of single documents over the REST API."""

    def __init__(
        self,
        client: httpx.Client,
        project_id: str,
        base_url: str = "https://firestore.googleapis.com/v1",
        database_id: str = "(default)",
    ):
        self.client = client
        self.project_id = project_id
        self.base_url = base_url.rstrip("/")
        self.database_id = database_id

    def document_url(self, collection: str, document_id: str) -> str:
        return (
            f"{self.base_url}/projects/{self.project_id}/databases/{self.database_id}"
            f"/documents/{quote(collection, safe='')}/{quote(document_id, safe='')}"
        )

    @staticmethod
    def _headers(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    @staticmethod
    def _body(response: httpx.Response, action: str, lenient: bool = False) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            if lenient:
                # a 2xx status already means the write was applied
                logger.warning("Store returned a %s non-JSON acknowledgment", response.status_code)
                return {}
            raise DocumentStoreError(
                f"Error {action} document: non-JSON response from store", status_code=response.status_code
            ) from exc
        if not isinstance(body, dict):
            raise DocumentStoreError(
                f"Error {action} document: unexpected response from store", status_code=response.status_code
            )
        return body

    def put(self, token: str, collection: str, document_id: str, value: dict[str, Any]) -> dict[str, Any]:
        url = self.document_url(collection, document_id)
        fields = encode_fields(value)
        # Without a mask the store would replace the whole document.
        params = [("updateMask.fieldPaths", key) for key in fields]
        try:
            response = self.client.patch(url, params=params, json={"fields": fields}, headers=self._headers(token))
        except httpx.HTTPError as exc:
            logger.warning("Write of %s/%s failed: %s", collection, document_id, exc)
            raise DocumentStoreError(f"Error writing document: {exc}") from exc

        if not response.is_success:
            logger.warning("Write of %s/%s returned %s", collection, document_id, response.status_code)
            raise DocumentStoreError(f"Error writing document: {response.text}", status_code=response.status_code)
        return self._body(response, "writing", lenient=True)

    def get(self, token: str, collection: str, document_id: str) -> dict[str, Any]:
        url = self.document_url(collection, document_id)
        try:
            response = self.client.get(url, headers=self._headers(token))
        except httpx.HTTPError as exc:
            logger.warning("Read of %s/%s failed: %s", collection, document_id, exc)
            raise DocumentStoreError(f"Error reading document: {exc}") from exc

        if response.status_code == 404:
            raise DocumentNotFoundError(f"{collection}/{document_id}")
        if not response.is_success:
            logger.warning("Read of %s/%s returned %s", collection, document_id, response.status_code)
            raise DocumentStoreError(f"Error reading document: {response.text}", status_code=response.status_code)
        return self._body(response, "reading")

    def read_fields(self, token: str, collection: str, document_id: str) -> dict[str, Any]:
        document = self.get(token, collection, document_id)
        try:
            return decode_fields(document.get("fields"))
        except ValueError as exc:
            raise DocumentStoreError(f"Undecodable document {collection}/{document_id}: {exc}") from exc
