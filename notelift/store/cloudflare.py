"""Cloudflare Images adapter for notelift."""

from __future__ import annotations

import json
import logging

import httpx

from notelift.config.models import CloudflareImagesConfig
from notelift.errors import StoreError
from notelift.store.base import ImagePage, ImageStore, UploadedImage

logger = logging.getLogger(__name__)


def _is_retryable_status(status: int) -> bool:
    return status == 429 or status >= 500


class CloudflareImagesStore(ImageStore):
    """Cloudflare Images adapter using its REST API via httpx."""

    name = "cloudflare"

    def __init__(
        self,
        config: CloudflareImagesConfig,
        account_id: str,
        account_hash: str,
        api_token: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not account_id or not account_hash or not api_token:
            raise ValueError(
                "Cloudflare Images requires an account id, account hash and API token."
            )
        self.config = config
        self._account_id = account_id
        self._account_hash = account_hash
        self._api_token = api_token
        self._transport = transport

    @property
    def _images_url(self) -> str:
        return f"{self.config.api_base.rstrip('/')}/accounts/{self._account_id}/images/v1"

    def delivery_url(self, image_id: str) -> str:
        base = self.config.delivery_base.rstrip("/")
        return f"{base}/{self._account_hash}/{image_id}/{self.config.variant}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={"Authorization": f"Bearer {self._api_token}"},
            timeout=self.config.timeout,
            transport=self._transport,
        )

    async def upload(
        self,
        data: bytes,
        filename: str,
        metadata: dict[str, str] | None = None,
    ) -> UploadedImage:
        form: dict[str, str] = {
            "requireSignedURLs": "true" if self.config.require_signed_urls else "false",
        }
        if metadata:
            form["metadata"] = json.dumps(metadata)

        try:
            async with self._client() as client:
                resp = await client.post(
                    self._images_url,
                    files={"file": (filename, data)},
                    data=form,
                )
        except httpx.TransportError as e:
            raise StoreError(self.name, "upload", e, retryable=True) from e

        body = self._json_body(resp, "upload")
        if not body.get("success"):
            raise StoreError(
                self.name,
                "upload",
                f"{resp.status_code} {json.dumps(body.get('errors', []))}",
                retryable=_is_retryable_status(resp.status_code),
            )

        image_id = body.get("result", {}).get("id")
        if not image_id:
            raise StoreError(self.name, "upload", "response carried no image id")
        url = self.delivery_url(image_id)
        logger.debug("uploaded %s -> %s", filename, url)
        return UploadedImage(id=image_id, url=url)

    async def list_images(self, page: int = 1, per_page: int = 50) -> ImagePage:
        try:
            async with self._client() as client:
                resp = await client.get(
                    self._images_url,
                    params={"page": page, "per_page": per_page},
                )
        except httpx.TransportError as e:
            raise StoreError(self.name, "list", e, retryable=True) from e

        body = self._json_body(resp, "list")
        if not resp.is_success or not body.get("success"):
            raise StoreError(
                self.name,
                "list",
                f"{resp.status_code} {json.dumps(body.get('errors', []))}",
                retryable=_is_retryable_status(resp.status_code),
            )

        images = body.get("result", {}).get("images", [])
        total = body.get("result_info", {}).get("total_count", len(images))
        return ImagePage(images=images, page=page, per_page=per_page, total_count=total)

    def _json_body(self, resp: httpx.Response, operation: str) -> dict:
        try:
            body = resp.json()
        except ValueError as e:
            raise StoreError(
                self.name,
                operation,
                f"{resp.status_code} non-JSON response",
                retryable=_is_retryable_status(resp.status_code),
            ) from e
        if not isinstance(body, dict):
            raise StoreError(self.name, operation, f"{resp.status_code} unexpected response body")
        return body
