"""
ledger.ipfs — Pinning evidence files on IPFS through the Pinata API.

Uploads are retried (``settings.IPFS_MAX_RETRIES`` attempts, sleeping
``attempt`` seconds between them); reads go through the public gateway
configured in ``settings.IPFS_GATEWAY``.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import time
from typing import Any

import httpx
from django.conf import settings
from django.utils import timezone

from .exceptions import IPFSError

logger = logging.getLogger(__name__)

UPLOAD_TIMEOUT = 60.0
GATEWAY_TIMEOUT = 30.0
API_TIMEOUT = 30.0

_CID_RE = re.compile(r"^Qm[1-9A-HJ-NP-Za-km-z]{44}\Z|^b[A-Za-z2-7]{58}\Z")


class IPFSStorageService:
    """Pinata client.  Instances read their configuration from settings."""

    def __init__(
        self,
        jwt: str | None = None,
        gateway: str | None = None,
        api_url: str | None = None,
        max_retries: int | None = None,
    ) -> None:
        self.jwt = jwt if jwt is not None else settings.PINATA_JWT
        self.gateway = gateway if gateway is not None else settings.IPFS_GATEWAY
        if not self.gateway.endswith("/"):
            self.gateway += "/"
        self.api_url = (api_url or settings.PINATA_API_URL).rstrip("/")
        self.max_retries = max_retries if max_retries is not None else settings.IPFS_MAX_RETRIES

    @property
    def is_configured(self) -> bool:
        return bool(self.jwt)

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.jwt}"}

    def _require_configured(self) -> None:
        if not self.is_configured:
            raise IPFSError("IPFS service not configured. Set PINATA_JWT in .env")

    # ── Pinning ──────────────────────────────────────────────────────

    def upload_file(self, content: bytes, filename: str, metadata: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Pin ``content`` and return ``{cid, size, timestamp, is_duplicate}``.

        Raises:
            IPFSError: not configured, or every attempt failed.
        """
        self._require_configured()
        if not isinstance(content, (bytes, bytearray)):
            raise IPFSError("File must be bytes")

        keyvalues = {key: str(value) for key, value in (metadata or {}).items() if value is not None}
        keyvalues["uploadedAt"] = timezone.now().isoformat()
        keyvalues["fileHash"] = hashlib.sha256(content).hexdigest()
        data = {
            "pinataMetadata": json.dumps({"name": filename, "keyvalues": keyvalues}),
            "pinataOptions": json.dumps({"cidVersion": 1}),
        }
        files = {"file": (filename, bytes(content), "application/octet-stream")}

        last_error: Exception | None = None
        for attempt in range(1, self.max_retries + 1):
            try:
                with httpx.Client(timeout=UPLOAD_TIMEOUT) as client:
                    response = client.post(
                        f"{self.api_url}/pinning/pinFileToIPFS",
                        headers=self.headers,
                        data=data,
                        files=files,
                    )
                    response.raise_for_status()
                body = response.json()
                result = {
                    "cid": body["IpfsHash"],
                    "size": body.get("PinSize"),
                    "timestamp": body.get("Timestamp"),
                    "is_duplicate": bool(body.get("isDuplicate", False)),
                }
                logger.info("Pinned %s to IPFS as %s (attempt %d)", filename, result["cid"], attempt)
                return result
            except (httpx.HTTPError, KeyError, ValueError) as exc:
                last_error = exc
                logger.warning(
                    "IPFS upload attempt %d/%d for %s failed: %s",
                    attempt,
                    self.max_retries,
                    filename,
                    exc,
                )
                if attempt < self.max_retries:
                    time.sleep(1 * attempt)

        raise IPFSError(f"IPFS upload failed after {self.max_retries} attempts: {last_error}")

    def get_file(self, cid: str) -> bytes:
        if not cid:
            raise IPFSError("CID is required")
        try:
            with httpx.Client(timeout=GATEWAY_TIMEOUT, follow_redirects=True) as client:
                response = client.get(self.gateway_url(cid))
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("IPFS gateway fetch of %s failed: %s", cid, exc)
            raise IPFSError(f"Failed to retrieve file from IPFS: {exc}") from exc
        return response.content

    def pin_status(self, cid: str) -> dict[str, Any]:
        self._require_configured()
        return self._api_get("/pinning/pinJobs", {"ipfs_pin_hash": cid}, "Failed to get pin status")

    def unpin(self, cid: str) -> dict[str, Any]:
        self._require_configured()
        try:
            with httpx.Client(timeout=API_TIMEOUT) as client:
                response = client.delete(f"{self.api_url}/pinning/unpin/{cid}", headers=self.headers)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise IPFSError(f"Failed to unpin file: {exc}") from exc
        logger.info("Unpinned %s", cid)
        return {"success": True, "cid": cid}

    def list_pins(self, limit: int = 10, offset: int = 0) -> dict[str, Any]:
        self._require_configured()
        return self._api_get(
            "/data/pinList",
            {"pageLimit": limit, "pageOffset": offset},
            "Failed to list pins",
        )

    def _api_get(self, path: str, params: dict[str, Any], error_prefix: str) -> dict[str, Any]:
        try:
            with httpx.Client(timeout=API_TIMEOUT) as client:
                response = client.get(f"{self.api_url}{path}", headers=self.headers, params=params)
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise IPFSError(f"{error_prefix}: {exc}") from exc

    # ── Helpers ──────────────────────────────────────────────────────

    def gateway_url(self, cid: str | None) -> str | None:
        if not cid:
            return None
        return f"{self.gateway}{cid}"

    @staticmethod
    def is_valid_cid(cid: str | None) -> bool:
        return bool(cid) and _CID_RE.match(cid) is not None
