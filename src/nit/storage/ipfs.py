"""IPFS content store over the Kubo-compatible HTTP RPC API.

Works with a local IPFS node or a pinning service that exposes the same
API (for example Infura, which needs a project id and secret as basic
auth). Blobs are added as CIDv1 so identifiers match the ones computed
locally by ``nit.crypto.digest.compute_cid`` for single-chunk content.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from nit.errors import NetworkFailure, NotFound

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://ipfs.infura.io:5001"

# Timeout: 30s connect, 60s read (pinning services can be slow to ack)
DEFAULT_TIMEOUT = httpx.Timeout(connect=30.0, read=60.0, write=60.0, pool=30.0)


class IpfsContentStore:
    """ContentStore backed by an IPFS HTTP API endpoint."""

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        project_id: Optional[str] = None,
        project_secret: Optional[str] = None,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = api_url.rstrip("/")
        self._auth = httpx.BasicAuth(project_id, project_secret or "") if project_id else None
        self._timeout = timeout or DEFAULT_TIMEOUT
        self._transport = transport

    def put(self, data: bytes) -> str:
        return self._add(data, only_hash=False)

    def cid_of(self, data: bytes) -> str:
        return self._add(data, only_hash=True)

    def get(self, cid: str) -> bytes:
        response = self._post("/api/v0/cat", params={"arg": cid})
        if response.status_code != 200:
            detail = _error_message(response)
            if "not found" in detail.lower() or "invalid" in detail.lower():
                raise NotFound(cid)
            raise NetworkFailure(f"IPFS cat {cid} failed ({response.status_code}): {detail}")
        return response.content

    def _add(self, data: bytes, only_hash: bool) -> str:
        params = {
            "cid-version": "1",
            "pin": "false" if only_hash else "true",
            "only-hash": "true" if only_hash else "false",
        }
        response = self._post(
            "/api/v0/add",
            params=params,
            files={"file": ("blob", data, "application/octet-stream")},
        )
        if response.status_code != 200:
            raise NetworkFailure(
                f"IPFS add failed ({response.status_code}): {_error_message(response)}"
            )
        try:
            cid = response.json()["Hash"]
        except (ValueError, KeyError) as e:
            raise NetworkFailure(f"Unexpected IPFS add response: {response.text!r}") from e
        logger.debug("IPFS add (only_hash=%s): %d bytes -> %s", only_hash, len(data), cid)
        return cid

    def _post(self, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self._base_url}{path}"
        try:
            with httpx.Client(
                timeout=self._timeout, auth=self._auth, transport=self._transport,
            ) as client:
                return client.post(url, **kwargs)
        except httpx.TimeoutException as e:
            raise NetworkFailure(f"IPFS timeout: {url}: {e}") from e
        except httpx.HTTPError as e:
            raise NetworkFailure(f"Cannot reach IPFS at {url}: {e}") from e


def _error_message(response: httpx.Response) -> str:
    try:
        return str(response.json().get("Message", response.text))
    except ValueError:
        return response.text
