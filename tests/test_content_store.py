"""Tests for content-addressed storage backends."""

import json
from pathlib import Path

import httpx
import pytest

from nit.crypto.digest import compute_cid
from nit.errors import NetworkFailure, NotFound
from nit.storage.content_store import ContentStore, InMemoryContentStore, LocalContentStore
from nit.storage.ipfs import IpfsContentStore


@pytest.fixture(params=["memory", "local"])
def store(request, tmp_path: Path) -> ContentStore:
    if request.param == "memory":
        return InMemoryContentStore()
    return LocalContentStore(tmp_path / "objects")


class TestContentStoreContract:
    def test_satisfies_protocol(self, store: ContentStore) -> None:
        assert isinstance(store, ContentStore)

    def test_round_trip(self, store: ContentStore) -> None:
        for blob in (b"", b"hello", bytes(range(256)) * 10):
            assert store.get(store.put(blob)) == blob

    def test_idempotent_addressing(self, store: ContentStore) -> None:
        assert store.put(b"same bytes") == store.put(b"same bytes")

    def test_cid_of_matches_put(self, store: ContentStore) -> None:
        assert store.cid_of(b"preview") == store.put(b"preview")

    def test_cid_of_does_not_store(self, store: ContentStore) -> None:
        cid = store.cid_of(b"not stored")
        with pytest.raises(NotFound):
            store.get(cid)

    def test_unknown_cid(self, store: ContentStore) -> None:
        with pytest.raises(NotFound) as exc:
            store.get(compute_cid(b"never stored"))
        assert exc.value.cid == compute_cid(b"never stored")


class TestLocalContentStore:
    def test_persists_across_instances(self, tmp_path: Path) -> None:
        cid = LocalContentStore(tmp_path).put(b"durable")
        assert LocalContentStore(tmp_path).get(cid) == b"durable"

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        store = LocalContentStore(tmp_path)
        store.put(b"one")
        store.put(b"two")
        assert not [p for p in tmp_path.iterdir() if p.name.startswith(".")]

    def test_rejects_path_like_cids(self, tmp_path: Path) -> None:
        (tmp_path / "secret").write_bytes(b"x")
        store = LocalContentStore(tmp_path / "objects")
        with pytest.raises(NotFound):
            store.get("../secret")


def _ipfs_handler(blobs: dict[str, bytes], calls: list[httpx.Request]):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.path == "/api/v0/add":
            body = request.content
            # Multipart body: pull the payload out between the part headers.
            payload = body.split(b"\r\n\r\n", 1)[1].rsplit(b"\r\n--", 1)[0]
            cid = compute_cid(payload)
            if request.url.params.get("only-hash") != "true":
                blobs[cid] = payload
            return httpx.Response(200, json={"Name": "blob", "Hash": cid, "Size": str(len(payload))})
        if request.url.path == "/api/v0/cat":
            cid = request.url.params["arg"]
            if cid not in blobs:
                return httpx.Response(500, json={"Message": "block was not found locally", "Code": 0})
            return httpx.Response(200, content=blobs[cid])
        return httpx.Response(404)
    return handler


class TestIpfsContentStore:
    def test_put_and_get(self) -> None:
        blobs: dict[str, bytes] = {}
        calls: list[httpx.Request] = []
        store = IpfsContentStore(
            "https://ipfs.example:5001", transport=httpx.MockTransport(_ipfs_handler(blobs, calls)),
        )
        cid = store.put(b"asset bytes")
        assert cid == compute_cid(b"asset bytes")
        assert store.get(cid) == b"asset bytes"
        assert calls[0].url.params["cid-version"] == "1"

    def test_only_hash_does_not_pin(self) -> None:
        blobs: dict[str, bytes] = {}
        store = IpfsContentStore(
            "https://ipfs.example:5001", transport=httpx.MockTransport(_ipfs_handler(blobs, [])),
        )
        store.cid_of(b"preview")
        assert blobs == {}

    def test_not_found(self) -> None:
        store = IpfsContentStore(
            "https://ipfs.example:5001", transport=httpx.MockTransport(_ipfs_handler({}, [])),
        )
        with pytest.raises(NotFound):
            store.get(compute_cid(b"missing"))

    def test_basic_auth_sent(self) -> None:
        calls: list[httpx.Request] = []
        store = IpfsContentStore(
            "https://ipfs.example:5001",
            project_id="pid",
            project_secret="secret",
            transport=httpx.MockTransport(_ipfs_handler({}, calls)),
        )
        store.put(b"x")
        assert calls[0].headers["authorization"].startswith("Basic ")

    def test_server_error_is_network_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="bad gateway")

        store = IpfsContentStore("https://ipfs.example:5001", transport=httpx.MockTransport(handler))
        with pytest.raises(NetworkFailure, match="502"):
            store.put(b"x")

    def test_transport_error_is_network_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        store = IpfsContentStore("https://ipfs.example:5001", transport=httpx.MockTransport(handler))
        with pytest.raises(NetworkFailure, match="Cannot reach IPFS"):
            store.get(compute_cid(b"x"))

    def test_malformed_add_response(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=json.dumps({"Name": "blob"}).encode())

        store = IpfsContentStore("https://ipfs.example:5001", transport=httpx.MockTransport(handler))
        with pytest.raises(NetworkFailure, match="Unexpected IPFS add response"):
            store.put(b"x")
