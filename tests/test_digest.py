"""Tests for canonical hashing and CID derivation."""

import hashlib

from nit.crypto.digest import (
    ASSET_CID_MOCK,
    CIDV1_LENGTH,
    canonical_bytes,
    compute_cid,
    looks_like_cid,
    sha256_hex,
)


class TestCanonicalBytes:
    def test_key_order_does_not_matter(self) -> None:
        a = canonical_bytes({"b": 1, "a": {"y": 2, "x": 3}})
        b = canonical_bytes({"a": {"x": 3, "y": 2}, "b": 1})
        assert a == b

    def test_unicode_preserved(self) -> None:
        data = canonical_bytes({"abstract": "日の出"})
        assert "日の出".encode("utf-8") in data

    def test_sha256_hex(self) -> None:
        assert sha256_hex(b"") == hashlib.sha256(b"").hexdigest()


class TestComputeCid:
    def test_empty_bytes_known_cid(self) -> None:
        """The raw CIDv1 of the empty byte string is a well-known value."""
        assert compute_cid(b"") == "bafkreihdwdcefgh4dqkjv67uzcmw7ojee6xedzdetojuzjevtenxquvyku"

    def test_length_and_prefix(self) -> None:
        cid = compute_cid(b"some asset bytes")
        assert len(cid) == CIDV1_LENGTH
        assert cid.startswith("bafkrei")

    def test_deterministic(self) -> None:
        assert compute_cid(b"x" * 1000) == compute_cid(b"x" * 1000)

    def test_different_bytes_different_cids(self) -> None:
        assert compute_cid(b"a") != compute_cid(b"b")

    def test_mock_has_cid_length(self) -> None:
        assert len(ASSET_CID_MOCK) == CIDV1_LENGTH
        assert set(ASSET_CID_MOCK) == {"a"}


class TestLooksLikeCid:
    def test_cid_prefixes(self) -> None:
        assert looks_like_cid(compute_cid(b"a"))
        assert looks_like_cid("bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi")

    def test_paths_and_urls_are_not_cids(self) -> None:
        assert not looks_like_cid("photo.jpg")
        assert not looks_like_cid("https://example.com/photo.jpg")
