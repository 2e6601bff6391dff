"""Cryptographic primitives — canonical hashing, CIDs, integrity signatures."""

from nit.crypto.digest import ASSET_CID_MOCK, canonical_bytes, compute_cid, sha256_hex
from nit.crypto.signing import EthereumSigner, recover_address

__all__ = [
    "ASSET_CID_MOCK",
    "EthereumSigner",
    "canonical_bytes",
    "compute_cid",
    "recover_address",
    "sha256_hex",
]
