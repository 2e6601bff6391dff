"""Error taxonomy for Nit.

Every failure the versioning core can surface is one of these. Backends
translate library exceptions (HTTP, web3, filesystem) into them at the
boundary so callers only ever handle NitError subclasses.

Integrity failures (HashMismatch, InvalidSignature) abort the current
operation. Nothing unverified is ever presented as history.
"""

from __future__ import annotations


class NitError(Exception):
    """Base class for all Nit failures."""


class NotFound(NitError):
    """A CID is unknown to the content store."""

    def __init__(self, cid: str) -> None:
        super().__init__(f"Content not found: {cid}")
        self.cid = cid


class NetworkFailure(NitError):
    """Transport error talking to the content store or an asset source."""


class RegistryFailure(NitError):
    """The registry rejected or could not complete an append or query."""


class HashMismatch(NitError):
    """Stored AssetTree bytes do not match the hash recorded in the Commit."""

    def __init__(self, asset_tree_cid: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Integrity check failed for AssetTree {asset_tree_cid}: "
            f"commit records sha256 {expected} but stored bytes hash to {actual}"
        )
        self.asset_tree_cid = asset_tree_cid
        self.expected = expected
        self.actual = actual


class InvalidSignature(NitError):
    """A signature is malformed, unrecoverable, or not from the trusted signer."""


class NoStagedAsset(NitError):
    """Commit attempted while the staging slot is empty."""

    def __init__(self) -> None:
        super().__init__("Need to add an Asset before commit")


class ConfigMissing(NitError):
    """The workspace or configuration has not been initialized."""
