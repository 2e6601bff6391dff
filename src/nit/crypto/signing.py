"""Integrity-hash signing with an Ethereum account.

The signing key belongs to the author. Signatures are EIP-191 personal
messages over the hex integrity hash (the AssetTree sha256), so any
Ethereum tooling can recover the signer address from a Commit found in
history without reconstructing the AssetTree.

The engine never touches key material. It only sees this object's
``address``, ``sign`` and ``verify``.
"""

from __future__ import annotations

import logging

from eth_account import Account
from eth_account.messages import encode_defunct

from nit.errors import InvalidSignature

logger = logging.getLogger(__name__)


def recover_address(digest: str, signature: str) -> str:
    """Recover the checksummed signer address of a signed integrity hash.

    Raises InvalidSignature if the signature is malformed or recovery fails.
    """
    message = encode_defunct(text=digest)
    try:
        return Account.recover_message(message, signature=signature)
    except Exception as e:  # eth_keys/eth_utils raise several unrelated types
        raise InvalidSignature(f"Cannot recover signer of {digest}: {e}") from e


class EthereumSigner:
    """Signs integrity hashes with a pre-provisioned private key.

    Usage:
        signer = EthereumSigner(private_key)
        signature = signer.sign(asset_tree_sha256)
        assert signer.verify(asset_tree_sha256, signature) == signer.address
    """

    def __init__(self, private_key: str) -> None:
        try:
            self._account = Account.from_key(private_key)
        except Exception as e:  # hexbytes/eth_keys validation errors vary by version
            raise InvalidSignature(f"Invalid signing key: {e}") from e

    @property
    def address(self) -> str:
        return self._account.address

    def sign(self, digest: str) -> str:
        """Sign an integrity hash. Returns a 0x-prefixed hex signature."""
        signed = self._account.sign_message(encode_defunct(text=digest))
        signature = signed.signature.hex()
        if not signature.startswith("0x"):
            signature = f"0x{signature}"
        logger.debug("Signed %s as %s", digest, self.address)
        return signature

    def verify(self, digest: str, signature: str) -> str:
        """Recover the signer address of (digest, signature)."""
        return recover_address(digest, signature)
