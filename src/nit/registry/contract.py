"""EVM contract registry — anchors Commit CIDs on an Ethereum-compatible chain.

Appending sends a ``commit(assetCid, commitData)`` transaction to the
registry contract, where ``commitData`` is the Commit's CID. The contract
emits ``Commit(recorder, assetCid, commitData)`` for every append; the
history of an asset is the list of those events filtered by assetCid,
ordered by (block number, log index). The chain, not Nit, provides
ordering and finality.

``append`` waits for one confirmation and returns the receipt. Callers
wanting deeper confirmation inspect the receipt's block themselves.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from eth_account import Account
from web3 import HTTPProvider, Web3
from web3.exceptions import Web3Exception

from nit.errors import RegistryFailure
from nit.registry.base import Receipt, RegistryEntry

logger = logging.getLogger(__name__)

REGISTRY_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "commit",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "assetCid", "type": "string"},
            {"name": "commitData", "type": "string"},
        ],
        "outputs": [{"name": "blockNumber", "type": "uint256"}],
    },
    {
        "type": "event",
        "name": "Commit",
        "anonymous": False,
        "inputs": [
            {"name": "recorder", "type": "address", "indexed": True},
            {"name": "assetCid", "type": "string", "indexed": True},
            {"name": "commitData", "type": "string", "indexed": False},
        ],
    },
]

DEFAULT_CONFIRMATION_TIMEOUT = 300


class ContractRegistry:
    """Registry backed by a deployed Nit registry contract.

    Usage:
        registry = ContractRegistry.connect(
            rpc_url="https://...",
            contract_address="0x...",
            private_key="0x...",
            chain_id=11155111,
        )
        receipt = registry.append(asset_cid, commit_cid)
        entries = registry.query(asset_cid)
    """

    def __init__(
        self,
        w3: Any,
        contract: Any,
        account: Any = None,
        chain_id: Optional[int] = None,
        explorer_base_url: str = "",
        from_block: int = 0,
        confirmation_timeout: int = DEFAULT_CONFIRMATION_TIMEOUT,
    ) -> None:
        self._w3 = w3
        self._contract = contract
        self._account = account
        self._chain_id = chain_id
        self._explorer_base_url = explorer_base_url.rstrip("/")
        self._from_block = from_block
        self._confirmation_timeout = confirmation_timeout

    @classmethod
    def connect(
        cls,
        rpc_url: str,
        contract_address: str,
        private_key: Optional[str] = None,
        chain_id: Optional[int] = None,
        explorer_base_url: str = "",
        from_block: int = 0,
    ) -> ContractRegistry:
        w3 = Web3(HTTPProvider(rpc_url))
        contract = w3.eth.contract(
            address=Web3.to_checksum_address(contract_address),
            abi=REGISTRY_ABI,
        )
        account = Account.from_key(private_key) if private_key else None
        return cls(
            w3,
            contract,
            account=account,
            chain_id=chain_id,
            explorer_base_url=explorer_base_url,
            from_block=from_block,
        )

    @property
    def contract_address(self) -> str:
        return self._contract.address

    def append(self, asset_cid: str, commit_cid: str) -> Receipt:
        if self._account is None:
            raise RegistryFailure("No signing key configured for registry transactions")

        try:
            tx_params: dict[str, Any] = {
                "from": self._account.address,
                "nonce": self._w3.eth.get_transaction_count(self._account.address),
            }
            if self._chain_id is not None:
                tx_params["chainId"] = self._chain_id
            tx = self._contract.functions.commit(asset_cid, commit_cid).build_transaction(tx_params)
            signed = self._account.sign_transaction(tx)
            tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
            logger.info("Sent registry tx %s, waiting for confirmation", _hex(tx_hash))
            receipt = self._w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self._confirmation_timeout,
            )
        except (Web3Exception, ValueError, OSError) as e:
            raise RegistryFailure(f"Registry append failed: {e}") from e

        if receipt["status"] != 1:
            raise RegistryFailure(f"Registry transaction {_hex(tx_hash)} reverted")

        log_index = 0
        for event in self._contract.events.Commit().process_receipt(receipt):
            log_index = event["logIndex"]
            break

        tx_hex = _hex(tx_hash)
        logger.info("Confirmed in block %s", receipt["blockNumber"])
        return Receipt(
            asset_cid=asset_cid,
            commit_cid=commit_cid,
            tx_hash=tx_hex,
            sequence=(receipt["blockNumber"], log_index),
            explorer_url=self.explorer_url(tx_hex),
        )

    def query(self, asset_cid: str) -> list[RegistryEntry]:
        try:
            logs = self._contract.events.Commit().get_logs(
                from_block=self._from_block,
                argument_filters={"assetCid": asset_cid},
            )
        except (Web3Exception, ValueError, OSError) as e:
            raise RegistryFailure(f"Registry query failed for {asset_cid}: {e}") from e

        entries = [
            RegistryEntry(
                commit_cid=log["args"]["commitData"],
                sequence=(log["blockNumber"], log["logIndex"]),
                tx_hash=_hex(log["transactionHash"]),
            )
            for log in logs
        ]
        entries.sort(key=lambda e: e.sequence)
        return entries

    def explorer_url(self, tx_hash: str) -> str:
        if not self._explorer_base_url:
            return ""
        return f"{self._explorer_base_url}/{tx_hash}"


def _hex(value: Any) -> str:
    """Normalize a tx hash (HexBytes or str) to 0x-prefixed hex."""
    text = value if isinstance(value, str) else value.hex()
    return text if text.startswith("0x") else f"0x{text}"
