"""Tests for the EVM contract registry against stub web3 objects."""

from types import SimpleNamespace
from typing import Any

import pytest
from hexbytes import HexBytes
from web3.exceptions import TimeExhausted

from nit.errors import RegistryFailure
from nit.registry.contract import REGISTRY_ABI, ContractRegistry


SIGNER_ADDRESS = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"


class StubEvent:
    def __init__(self, chain: "StubChain") -> None:
        self._chain = chain

    def process_receipt(self, receipt: dict) -> list[dict]:
        return [log for log in self._chain.logs if log["transactionHash"] == receipt["transactionHash"]]

    def get_logs(self, from_block: int, argument_filters: dict) -> list[dict]:
        self._chain.log_queries.append((from_block, argument_filters))
        return [
            log for log in self._chain.logs
            if log["_assetCid"] == argument_filters["assetCid"] and log["blockNumber"] >= from_block
        ]


class StubChain:
    """Minimal in-memory stand-in for web3 + the registry contract."""

    def __init__(self) -> None:
        self.logs: list[dict[str, Any]] = []
        self.log_queries: list[tuple] = []
        self.sent: list[bytes] = []
        self.block = 100
        self.revert = False
        self.timeout = False
        self._pending: dict[str, Any] = {}
        self.address = "0x00000000000000000000000000000000000000aa"
        self.eth = SimpleNamespace(
            get_transaction_count=lambda address: len(self.sent),
            send_raw_transaction=self._send,
            wait_for_transaction_receipt=self._wait,
        )
        self.functions = SimpleNamespace(commit=self._commit)
        self.events = SimpleNamespace(Commit=lambda: StubEvent(self))

    def _commit(self, asset_cid: str, commit_cid: str) -> SimpleNamespace:
        def build_transaction(params: dict) -> dict:
            return {**params, "_call": (asset_cid, commit_cid)}
        return SimpleNamespace(build_transaction=build_transaction)

    def _send(self, raw: Any) -> HexBytes:
        self.sent.append(raw)
        tx_hash = HexBytes(bytes([len(self.sent)]) * 32)
        self._pending[tx_hash.hex()] = raw
        return tx_hash

    def _wait(self, tx_hash: HexBytes, timeout: int) -> dict:
        if self.timeout:
            raise TimeExhausted("not mined")
        asset_cid, commit_cid = self._pending[tx_hash.hex()]["_call"]
        self.block += 1
        if not self.revert:
            self.logs.append({
                "args": {"recorder": SIGNER_ADDRESS, "assetCid": b"topic", "commitData": commit_cid},
                "_assetCid": asset_cid,
                "blockNumber": self.block,
                "logIndex": 3,
                "transactionHash": tx_hash,
            })
        return {
            "status": 0 if self.revert else 1,
            "blockNumber": self.block,
            "transactionHash": tx_hash,
        }


class StubAccount:
    address = SIGNER_ADDRESS

    def sign_transaction(self, tx: dict) -> SimpleNamespace:
        return SimpleNamespace(raw_transaction=tx)


@pytest.fixture
def chain() -> StubChain:
    return StubChain()


@pytest.fixture
def registry(chain: StubChain) -> ContractRegistry:
    return ContractRegistry(
        chain,
        chain,
        account=StubAccount(),
        chain_id=11155111,
        explorer_base_url="https://sepolia.etherscan.io/tx/",
    )


class TestAbi:
    def test_declares_commit_function_and_event(self) -> None:
        names = {(item["type"], item["name"]) for item in REGISTRY_ABI}
        assert ("function", "commit") in names
        assert ("event", "Commit") in names


class TestAppend:
    def test_append_returns_receipt(self, registry: ContractRegistry, chain: StubChain) -> None:
        receipt = registry.append("bafkreiasset", "bafkreicommit")
        assert receipt.sequence == (101, 3)
        assert receipt.tx_hash.startswith("0x")
        assert receipt.explorer_url == f"https://sepolia.etherscan.io/tx/{receipt.tx_hash}"
        tx = chain.sent[0]
        assert tx["chainId"] == 11155111
        assert tx["from"] == SIGNER_ADDRESS
        assert tx["_call"] == ("bafkreiasset", "bafkreicommit")

    def test_reverted_transaction(self, registry: ContractRegistry, chain: StubChain) -> None:
        chain.revert = True
        with pytest.raises(RegistryFailure, match="reverted"):
            registry.append("bafkreiasset", "bafkreicommit")

    def test_confirmation_timeout(self, registry: ContractRegistry, chain: StubChain) -> None:
        chain.timeout = True
        with pytest.raises(RegistryFailure, match="append failed"):
            registry.append("bafkreiasset", "bafkreicommit")

    def test_requires_account(self, chain: StubChain) -> None:
        registry = ContractRegistry(chain, chain)
        with pytest.raises(RegistryFailure, match="No signing key"):
            registry.append("bafkreiasset", "bafkreicommit")


class TestQuery:
    def test_empty_history(self, registry: ContractRegistry) -> None:
        assert registry.query("bafkreiasset") == []

    def test_ledger_order(self, registry: ContractRegistry) -> None:
        registry.append("bafkreiasset", "c1")
        registry.append("bafkreiother", "x")
        registry.append("bafkreiasset", "c2")
        entries = registry.query("bafkreiasset")
        assert [e.commit_cid for e in entries] == ["c1", "c2"]
        assert entries[0].sequence < entries[1].sequence

    def test_sorts_by_block_and_log_index(self, registry: ContractRegistry, chain: StubChain) -> None:
        for block, index, cid in [(9, 1, "late"), (5, 7, "early"), (9, 0, "middle")]:
            chain.logs.append({
                "args": {"commitData": cid},
                "_assetCid": "bafkreiasset",
                "blockNumber": block,
                "logIndex": index,
                "transactionHash": HexBytes(b"\x01" * 32),
            })
        entries = registry.query("bafkreiasset")
        assert [e.commit_cid for e in entries] == ["early", "middle", "late"]

    def test_filters_by_asset_cid_from_configured_block(self, chain: StubChain) -> None:
        registry = ContractRegistry(chain, chain, from_block=42)
        registry.query("bafkreiasset")
        assert chain.log_queries == [(42, {"assetCid": "bafkreiasset"})]

    def test_rpc_error(self, registry: ContractRegistry, chain: StubChain) -> None:
        def broken(**kwargs: Any) -> list:
            raise ValueError({"code": -32005, "message": "query returned more than 10000 results"})

        chain.events = SimpleNamespace(Commit=lambda: SimpleNamespace(get_logs=broken))
        with pytest.raises(RegistryFailure, match="query failed"):
            registry.query("bafkreiasset")

    def test_no_explorer_configured(self, chain: StubChain) -> None:
        assert ContractRegistry(chain, chain).explorer_url("0xabc") == ""
