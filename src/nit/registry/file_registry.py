"""File-backed registry — an append-only JSONL ledger.

Each line binds one assetCid to one commitCid. Lines carry a sequence
number and a hash chained to the previous line, so the file is
tamper-evident: recovery recomputes every hash and refuses to load a
ledger whose chain is broken.

Used for offline work and for workspaces with no blockchain configured.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from nit.errors import RegistryFailure
from nit.registry.base import Receipt, RegistryEntry

logger = logging.getLogger(__name__)

# Sentinel for the first line of a ledger (no previous record exists).
CHAIN_START_HASH = "sha256:" + "0" * 64


@dataclass(frozen=True)
class LedgerRecord:
    """A single immutable line of the ledger."""
    sequence: int
    asset_cid: str
    commit_cid: str
    previous_hash: str
    record_hash: str

    @staticmethod
    def create(
        sequence: int,
        asset_cid: str,
        commit_cid: str,
        previous_hash: str,
    ) -> LedgerRecord:
        return LedgerRecord(
            sequence=sequence,
            asset_cid=asset_cid,
            commit_cid=commit_cid,
            previous_hash=previous_hash,
            record_hash=_record_hash(sequence, asset_cid, commit_cid, previous_hash),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "assetCid": self.asset_cid,
            "commitCid": self.commit_cid,
            "previousHash": self.previous_hash,
            "recordHash": self.record_hash,
        }


class FileRegistry:
    """Append-only registry persisted as a JSONL file.

    Records can only be appended, never modified or deleted.
    """

    def __init__(self, storage_path: Path) -> None:
        self._storage_path = storage_path
        self._records: list[LedgerRecord] = []

        if storage_path.exists():
            self._load_from_file(storage_path)

    def append(self, asset_cid: str, commit_cid: str) -> Receipt:
        previous = self._records[-1].record_hash if self._records else CHAIN_START_HASH
        record = LedgerRecord.create(
            sequence=len(self._records) + 1,
            asset_cid=asset_cid,
            commit_cid=commit_cid,
            previous_hash=previous,
        )
        try:
            self._append_to_file(record)
        except OSError as e:
            raise RegistryFailure(f"Cannot append to ledger {self._storage_path}: {e}") from e
        self._records.append(record)

        logger.info("Anchored %s under %s (seq %d)", commit_cid, asset_cid, record.sequence)
        return Receipt(
            asset_cid=asset_cid,
            commit_cid=commit_cid,
            tx_hash=record.record_hash,
            sequence=(record.sequence, 0),
        )

    def query(self, asset_cid: str) -> list[RegistryEntry]:
        return [
            RegistryEntry(
                commit_cid=r.commit_cid,
                sequence=(r.sequence, 0),
                tx_hash=r.record_hash,
            )
            for r in self._records
            if r.asset_cid == asset_cid
        ]

    def explorer_url(self, tx_hash: str) -> str:
        return ""

    @property
    def count(self) -> int:
        return len(self._records)

    @property
    def last_record(self) -> Optional[LedgerRecord]:
        return self._records[-1] if self._records else None

    def _append_to_file(self, record: LedgerRecord) -> None:
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        with self._storage_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record.to_dict(), sort_keys=True, ensure_ascii=False) + "\n")
            f.flush()
            os.fsync(f.fileno())

    def _load_from_file(self, path: Path) -> None:
        """Load records with integrity verification.

        Fail-closed: rejects out-of-order sequences, broken chain links
        and tampered records.
        """
        previous = CHAIN_START_HASH
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                    record = LedgerRecord(
                        sequence=int(data["sequence"]),
                        asset_cid=data["assetCid"],
                        commit_cid=data["commitCid"],
                        previous_hash=data["previousHash"],
                        record_hash=data["recordHash"],
                    )
                except (ValueError, KeyError) as e:
                    raise RegistryFailure(f"Malformed ledger record (line {line_num}): {e}") from e

                if record.sequence != len(self._records) + 1:
                    raise RegistryFailure(
                        f"Ledger sequence gap (line {line_num}): "
                        f"expected {len(self._records) + 1}, got {record.sequence}"
                    )
                if record.previous_hash != previous:
                    raise RegistryFailure(f"Ledger chain broken (line {line_num})")

                expected = _record_hash(
                    record.sequence, record.asset_cid, record.commit_cid, record.previous_hash,
                )
                if record.record_hash != expected:
                    raise RegistryFailure(
                        f"Integrity check failed (line {line_num}): "
                        f"stored hash {record.record_hash} != computed {expected}"
                    )

                self._records.append(record)
                previous = record.record_hash


def _record_hash(sequence: int, asset_cid: str, commit_cid: str, previous_hash: str) -> str:
    canonical = json.dumps(
        {
            "sequence": sequence,
            "assetCid": asset_cid,
            "commitCid": commit_cid,
            "previousHash": previous_hash,
        },
        sort_keys=True,
        ensure_ascii=False,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"
