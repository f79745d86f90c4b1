"""
Outbound collateral transfer queue.

Settlement of collateral happens outside the contract. Every payment the
contract owes is written here *after* the market state it depends on has been
committed; the external settlement layer drains PENDING entries and reports
back with `acknowledge` or `fail`.

Entries are keyed by sha256 over (market_id, receiver, operation, nonce), so
enqueueing the same transfer twice is a no-op.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, unique
from typing import Dict, List, Optional

from ..core.errors import NotFound, StateError, ValidationError
from .balances import AccountId
from .canonical import canonical_json_bytes, sha256_hex


@unique
class TransferStatus(Enum):
    PENDING = "pending"
    ACKNOWLEDGED = "acknowledged"
    FAILED = "failed"


@dataclass(frozen=True)
class OutboxEntry:
    key: str
    market_id: Optional[int]
    receiver: AccountId
    token_id: str
    amount: int
    operation: str
    nonce: int
    status: TransferStatus = TransferStatus.PENDING
    attempts: int = 0
    last_error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "market_id": self.market_id,
            "receiver": self.receiver,
            "token_id": self.token_id,
            "amount": str(self.amount),
            "operation": self.operation,
            "nonce": self.nonce,
            "status": self.status.value,
            "attempts": self.attempts,
            "last_error": self.last_error,
        }


def transfer_key(market_id: Optional[int], receiver: AccountId, operation: str, nonce: int) -> str:
    return sha256_hex(
        canonical_json_bytes(
            {"market_id": market_id, "account": receiver, "operation": operation, "nonce": nonce}
        )
    )


class TransferOutbox:
    def __init__(self) -> None:
        self._entries: Dict[str, OutboxEntry] = {}
        self._order: List[str] = []

    def __len__(self) -> int:
        return len(self._entries)

    def enqueue(
        self,
        market_id: Optional[int],
        receiver: AccountId,
        token_id: str,
        amount: int,
        operation: str,
        nonce: int,
    ) -> OutboxEntry:
        """Queue a transfer; returns the existing entry if this key was already queued."""
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise ValidationError(f"transfer amount must be a positive int: {amount!r}")
        key = transfer_key(market_id, receiver, operation, nonce)
        existing = self._entries.get(key)
        if existing is not None:
            return existing
        entry = OutboxEntry(
            key=key,
            market_id=market_id,
            receiver=receiver,
            token_id=token_id,
            amount=amount,
            operation=operation,
            nonce=nonce,
        )
        self._entries[key] = entry
        self._order.append(key)
        return entry

    def get(self, key: str) -> OutboxEntry:
        entry = self._entries.get(key)
        if entry is None:
            raise NotFound(f"no outbox entry {key}")
        return entry

    def pending(self) -> List[OutboxEntry]:
        """PENDING and FAILED entries in enqueue order (failed ones are retried)."""
        return [
            self._entries[k]
            for k in self._order
            if self._entries[k].status is not TransferStatus.ACKNOWLEDGED
        ]

    def entries(self) -> List[OutboxEntry]:
        return [self._entries[k] for k in self._order]

    def acknowledge(self, key: str) -> OutboxEntry:
        entry = self.get(key)
        if entry.status is TransferStatus.ACKNOWLEDGED:
            return entry
        updated = replace(entry, status=TransferStatus.ACKNOWLEDGED, attempts=entry.attempts + 1, last_error=None)
        self._entries[key] = updated
        return updated

    def fail(self, key: str, reason: str) -> OutboxEntry:
        entry = self.get(key)
        if entry.status is TransferStatus.ACKNOWLEDGED:
            raise StateError(f"transfer {key} was already acknowledged")
        updated = replace(entry, status=TransferStatus.FAILED, attempts=entry.attempts + 1, last_error=str(reason))
        self._entries[key] = updated
        return updated
