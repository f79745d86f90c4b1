"""
Per-account operation counters.

Each outbound transfer carries the next nonce of its receiver so that two
otherwise identical transfers (same market, account and operation) get
distinct outbox keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping

from .balances import AccountId


@dataclass
class NonceTable:
    """Mutable mapping: account -> last used nonce."""

    _last: Dict[AccountId, int] = field(default_factory=dict)

    def get_last(self, account: AccountId) -> int:
        v = self._last.get(account, 0)
        if not isinstance(v, int) or isinstance(v, bool) or v < 0:
            raise ValueError(f"invalid stored nonce for {account!r}: {v!r}")
        return v

    def next(self, account: AccountId) -> int:
        """Reserve and return the next nonce for `account` (starting at 1)."""
        nonce = self.get_last(account) + 1
        self._last[account] = nonce
        return nonce

    def get_all(self) -> Mapping[AccountId, int]:
        return dict(self._last)
