"""
LP token ledger for a single pool.

Tracks per-account pool-token balances and the total supply together so the
two can never drift apart.
"""

from __future__ import annotations

from typing import Dict

from .balances import AccountId, Amount


class LPTable:
    """
    LP balance table mapping account -> lp_amount, plus total supply.

    Notes:
    - LP balances are always non-negative.
    - Zero balances are omitted to keep the table sparse.
    """

    def __init__(self) -> None:
        self._balances: Dict[AccountId, Amount] = {}
        self._total_supply: Amount = 0

    @property
    def total_supply(self) -> Amount:
        return self._total_supply

    def get(self, account: AccountId) -> Amount:
        """Get LP balance for `account`. Returns 0 if not found."""
        return self._balances.get(account, 0)

    def mint(self, account: AccountId, amount: Amount) -> None:
        if amount <= 0:
            raise ValueError(f"mint amount must be positive: {amount}")
        self._balances[account] = self.get(account) + amount
        self._total_supply += amount

    def burn(self, account: AccountId, amount: Amount) -> None:
        if amount <= 0:
            raise ValueError(f"burn amount must be positive: {amount}")
        current = self.get(account)
        if amount > current:
            raise ValueError(f"Insufficient LP balance: {current} < {amount}")
        if amount == current:
            self._balances.pop(account, None)
        else:
            self._balances[account] = current - amount
        self._total_supply -= amount

    def get_all_balances(self) -> Dict[AccountId, Amount]:
        """Return all LP balances."""
        return dict(self._balances)

    def verify_supply(self) -> bool:
        """Verify the stored supply equals the sum of balances."""
        return sum(self._balances.values()) == self._total_supply

    def __repr__(self) -> str:
        return f"LPTable({len(self._balances)} entries, supply={self._total_supply})"
