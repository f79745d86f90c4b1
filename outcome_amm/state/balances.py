"""
Outcome-share balance tracking for a single pool.

Implements ShareTable[AccountId, outcome] -> Amount
"""

from typing import Dict, List, Tuple


# Type aliases
AccountId = str
Amount = int  # Non-negative integer (arbitrary precision, u128 at the boundary)


class ShareTable:
    """
    Balance table mapping (account, outcome) -> shares.

    Note: this class stores balances in a plain dict. Do not rely on dict
    iteration order; callers sort explicitly where order matters (snapshots).
    """

    def __init__(self, outcomes: int):
        """Initialize an empty table for `outcomes` outcomes."""
        if outcomes <= 0:
            raise ValueError(f"outcomes must be positive: {outcomes}")
        self.outcomes = outcomes
        self._balances: Dict[Tuple[AccountId, int], Amount] = {}

    def _check_outcome(self, outcome: int) -> None:
        if not (0 <= outcome < self.outcomes):
            raise ValueError(f"outcome out of range: {outcome} (outcomes={self.outcomes})")

    def get(self, account: AccountId, outcome: int) -> Amount:
        """Get balance for (account, outcome). Returns 0 if not found."""
        self._check_outcome(outcome)
        return self._balances.get((account, outcome), 0)

    def get_all_for(self, account: AccountId) -> List[Amount]:
        """Balances of every outcome for `account`, in outcome order."""
        return [self._balances.get((account, i), 0) for i in range(self.outcomes)]

    def set(self, account: AccountId, outcome: int, amount: Amount) -> None:
        """
        Set balance for (account, outcome).

        Raises:
            ValueError: If amount is negative
        """
        self._check_outcome(outcome)
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            # Remove zero balances to keep table sparse
            self._balances.pop((account, outcome), None)
        else:
            self._balances[(account, outcome)] = amount

    def add(self, account: AccountId, outcome: int, delta: int) -> None:
        """
        Add delta to balance (delta may be negative).

        Raises:
            ValueError: If resulting balance would be negative
        """
        current = self.get(account, outcome)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
            )
        self.set(account, outcome, new_balance)

    def subtract(self, account: AccountId, outcome: int, delta: Amount) -> None:
        """Subtract a non-negative amount from a balance."""
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(account, outcome, -delta)

    def clear_account(self, account: AccountId) -> List[Amount]:
        """Zero every outcome balance of `account`; returns the balances removed."""
        removed = self.get_all_for(account)
        for i in range(self.outcomes):
            self._balances.pop((account, i), None)
        return removed

    def total_supply(self, outcome: int) -> Amount:
        """Shares of `outcome` held by accounts (pool reserves excluded)."""
        self._check_outcome(outcome)
        return sum(v for (_, o), v in self._balances.items() if o == outcome)

    def get_all_balances(self) -> Dict[Tuple[AccountId, int], Amount]:
        return dict(self._balances)

    def __repr__(self) -> str:
        return f"ShareTable(outcomes={self.outcomes}, {len(self._balances)} entries)"
