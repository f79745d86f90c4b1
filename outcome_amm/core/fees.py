"""
Swap-fee attribution kernels (deterministic, integer-only).

Fees are attributed to liquidity providers through a single accumulator,
`fee_pool_weight`. An LP's raw entitlement is its pro-rata share of the
accumulator; what it has already been credited (or was never eligible for) is
tracked as `withdrawn`:

    withdrawable = lp_balance * fee_pool_weight // lp_supply - withdrawn

Minting LP tokens inflates the accumulator by the fees the new stake must not
claim and books the same amount as already withdrawn by the minter; burning
does the reverse. The accumulator therefore only shrinks on LP exit.

Floor rounding on mint and burn can leave an LP's `withdrawn` above its
current raw share, so a single withdrawal is also capped by the undistributed
balance `fee_pool_weight - total_withdrawn_fees`. That balance never exceeds
fees collected minus fees paid, which keeps fee payouts within fees collected.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Tuple


@dataclass(frozen=True)
class FeePoolState:
    """Pool-wide fee accounting."""

    fee_pool_weight: int = 0
    total_withdrawn_fees: int = 0

    def __post_init__(self) -> None:
        for name, v in (
            ("fee_pool_weight", self.fee_pool_weight),
            ("total_withdrawn_fees", self.total_withdrawn_fees),
        ):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")


def raw_fee_share(state: FeePoolState, lp_balance: int, lp_supply: int) -> int:
    if lp_supply <= 0:
        return 0
    return (state.fee_pool_weight * lp_balance) // lp_supply


def fees_withdrawable(state: FeePoolState, lp_balance: int, lp_supply: int, withdrawn: int) -> int:
    """Uncollected fees for an LP; never negative, never above its raw share or the undistributed balance."""
    owed = raw_fee_share(state, lp_balance, lp_supply) - withdrawn
    undistributed = state.fee_pool_weight - state.total_withdrawn_fees
    return max(0, min(owed, undistributed))


def accrue_fee(state: FeePoolState, fee: int) -> FeePoolState:
    """Credit a collected swap fee to all current LPs."""
    if not isinstance(fee, int) or isinstance(fee, bool) or fee < 0:
        raise ValueError(f"fee must be a non-negative int, got {fee}")
    return replace(state, fee_pool_weight=state.fee_pool_weight + fee)


def withdraw_fees(
    state: FeePoolState, lp_balance: int, lp_supply: int, withdrawn: int
) -> Tuple[int, int, FeePoolState]:
    """
    Collect an LP's pending fees.

    Returns:
        Tuple of (amount_paid, new_withdrawn_for_account, new_state)
    """
    amount = fees_withdrawable(state, lp_balance, lp_supply, withdrawn)
    if amount == 0:
        return 0, withdrawn, state
    return (
        amount,
        withdrawn + amount,
        replace(state, total_withdrawn_fees=state.total_withdrawn_fees + amount),
    )


def on_mint(state: FeePoolState, lp_supply: int, minted: int) -> Tuple[int, FeePoolState]:
    """
    Account for `minted` new LP tokens (before they are added to `lp_supply`).

    Returns:
        Tuple of (ineligible_amount, new_state). The caller adds
        `ineligible_amount` to the minter's withdrawn balance.
    """
    if minted <= 0:
        raise ValueError(f"minted must be positive: {minted}")
    ineligible = 0 if lp_supply == 0 else (state.fee_pool_weight * minted) // lp_supply
    return ineligible, FeePoolState(
        fee_pool_weight=state.fee_pool_weight + ineligible,
        total_withdrawn_fees=state.total_withdrawn_fees + ineligible,
    )


def on_burn(
    state: FeePoolState, lp_supply: int, burned: int, withdrawn: int
) -> Tuple[int, FeePoolState]:
    """
    Account for `burned` LP tokens (before they leave `lp_supply`).

    Call after `withdraw_fees` so the burner has already been paid.

    Returns:
        Tuple of (new_withdrawn_for_account, new_state)
    """
    if burned <= 0:
        raise ValueError(f"burned must be positive: {burned}")
    if burned > lp_supply:
        raise ValueError(f"Cannot burn more LP than supply: {burned} > {lp_supply}")
    transfer = (state.fee_pool_weight * burned) // lp_supply
    # withdrawn can trail the burned share when a withdrawal was capped by the
    # undistributed balance; never go negative.
    transfer_withdrawn = min(transfer, withdrawn)
    return withdrawn - transfer_withdrawn, FeePoolState(
        fee_pool_weight=state.fee_pool_weight - transfer,
        total_withdrawn_fees=max(0, state.total_withdrawn_fees - transfer_withdrawn),
    )
