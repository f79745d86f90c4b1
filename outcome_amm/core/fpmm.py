"""
Fixed Product Market Maker (FPMM) algorithm implementation.

This module implements the bonding-curve math for an N-outcome prediction
market pool with deterministic rounding rules. Every function is pure and
integer-only; the `Pool` ledger applies the results.

Algorithm Design:
- Type: Fixed-Point Integer Arithmetic / Deterministic Rounding
- Time Complexity: O(N) per trade for N outcomes
- Space Complexity: O(N) auxiliary
- Invariant: Π reserves never decreases across a trade (fees only add to it)

Rounding always favors the pool: fees round up, the target reserve left after
a trade rounds up, pro-rata payouts round down.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from .types import FEE_DENOM


def ceil_div(a: int, b: int) -> int:
    if b <= 0:
        raise ValueError(f"divisor must be positive: {b}")
    return -((-a) // b)


def _product(values) -> int:
    out = 1
    for v in values:
        out *= v
    return out


def _check_reserves(reserves: Sequence[int], outcome: int) -> None:
    if not (0 <= outcome < len(reserves)):
        raise ValueError(f"outcome out of range: {outcome} (outcomes={len(reserves)})")
    if any(r <= 0 for r in reserves):
        raise ValueError(f"pool has no liquidity: reserves={list(reserves)}")


def compute_fee(amount: int, swap_fee: int) -> int:
    """
    Deterministic fee computation (ceil rounding).

        fee = ceil(amount * swap_fee / 10_000)
    """
    if amount < 0:
        raise ValueError(f"amount must be non-negative: {amount}")
    if not (0 <= swap_fee < FEE_DENOM):
        raise ValueError(f"swap_fee must be in [0, {FEE_DENOM}): {swap_fee}")
    return ceil_div(amount * swap_fee, FEE_DENOM)


def odds_weights(reserves: Sequence[int]) -> List[int]:
    """Odds weight of outcome i: the product of every *other* reserve."""
    return [_product(r for j, r in enumerate(reserves) if j != i) for i in range(len(reserves))]


def spot_price_sans_fee(reserves: Sequence[int], outcome: int, denomination: int) -> int:
    """
    Marginal price of `outcome` in collateral units, excluding fees.

        price_i = w_i * denomination // Σ w     with w_i = Π_{j≠i} r_j

    An unfunded pool has no price; 0 is returned.
    """
    if not (0 <= outcome < len(reserves)):
        raise ValueError(f"outcome out of range: {outcome} (outcomes={len(reserves)})")
    if any(r <= 0 for r in reserves):
        return 0
    weights = odds_weights(reserves)
    return (weights[outcome] * denomination) // sum(weights)


def spot_price(reserves: Sequence[int], outcome: int, denomination: int, swap_fee: int) -> int:
    """Marginal price including the swap fee markup."""
    if not (0 <= swap_fee < FEE_DENOM):
        raise ValueError(f"swap_fee must be in [0, {FEE_DENOM}): {swap_fee}")
    sans_fee = spot_price_sans_fee(reserves, outcome, denomination)
    return (sans_fee * FEE_DENOM) // (FEE_DENOM - swap_fee)


def calc_buy_amount(
    reserves: Sequence[int],
    collateral_in: int,
    outcome: int,
    swap_fee: int,
) -> Tuple[int, int]:
    """
    Compute shares received for `collateral_in` spent on `outcome`.

    The net input (after fee) mints `net` complete sets into the pool; the
    target reserve then shrinks until the product of reserves is restored:

        fee        = ceil(collateral_in * swap_fee / 10_000)
        net        = collateral_in - fee
        new_target = ceil(r_t * Π_{j≠t} r_j / Π_{j≠t} (r_j + net))
        shares_out = r_t + net - new_target

    Args:
        reserves: Current outcome reserves (all positive)
        collateral_in: Gross collateral paid by the buyer
        outcome: Index of the outcome being bought
        swap_fee: Fee in basis points

    Returns:
        Tuple of (shares_out, fee)

    Raises:
        ValueError: If inputs are invalid or the pool is unfunded
    """
    _check_reserves(reserves, outcome)
    if collateral_in <= 0:
        raise ValueError(f"collateral_in must be positive: {collateral_in}")

    fee = compute_fee(collateral_in, swap_fee)
    net = collateral_in - fee
    target = reserves[outcome]
    others = [r for j, r in enumerate(reserves) if j != outcome]

    new_target = ceil_div(target * _product(others), _product(r + net for r in others))
    shares_out = target + net - new_target
    if shares_out < 0:
        raise ValueError(f"Invariant violation: negative shares_out ({shares_out})")
    return shares_out, fee


def calc_sell_shares_in(
    reserves: Sequence[int],
    collateral_out: int,
    outcome: int,
) -> int:
    """
    Compute shares that must be sold into the pool to release `collateral_out`.

    Selling adds shares to the target reserve, then `collateral_out` complete
    sets are merged out of every reserve. The target reserve must end up large
    enough to restore the product:

        new_target = ceil(r_t * Π_{j≠t} r_j / Π_{j≠t} (r_j - collateral_out))
        shares_in  = collateral_out + new_target - r_t

    The fee is not part of the share computation; it is withheld from the
    released collateral by the caller.

    Raises:
        ValueError: If `collateral_out` would drain any non-target reserve
    """
    _check_reserves(reserves, outcome)
    if collateral_out <= 0:
        raise ValueError(f"collateral_out must be positive: {collateral_out}")

    target = reserves[outcome]
    others = [r for j, r in enumerate(reserves) if j != outcome]
    if any(collateral_out >= r for r in others):
        raise ValueError(
            f"Cannot drain full reserve: collateral_out ({collateral_out}) >= min reserve ({min(others)})"
        )

    new_target = ceil_div(target * _product(others), _product(r - collateral_out for r in others))
    return collateral_out + new_target - target


def apply_buy(reserves: Sequence[int], net: int, outcome: int, shares_out: int) -> List[int]:
    """Post-buy reserves: mint `net` sets, hand `shares_out` of `outcome` to the buyer."""
    out = [r + net for r in reserves]
    out[outcome] -= shares_out
    if out[outcome] <= 0:
        raise ValueError(f"Invariant violation: target reserve drained ({out[outcome]})")
    return out


def apply_sell(reserves: Sequence[int], collateral_out: int, outcome: int, shares_in: int) -> List[int]:
    """Post-sell reserves: take `shares_in` of `outcome`, merge `collateral_out` sets."""
    out = list(reserves)
    out[outcome] += shares_in
    out = [r - collateral_out for r in out]
    if any(r <= 0 for r in out):
        raise ValueError(f"Invariant violation: reserve drained ({out})")
    return out


def compute_initial_funding(
    total_in: int,
    outcomes: int,
    weight_indication: Optional[Sequence[int]] = None,
) -> Tuple[List[int], List[int]]:
    """
    Split the first deposit of an empty pool into reserves and returned shares.

    Without weights every reserve receives `total_in`. With weights, the
    heaviest outcome receives `total_in` and outcome i receives
    `floor(total_in * w_i / max(w))`; the remainder of each complete set is
    returned to the depositor as outcome-i shares, which skews initial prices
    towards the hinted distribution.

    Returns:
        Tuple of (reserves, shares_returned)
    """
    if total_in <= 0:
        raise ValueError(f"total_in must be positive: {total_in}")
    if weight_indication is None:
        return [total_in] * outcomes, [0] * outcomes

    if len(weight_indication) != outcomes:
        raise ValueError(
            f"weight_indication length {len(weight_indication)} != outcomes {outcomes}"
        )
    if any(w <= 0 for w in weight_indication):
        raise ValueError(f"weights must be positive: {list(weight_indication)}")

    max_weight = max(weight_indication)
    reserves = [(total_in * w) // max_weight for w in weight_indication]
    if any(r <= 0 for r in reserves):
        raise ValueError("weight_indication yields an empty reserve; deposit more or flatten the weights")
    return reserves, [total_in - r for r in reserves]


def compute_proportional_funding(
    reserves: Sequence[int],
    total_in: int,
    lp_supply: int,
) -> Tuple[List[int], List[int], int]:
    """
    Split a deposit into an already-funded pool.

    `total_in` complete sets are minted; outcome i keeps
    `floor(total_in * r_i / max(r))` in the pool so reserve ratios are
    preserved, and the rest is returned to the depositor as shares. LP minted
    is proportional to the growth of the largest reserve:

        lp = floor(total_in * lp_supply / max(r))

    Returns:
        Tuple of (added_to_reserves, shares_returned, lp_minted)
    """
    if total_in <= 0:
        raise ValueError(f"total_in must be positive: {total_in}")
    if lp_supply <= 0:
        raise ValueError(f"LP supply must be positive: {lp_supply}")
    if any(r <= 0 for r in reserves):
        raise ValueError(f"pool has no liquidity: reserves={list(reserves)}")

    pool_weight = max(reserves)
    added = [(total_in * r) // pool_weight for r in reserves]
    returned = [total_in - a for a in added]
    lp_minted = (total_in * lp_supply) // pool_weight
    if lp_minted <= 0:
        raise ValueError(f"Computed LP amount is non-positive: {lp_minted}")
    return added, returned, lp_minted


def compute_lp_burn(lp_amount: int, reserves: Sequence[int], lp_supply: int) -> List[int]:
    """
    Outcome amounts released for burning `lp_amount` pool tokens.

        amount_i = floor(lp_amount * r_i / lp_supply)
    """
    if lp_amount <= 0:
        raise ValueError(f"LP amount must be positive: {lp_amount}")
    if lp_supply <= 0:
        raise ValueError(f"LP supply must be positive: {lp_supply}")
    if lp_amount > lp_supply:
        raise ValueError(f"Cannot burn more LP than supply: {lp_amount} > {lp_supply}")
    return [(lp_amount * r) // lp_supply for r in reserves]
