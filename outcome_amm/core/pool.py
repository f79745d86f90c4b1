"""
Liquidity pool ledger for a single prediction market.

`Pool` is the imperative shell around the pure math in `fpmm.py` and
`fees.py`. It owns:
- outcome reserves (the bonding-curve state),
- the LP token ledger and fee attribution bookkeeping,
- per-account outcome-share balances.

Every public mutator computes its full result before touching any field, so a
raised error leaves the pool exactly as it was.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..state.balances import AccountId, ShareTable
from ..state.lp import LPTable
from . import fpmm
from .errors import (
    InsufficientBalance,
    InvalidSwapFee,
    NoPayout,
    NotFinalized,
    OutcomeNotFound,
    SlippageExceeded,
    ValidationError,
)
from .fees import FeePoolState, accrue_fee, fees_withdrawable, on_burn, on_mint, withdraw_fees
from .resolution import payout_vector
from .types import (
    FEE_DENOM,
    AddLiquidityResult,
    BuyResult,
    ExitResult,
    PayoutNumerator,
    PayoutResult,
    RedeemResult,
    SellResult,
)


@dataclass(frozen=True)
class _ExitPlan:
    account: AccountId
    lp_in: int
    fees_earned: int
    shares_out: List[int]
    new_withdrawn: int
    new_fee_state: FeePoolState


class Pool:
    """Fixed-product market maker over `outcomes` outcome tokens."""

    def __init__(
        self,
        market_id: int,
        outcomes: int,
        collateral_token_id: str,
        collateral_decimals: int,
        swap_fee: int,
    ) -> None:
        if outcomes < 2:
            raise ValidationError(f"a pool needs at least 2 outcomes: {outcomes}")
        if not (0 <= swap_fee < FEE_DENOM):
            raise InvalidSwapFee(f"swap_fee must be in [0, {FEE_DENOM}): {swap_fee}")
        if collateral_decimals < 0:
            raise ValidationError(f"collateral decimals must be non-negative: {collateral_decimals}")

        self.market_id = market_id
        self.outcomes = outcomes
        self.collateral_token_id = collateral_token_id
        self.collateral_denomination = 10 ** collateral_decimals
        self.swap_fee = swap_fee

        self.reserves: List[int] = [0] * outcomes
        self.lp = LPTable()
        self.shares = ShareTable(outcomes)
        self.fee_state = FeePoolState()
        self.withdrawn_fees: Dict[AccountId, int] = {}

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def lp_supply(self) -> int:
        return self.lp.total_supply

    @property
    def fee_pool_weight(self) -> int:
        return self.fee_state.fee_pool_weight

    def get_pool_balances(self) -> List[int]:
        return list(self.reserves)

    def get_pool_token_balance(self, account: AccountId) -> int:
        return self.lp.get(account)

    def get_share_balance(self, account: AccountId, outcome: int) -> int:
        self._check_outcome(outcome)
        return self.shares.get(account, outcome)

    def get_spot_price_sans_fee(self, outcome: int) -> int:
        self._check_outcome(outcome)
        return fpmm.spot_price_sans_fee(self.reserves, outcome, self.collateral_denomination)

    def get_spot_price(self, outcome: int) -> int:
        self._check_outcome(outcome)
        return fpmm.spot_price(self.reserves, outcome, self.collateral_denomination, self.swap_fee)

    def get_fees_withdrawable(self, account: AccountId) -> int:
        return fees_withdrawable(
            self.fee_state,
            self.lp.get(account),
            self.lp.total_supply,
            self.withdrawn_fees.get(account, 0),
        )

    def calc_buy_amount(self, collateral_in: int, outcome_target: int) -> int:
        self._check_funded(outcome_target)
        shares_out, _fee = self._quote_buy(collateral_in, outcome_target)
        return shares_out

    def calc_sell_collateral_out(self, collateral_out: int, outcome_target: int) -> int:
        self._check_funded(outcome_target)
        return self._quote_sell(collateral_out, outcome_target)

    # ------------------------------------------------------------------
    # Liquidity
    # ------------------------------------------------------------------

    def add_liquidity(
        self,
        sender: AccountId,
        total_in: int,
        weight_indication: Optional[Sequence[int]] = None,
    ) -> AddLiquidityResult:
        """Deposit `total_in` collateral as liquidity, minting LP tokens."""
        if total_in <= 0:
            raise ValidationError(f"total_in must be positive: {total_in}")

        lp_supply = self.lp.total_supply
        try:
            if lp_supply == 0:
                added, returned = fpmm.compute_initial_funding(total_in, self.outcomes, weight_indication)
                lp_minted = total_in
            else:
                if weight_indication is not None:
                    raise ValidationError("weight_indication is only accepted for the initial deposit")
                added, returned, lp_minted = fpmm.compute_proportional_funding(
                    self.reserves, total_in, lp_supply
                )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        ineligible, new_fee_state = on_mint(self.fee_state, lp_supply, lp_minted)

        # commit
        self.fee_state = new_fee_state
        if ineligible:
            self.withdrawn_fees[sender] = self.withdrawn_fees.get(sender, 0) + ineligible
        self.reserves = [r + a for r, a in zip(self.reserves, added)]
        self.lp.mint(sender, lp_minted)
        for outcome, amount in enumerate(returned):
            if amount:
                self.shares.add(sender, outcome, amount)

        return AddLiquidityResult(lp_minted=lp_minted, shares_returned=tuple(returned))

    def exit_pool(self, sender: AccountId, lp_in: int) -> ExitResult:
        """Burn `lp_in` LP tokens for pro-rata reserves (as shares) plus pending fees."""
        plan = self._plan_exit(sender, lp_in)
        self._commit_exit(plan)
        return ExitResult(lp_burned=plan.lp_in, fees_earned=plan.fees_earned, shares_out=tuple(plan.shares_out))

    def _plan_exit(self, sender: AccountId, lp_in: int) -> _ExitPlan:
        if lp_in <= 0:
            raise ValidationError(f"LP amount must be positive: {lp_in}")
        balance = self.lp.get(sender)
        if lp_in > balance:
            raise InsufficientBalance(f"LP balance {balance} < requested exit {lp_in}")

        lp_supply = self.lp.total_supply
        fees_earned, withdrawn, fee_state = withdraw_fees(
            self.fee_state, balance, lp_supply, self.withdrawn_fees.get(sender, 0)
        )
        new_withdrawn, fee_state = on_burn(fee_state, lp_supply, lp_in, withdrawn)
        shares_out = fpmm.compute_lp_burn(lp_in, self.reserves, lp_supply)
        return _ExitPlan(
            account=sender,
            lp_in=lp_in,
            fees_earned=fees_earned,
            shares_out=shares_out,
            new_withdrawn=new_withdrawn,
            new_fee_state=fee_state,
        )

    def _commit_exit(self, plan: _ExitPlan) -> None:
        self.fee_state = plan.new_fee_state
        if plan.new_withdrawn:
            self.withdrawn_fees[plan.account] = plan.new_withdrawn
        else:
            self.withdrawn_fees.pop(plan.account, None)
        self.lp.burn(plan.account, plan.lp_in)
        self.reserves = [r - s for r, s in zip(self.reserves, plan.shares_out)]
        for outcome, amount in enumerate(plan.shares_out):
            if amount:
                self.shares.add(plan.account, outcome, amount)

    # ------------------------------------------------------------------
    # Trading
    # ------------------------------------------------------------------

    def buy(
        self,
        sender: AccountId,
        collateral_in: int,
        outcome_target: int,
        min_shares_out: int,
    ) -> BuyResult:
        self._check_funded(outcome_target)
        shares_out, fee = self._quote_buy(collateral_in, outcome_target)
        if shares_out < min_shares_out:
            raise SlippageExceeded("buy returns fewer shares than min_shares_out", expected=min_shares_out, actual=shares_out)
        if shares_out == 0:
            raise ValidationError(f"collateral_in too small to buy any shares: {collateral_in}")

        new_reserves = fpmm.apply_buy(self.reserves, collateral_in - fee, outcome_target, shares_out)

        # commit
        self.fee_state = accrue_fee(self.fee_state, fee)
        self.reserves = new_reserves
        self.shares.add(sender, outcome_target, shares_out)
        return BuyResult(shares_out=shares_out, fee=fee)

    def sell(
        self,
        sender: AccountId,
        collateral_out: int,
        outcome_target: int,
        max_shares_in: int,
    ) -> SellResult:
        """
        Sell shares of `outcome_target` so that `collateral_out` leaves the pool.

        The pool keeps the swap fee out of `collateral_out`; the caller pays the
        seller `collateral_out - result.escrowed`.
        """
        self._check_funded(outcome_target)
        shares_in = self._quote_sell(collateral_out, outcome_target)
        if shares_in > max_shares_in:
            raise SlippageExceeded("sell needs more shares than max_shares_in", expected=max_shares_in, actual=shares_in)
        held = self.shares.get(sender, outcome_target)
        if shares_in > held:
            raise InsufficientBalance(f"share balance {held} < shares required {shares_in}")

        fee = fpmm.compute_fee(collateral_out, self.swap_fee)
        new_reserves = fpmm.apply_sell(self.reserves, collateral_out, outcome_target, shares_in)

        # commit
        self.shares.subtract(sender, outcome_target, shares_in)
        self.reserves = new_reserves
        self.fee_state = accrue_fee(self.fee_state, fee)
        return SellResult(shares_in=shares_in, fee=fee)

    def burn_outcome_tokens_redeem_collateral(self, sender: AccountId, to_burn: int) -> RedeemResult:
        """Burn `to_burn` complete sets held by `sender` for collateral."""
        if to_burn <= 0:
            raise ValidationError(f"to_burn must be positive: {to_burn}")
        held = self.shares.get_all_for(sender)
        for outcome, balance in enumerate(held):
            if balance < to_burn:
                raise InsufficientBalance(
                    f"outcome {outcome} balance {balance} < to_burn {to_burn}"
                )

        fee = fpmm.compute_fee(to_burn, self.swap_fee) if self.lp.total_supply > 0 else 0

        # commit
        for outcome in range(self.outcomes):
            self.shares.subtract(sender, outcome, to_burn)
        self.fee_state = accrue_fee(self.fee_state, fee)
        return RedeemResult(burned=to_burn, fee=fee)

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def payout(self, account: AccountId, payout_numerator: PayoutNumerator) -> PayoutResult:
        """
        Settle everything `account` holds in this pool after resolution.

        Any remaining LP stake is exited first (its pro-rata reserves join the
        account's shares, pending fees are paid), then every share balance is
        valued against the payout vector and zeroed.

        Raises:
            NotFinalized: If the numerator is unresolved
            NoPayout: If the account is owed nothing
        """
        if not payout_numerator.is_resolved:
            raise NotFinalized("cannot pay out an unresolved market")
        vector = payout_vector(payout_numerator, self.outcomes, self.collateral_denomination)

        plan = None
        balances = self.shares.get_all_for(account)
        lp_balance = self.lp.get(account)
        if lp_balance > 0:
            plan = self._plan_exit(account, lp_balance)
            balances = [b + s for b, s in zip(balances, plan.shares_out)]

        weighted = sum(b * n for b, n in zip(balances, vector))
        share_payout = weighted // self.collateral_denomination
        fees_earned = plan.fees_earned if plan is not None else 0
        if share_payout + fees_earned == 0:
            raise NoPayout(f"nothing to claim for {account}")

        # commit
        exit_result = None
        if plan is not None:
            self._commit_exit(plan)
            exit_result = ExitResult(lp_burned=plan.lp_in, fees_earned=plan.fees_earned, shares_out=tuple(plan.shares_out))
        self.shares.clear_account(account)
        return PayoutResult(share_payout=share_payout, fees_earned=fees_earned, exit=exit_result)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_outcome(self, outcome: int) -> None:
        if not isinstance(outcome, int) or isinstance(outcome, bool) or not (0 <= outcome < self.outcomes):
            raise OutcomeNotFound(f"outcome out of range: {outcome!r} (outcomes={self.outcomes})")

    def _check_funded(self, outcome: int) -> None:
        self._check_outcome(outcome)
        if self.lp.total_supply == 0:
            raise ValidationError("pool has no liquidity")

    def _quote_buy(self, collateral_in: int, outcome: int) -> tuple[int, int]:
        try:
            return fpmm.calc_buy_amount(self.reserves, collateral_in, outcome, self.swap_fee)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

    def _quote_sell(self, collateral_out: int, outcome: int) -> int:
        try:
            return fpmm.calc_sell_shares_in(self.reserves, collateral_out, outcome)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

    def to_dict(self) -> dict:
        """Plain-data snapshot (sorted, U128 values as strings)."""
        return {
            "market_id": self.market_id,
            "outcomes": self.outcomes,
            "collateral_token_id": self.collateral_token_id,
            "collateral_denomination": str(self.collateral_denomination),
            "swap_fee": str(self.swap_fee),
            "reserves": [str(r) for r in self.reserves],
            "lp_supply": str(self.lp.total_supply),
            "fee_pool_weight": str(self.fee_state.fee_pool_weight),
            "total_withdrawn_fees": str(self.fee_state.total_withdrawn_fees),
            "lp_balances": {k: str(v) for k, v in sorted(self.lp.get_all_balances().items())},
            "withdrawn_fees": {k: str(v) for k, v in sorted(self.withdrawn_fees.items())},
            "share_balances": [
                [account, outcome, str(amount)]
                for (account, outcome), amount in sorted(self.shares.get_all_balances().items())
            ],
        }
