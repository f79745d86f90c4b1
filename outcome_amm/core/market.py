"""
Market: one pool plus its resolution metadata and lifecycle.

The market is a thin state machine around `Pool`. It decides *whether* an
operation is legal (open for trading, awaiting resolution, finalized) and
delegates *how* to the pool and the resolver. Times are host-supplied
milliseconds.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from .errors import (
    AlreadyFinalized,
    DataRequestNotFinalized,
    MarketDisabled,
    MarketEnded,
    MarketNotEnded,
    NotFinalized,
    ResolutionTimeNotReached,
)
from .pool import Pool
from .resolution import resolve_outcome, validate_payout_numerator
from .types import (
    AddLiquidityResult,
    Answer,
    BuyResult,
    CategoricalTag,
    ExitResult,
    MarketStatus,
    NumericTag,
    OutcomeTag,
    PayoutNumerator,
    PayoutResult,
    RedeemResult,
    SellResult,
)


class Market:
    def __init__(
        self,
        market_id: int,
        creator: str,
        pool: Pool,
        outcome_tags: Sequence[OutcomeTag],
        end_time: int,
        resolution_time: int,
        *,
        is_scalar: bool = False,
        scalar_multiplier: Optional[int] = None,
        challenge_period: int = 0,
        validity_bond: int = 0,
        description: str = "",
        extra_info: str = "",
        categories: Sequence[str] = (),
        sources: Sequence[str] = (),
    ) -> None:
        self.market_id = market_id
        self.creator = creator
        self.pool = pool
        self.outcome_tags: List[OutcomeTag] = list(outcome_tags)
        self.end_time = end_time
        self.resolution_time = resolution_time
        self.is_scalar = is_scalar
        self.scalar_multiplier = scalar_multiplier
        self.challenge_period = challenge_period
        self.validity_bond = validity_bond
        self.description = description
        self.extra_info = extra_info
        self.categories: List[str] = list(categories)
        self.sources: List[str] = list(sources)

        self.payout_numerator = PayoutNumerator.unresolved()
        self.finalized = False
        self.enabled = True
        self.data_request_finalized = False
        self.oracle_answer: Optional[Answer] = None

    @property
    def outcomes(self) -> int:
        return self.pool.outcomes

    @property
    def collateral_denomination(self) -> int:
        return self.pool.collateral_denomination

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def status(self, now: int) -> MarketStatus:
        if self.finalized:
            return MarketStatus.FINALIZED
        if now >= self.end_time:
            return MarketStatus.AWAITING_RESOLUTION
        return MarketStatus.OPEN

    def _require_trading(self, now: int) -> None:
        if self.finalized:
            raise AlreadyFinalized(f"market {self.market_id} is finalized")
        if not self.enabled:
            raise MarketDisabled(f"market {self.market_id} is disabled")
        if now >= self.end_time:
            raise MarketEnded(f"market {self.market_id} ended at {self.end_time}")

    def _require_awaiting_resolution(self, now: int) -> None:
        if self.finalized:
            raise AlreadyFinalized(f"market {self.market_id} is already finalized")
        if now < self.end_time:
            raise MarketNotEnded(f"market {self.market_id} ends at {self.end_time}")

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = bool(enabled)

    # ------------------------------------------------------------------
    # Trading (OPEN only)
    # ------------------------------------------------------------------

    def buy(self, sender: str, collateral_in: int, outcome_target: int, min_shares_out: int, now: int) -> BuyResult:
        self._require_trading(now)
        return self.pool.buy(sender, collateral_in, outcome_target, min_shares_out)

    def sell(self, sender: str, collateral_out: int, outcome_target: int, max_shares_in: int, now: int) -> SellResult:
        self._require_trading(now)
        return self.pool.sell(sender, collateral_out, outcome_target, max_shares_in)

    def add_liquidity(
        self,
        sender: str,
        total_in: int,
        now: int,
        weight_indication: Optional[Sequence[int]] = None,
    ) -> AddLiquidityResult:
        self._require_trading(now)
        return self.pool.add_liquidity(sender, total_in, weight_indication)

    def exit_pool(self, sender: str, lp_in: int, now: int) -> ExitResult:
        self._require_trading(now)
        return self.pool.exit_pool(sender, lp_in)

    def burn_outcome_tokens_redeem_collateral(self, sender: str, to_burn: int, now: int) -> RedeemResult:
        self._require_trading(now)
        return self.pool.burn_outcome_tokens_redeem_collateral(sender, to_burn)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolute_market(self, payout_numerator: Optional[Sequence[int]], now: int) -> PayoutNumerator:
        """
        Governance override: finalize with an explicit vector, or invalid when None.

        Raises:
            AlreadyFinalized: If the market was finalized before
            MarketNotEnded: If trading is still open
            PayoutLengthMismatch / PayoutSumMismatch: On a malformed vector
        """
        self._require_awaiting_resolution(now)
        if payout_numerator is None:
            numerator = PayoutNumerator.invalid()
        else:
            values = list(payout_numerator)
            validate_payout_numerator(values, self.outcomes, self.collateral_denomination)
            numerator = PayoutNumerator.valid(values)
        self._finalize(numerator)
        return numerator

    def record_oracle_answer(self, answer: Answer, now: int) -> None:
        """Store the oracle's final answer; resolution happens in `finalize_from_oracle`."""
        if self.finalized:
            raise AlreadyFinalized(f"market {self.market_id} is already finalized")
        if now < self.resolution_time:
            raise ResolutionTimeNotReached(
                f"market {self.market_id} resolves at {self.resolution_time}, now={now}"
            )
        # Reject answers that cannot resolve this market before storing them.
        self._resolve(answer)
        self.oracle_answer = answer
        self.data_request_finalized = True

    def finalize_from_oracle(self, now: int) -> PayoutNumerator:
        self._require_awaiting_resolution(now)
        if not self.data_request_finalized or self.oracle_answer is None:
            raise DataRequestNotFinalized(f"market {self.market_id} has no finalized oracle answer")
        numerator = self._resolve(self.oracle_answer)
        self._finalize(numerator)
        return numerator

    def _resolve(self, answer: Answer) -> PayoutNumerator:
        return resolve_outcome(
            answer,
            self.outcome_tags,
            self.collateral_denomination,
            is_scalar=self.is_scalar,
            scalar_multiplier=self.scalar_multiplier or 1,
        )

    def _finalize(self, numerator: PayoutNumerator) -> None:
        self.payout_numerator = numerator
        self.finalized = True

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def claim(self, account: str) -> PayoutResult:
        if not self.finalized:
            raise NotFinalized(f"market {self.market_id} is not finalized")
        return self.pool.payout(account, self.payout_numerator)

    def to_dict(self, now: Optional[int] = None) -> dict:
        out = {
            "market_id": self.market_id,
            "creator": self.creator,
            "end_time": self.end_time,
            "resolution_time": self.resolution_time,
            "is_scalar": self.is_scalar,
            "scalar_multiplier": self.scalar_multiplier,
            "outcome_tags": [_tag_to_dict(t) for t in self.outcome_tags],
            "payout_numerator": self.payout_numerator.to_wire(),
            "payout_kind": self.payout_numerator.kind.value,
            "finalized": self.finalized,
            "enabled": self.enabled,
            "data_request_finalized": self.data_request_finalized,
            "challenge_period": self.challenge_period,
            "validity_bond": str(self.validity_bond),
            "description": self.description,
            "extra_info": self.extra_info,
            "categories": list(self.categories),
            "sources": list(self.sources),
            "pool": self.pool.to_dict(),
        }
        if now is not None:
            out["status"] = self.status(now).value
        return out


def _tag_to_dict(tag: OutcomeTag) -> dict:
    if isinstance(tag, CategoricalTag):
        return {"String": tag.label}
    if isinstance(tag, NumericTag):
        return {"Number": {"value": str(tag.value), "multiplier": str(tag.multiplier), "negative": tag.negative}}
    raise TypeError(f"unknown outcome tag variant: {type(tag).__name__}")
