"""Data types shared by the pool, resolver and market.

Units/conventions:
- every amount is an unsigned integer scaled to the collateral's decimals
  (`collateral_denomination` == 10**decimals),
- `swap_fee` and other `*_bps` rates are basis points (1/10_000),
- times are integer milliseconds supplied by the host.

`OutcomeTag` and `Answer` are tagged unions built from frozen dataclasses;
code that dispatches on them must handle every variant and raise `TypeError`
on anything else.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Union


FEE_DENOM = 10_000
U128_MAX = (1 << 128) - 1


# ---------------------------------------------------------------------------
# Outcome tags and oracle answers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CategoricalTag:
    label: str


@dataclass(frozen=True)
class NumericTag:
    """A signed fixed-point number: `(-1 if negative else 1) * value / multiplier`."""

    value: int
    multiplier: int = 1
    negative: bool = False


OutcomeTag = Union[CategoricalTag, NumericTag]


@dataclass(frozen=True)
class CategoricalAnswer:
    label: str


@dataclass(frozen=True)
class NumericAnswer:
    value: int
    multiplier: int = 1
    negative: bool = False


@dataclass(frozen=True)
class InvalidAnswer:
    """The oracle judged the market invalid."""


Answer = Union[CategoricalAnswer, NumericAnswer, InvalidAnswer]


# ---------------------------------------------------------------------------
# Payout numerator (tri-state)
# ---------------------------------------------------------------------------

@unique
class PayoutKind(Enum):
    UNRESOLVED = "unresolved"
    INVALID = "invalid"
    VALID = "valid"


@dataclass(frozen=True)
class PayoutNumerator:
    """Resolution result of a market.

    `values` is only populated for `VALID`; use the constructors below rather
    than building instances by hand.
    """

    kind: PayoutKind = PayoutKind.UNRESOLVED
    values: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        if self.kind is PayoutKind.VALID:
            if not self.values:
                raise ValueError("valid payout numerator needs values")
            for v in self.values:
                if not isinstance(v, int) or isinstance(v, bool) or v < 0:
                    raise ValueError(f"payout numerator entries must be non-negative ints: {v!r}")
        elif self.values:
            raise ValueError(f"{self.kind.value} payout numerator must not carry values")

    @classmethod
    def unresolved(cls) -> PayoutNumerator:
        return cls(PayoutKind.UNRESOLVED)

    @classmethod
    def invalid(cls) -> PayoutNumerator:
        return cls(PayoutKind.INVALID)

    @classmethod
    def valid(cls, values) -> PayoutNumerator:
        return cls(PayoutKind.VALID, tuple(int(v) for v in values))

    @property
    def is_resolved(self) -> bool:
        return self.kind is not PayoutKind.UNRESOLVED

    def to_wire(self) -> list[str] | None:
        """U128-string list for valid numerators, None otherwise."""
        if self.kind is PayoutKind.VALID:
            return [str(v) for v in self.values]
        return None


# ---------------------------------------------------------------------------
# Market lifecycle
# ---------------------------------------------------------------------------

@unique
class MarketStatus(Enum):
    OPEN = "open"
    AWAITING_RESOLUTION = "awaiting_resolution"
    FINALIZED = "finalized"


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BuyResult:
    shares_out: int
    fee: int


@dataclass(frozen=True)
class SellResult:
    shares_in: int
    fee: int

    @property
    def escrowed(self) -> int:
        """Collateral the pool keeps out of the gross `collateral_out`."""
        return self.fee


@dataclass(frozen=True)
class AddLiquidityResult:
    lp_minted: int
    shares_returned: tuple[int, ...]


@dataclass(frozen=True)
class ExitResult:
    lp_burned: int
    fees_earned: int
    shares_out: tuple[int, ...]


@dataclass(frozen=True)
class RedeemResult:
    burned: int
    fee: int

    @property
    def escrowed(self) -> int:
        return self.fee

    @property
    def payout(self) -> int:
        return self.burned - self.fee


@dataclass(frozen=True)
class PayoutResult:
    share_payout: int
    fees_earned: int = 0
    exit: ExitResult | None = None

    @property
    def total(self) -> int:
        return self.share_payout + self.fees_earned


# ---------------------------------------------------------------------------
# Event journal
# ---------------------------------------------------------------------------

@unique
class Event(Enum):
    """One member per observable contract event."""
    MARKET_CREATED = "MarketCreated"
    MARKET_STATUS_CHANGED = "MarketStatusChanged"
    LIQUIDITY_ADDED = "LiquidityAdded"
    POOL_EXITED = "PoolExited"
    SHARES_BOUGHT = "SharesBought"
    SHARES_SOLD = "SharesSold"
    COLLATERAL_REDEEMED = "CollateralRedeemed"
    ORACLE_ANSWER_RECORDED = "OracleAnswerRecorded"
    MARKET_FINALIZED = "MarketFinalized"
    EARNINGS_CLAIMED = "EarningsClaimed"
    TRANSFER_QUEUED = "TransferQueued"
    TRANSFER_ACKNOWLEDGED = "TransferAcknowledged"
    TRANSFER_FAILED = "TransferFailed"
    GOVERNANCE_CHANGED = "GovernanceChanged"


@dataclass(frozen=True)
class EventRecord:
    """A journal entry: event type, subject market (if any) and flat fields."""

    event: Event
    market_id: int | None = None
    fields: dict[str, object] = field(default_factory=dict)
