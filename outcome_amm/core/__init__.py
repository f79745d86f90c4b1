"""
Core prediction-market algorithms
"""

from .errors import AmmError, NotFound, StateError, ValidationError
from .fpmm import (
    calc_buy_amount,
    calc_sell_shares_in,
    compute_fee,
    spot_price,
    spot_price_sans_fee,
)
from .fees import FeePoolState, fees_withdrawable
from .resolution import (
    payout_vector,
    resolve_outcome,
    validate_outcome_tags,
    validate_payout_numerator,
)
from .types import (
    Answer,
    CategoricalAnswer,
    CategoricalTag,
    InvalidAnswer,
    MarketStatus,
    NumericAnswer,
    NumericTag,
    OutcomeTag,
    PayoutKind,
    PayoutNumerator,
)
from .pool import Pool
from .market import Market

__all__ = [
    "AmmError",
    "NotFound",
    "StateError",
    "ValidationError",
    "calc_buy_amount",
    "calc_sell_shares_in",
    "compute_fee",
    "spot_price",
    "spot_price_sans_fee",
    "FeePoolState",
    "fees_withdrawable",
    "payout_vector",
    "resolve_outcome",
    "validate_outcome_tags",
    "validate_payout_numerator",
    "Answer",
    "CategoricalAnswer",
    "CategoricalTag",
    "InvalidAnswer",
    "MarketStatus",
    "NumericAnswer",
    "NumericTag",
    "OutcomeTag",
    "PayoutKind",
    "PayoutNumerator",
    "Pool",
    "Market",
]
