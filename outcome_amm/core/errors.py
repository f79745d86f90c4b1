"""Exception types for the outcome AMM.

Every operation either completes or raises one of these before any state is
committed. The hierarchy mirrors the failure classes callers need to tell
apart: bad input, wrong lifecycle state, missing privilege, slippage, bad
payout vectors, unknown ids, empty claims and short balances.
"""

from __future__ import annotations


class AmmError(Exception):
    """Base class for all outcome AMM errors."""


# -- Validation --------------------------------------------------------------

class ValidationError(AmmError):
    """Raised when call arguments are malformed or out of domain."""


class InvalidCollateral(ValidationError):
    """Collateral token is not whitelisted."""


class InvalidTagLength(ValidationError):
    """Number of outcome tags does not match the declared outcome count."""


class InvalidEndTime(ValidationError):
    """End time is not in the future."""


class InvalidResolutionTime(ValidationError):
    """Resolution time precedes end time."""


class TooManyOutcomes(ValidationError):
    """Outcome count outside the configured bounds (or wrong arity for scalar markets)."""


class NonNumericTag(ValidationError):
    """A scalar market bound is not a numeric tag."""


class NegativeZeroBound(ValidationError):
    """A numeric bound is flagged negative with a zero magnitude."""


class WrongBounds(ValidationError):
    """Scalar bounds are equal, crossed, or use an illegal sign combination."""


class MissingMultiplier(ValidationError):
    """Scalar market created without a positive scalar multiplier."""


class InvalidSwapFee(ValidationError):
    """Swap fee outside the permitted basis-point range."""


class InvalidMessage(ValidationError):
    """Inbound transfer message could not be parsed."""


# -- Lifecycle state ---------------------------------------------------------

class StateError(AmmError):
    """Raised when an operation is not legal in the current lifecycle state."""


class ContractPaused(StateError):
    pass


class MarketDisabled(StateError):
    pass


class MarketEnded(StateError):
    pass


class MarketNotEnded(StateError):
    pass


class AlreadyFinalized(StateError):
    pass


class NotFinalized(StateError):
    pass


class DataRequestNotFinalized(StateError):
    pass


class ResolutionTimeNotReached(StateError):
    pass


# -- Everything else ---------------------------------------------------------

class AuthorizationError(AmmError):
    """Caller lacks the governance or oracle privilege the call requires."""


class SlippageExceeded(AmmError):
    """Trade result violates the caller's min/max bound."""

    def __init__(self, message: str, *, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"{message} (bound={expected}, actual={actual})")


class PayoutSumMismatch(AmmError):
    """Payout numerator does not sum to the collateral denomination."""


class PayoutLengthMismatch(AmmError):
    """Payout numerator length does not match the outcome count."""


class NotFound(AmmError):
    """Raised for unknown ids or labels."""


class MarketNotFound(NotFound):
    pass


class OutcomeNotFound(NotFound):
    pass


class NoPayout(AmmError):
    """Claim attempted with zero entitlement."""


class InsufficientBalance(AmmError):
    """Exit or redemption exceeds the caller's held balance."""
