"""
Outcome resolution: oracle answer -> payout numerator.

This module is pure. It converts a finalized oracle answer plus a market's
outcome tags into a `PayoutNumerator`, and holds the creation-time rules for
outcome tags so the resolver can rely on them.

Scalar markets carry exactly two numeric tags, the lower bound (index 0,
"short") and the upper bound (index 1, "long"). Values are signed magnitudes,
so the resolver shifts the bounds and the answer onto one unsigned line,
clamps the answer into the range and interpolates linearly:

    short = (ub - ans) * denomination // (ub - lb)
    long  = denomination - short

The long side takes the remainder so the vector always sums to the
denomination.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

from .errors import (
    InvalidTagLength,
    NegativeZeroBound,
    NonNumericTag,
    OutcomeNotFound,
    PayoutLengthMismatch,
    PayoutSumMismatch,
    TooManyOutcomes,
    ValidationError,
    WrongBounds,
)
from .types import (
    Answer,
    CategoricalAnswer,
    CategoricalTag,
    InvalidAnswer,
    NumericAnswer,
    NumericTag,
    OutcomeTag,
    PayoutKind,
    PayoutNumerator,
)


# ---------------------------------------------------------------------------
# Creation-time tag rules
# ---------------------------------------------------------------------------

def validate_scalar_bounds(lower: NumericTag, upper: NumericTag, scalar_multiplier: int = 1) -> None:
    """
    Enforce the legal scalar bound combinations.

    Both bounds are first rescaled to `scalar_multiplier` units, exactly as
    `resolve_scalar` does, so a market that passes here always resolves.

    - negative zero is rejected on either bound,
    - a negative bound must not round to zero,
    - (neg, neg): |lower| > |upper|,
    - (pos, pos): lower < upper,
    - (neg, pos): always ordered,
    - (pos, neg): illegal.
    """
    for name, tag in (("lower", lower), ("upper", upper)):
        if tag.value < 0:
            raise ValidationError(f"{name} bound magnitude must be non-negative: {tag.value}")
        if tag.negative and tag.value == 0:
            raise NegativeZeroBound(f"{name} bound is negative zero")

    lb = rescale(lower.value, lower.multiplier, scalar_multiplier)
    ub = rescale(upper.value, upper.multiplier, scalar_multiplier)
    for name, tag, scaled in (("lower", lower, lb), ("upper", upper, ub)):
        if tag.negative and scaled == 0:
            raise WrongBounds(f"negative {name} bound rounds to zero at multiplier {scalar_multiplier}")

    if not lower.negative and not upper.negative:
        if lb >= ub:
            raise WrongBounds(f"lower bound {lb} must be below upper bound {ub} at multiplier {scalar_multiplier}")
    elif not lower.negative and upper.negative:
        raise WrongBounds("upper bound is negative while lower bound is not")
    elif lower.negative and upper.negative:
        if lb <= ub:
            raise WrongBounds(f"lower bound -{lb} must be below upper bound -{ub} at multiplier {scalar_multiplier}")

    low, high, _ = _normalize_scalar_line((lb, lower.negative), (ub, upper.negative), (0, False))
    if high <= low:
        raise WrongBounds(f"empty scalar range after rescaling: [{low}, {high}]")


def validate_outcome_tags(
    outcome_tags: Sequence[OutcomeTag], outcomes: int, is_scalar: bool, scalar_multiplier: int = 1
) -> None:
    """Check tag arity and shape for a market about to be created."""
    if len(outcome_tags) != outcomes:
        raise InvalidTagLength(f"{len(outcome_tags)} outcome tags for {outcomes} outcomes")

    if is_scalar:
        if outcomes != 2:
            raise TooManyOutcomes(f"scalar markets have exactly 2 outcomes, got {outcomes}")
        lower, upper = outcome_tags
        if not isinstance(lower, NumericTag) or not isinstance(upper, NumericTag):
            raise NonNumericTag("scalar market bounds must be numeric tags")
        if lower.multiplier <= 0 or upper.multiplier <= 0 or scalar_multiplier <= 0:
            raise ValidationError("numeric tag and market multipliers must be positive")
        validate_scalar_bounds(lower, upper, scalar_multiplier)
        return

    labels = []
    for tag in outcome_tags:
        if isinstance(tag, CategoricalTag):
            if not tag.label:
                raise ValidationError("categorical outcome labels must be non-empty")
            labels.append(tag.label)
        elif isinstance(tag, NumericTag):
            raise ValidationError("numeric tags are only valid for scalar markets")
        else:
            raise TypeError(f"unknown outcome tag variant: {type(tag).__name__}")
    if len(set(labels)) != len(labels):
        raise ValidationError(f"categorical outcome labels must be unique: {labels}")


def validate_payout_numerator(values: Sequence[int], outcomes: int, denomination: int) -> None:
    if len(values) != outcomes:
        raise PayoutLengthMismatch(f"payout numerator has {len(values)} entries for {outcomes} outcomes")
    for v in values:
        if not isinstance(v, int) or isinstance(v, bool) or v < 0:
            raise PayoutSumMismatch(f"payout numerator entries must be non-negative ints: {v!r}")
    total = sum(values)
    if total != denomination:
        raise PayoutSumMismatch(f"payout numerator sums to {total}, expected {denomination}")


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def rescale(value: int, from_multiplier: int, to_multiplier: int) -> int:
    """Re-express a magnitude scaled by `from_multiplier` in `to_multiplier` units (floor)."""
    if from_multiplier <= 0 or to_multiplier <= 0:
        raise ValidationError("multipliers must be positive")
    if from_multiplier == to_multiplier:
        return value
    return (value * to_multiplier) // from_multiplier


def _normalize_scalar_line(
    lower: Tuple[int, bool], upper: Tuple[int, bool], answer: Tuple[int, bool]
) -> Tuple[int, int, int]:
    """Shift (lb, ub, ans) onto an unsigned line with lb == 0 where a bound is negative."""
    lb, lb_neg = lower
    ub, ub_neg = upper
    ans, ans_neg = answer

    if lb_neg and ub_neg:
        span = lb - ub
        if ans_neg and ans > lb:
            ans = 0
        elif not ans_neg:
            ans = span
        else:
            ans = lb - ans
        return 0, span, ans

    if lb_neg:
        if ans_neg:
            ans = 0 if ans > lb else lb - ans
        else:
            ans = ans + lb
        return 0, ub + lb, ans

    if ans_neg:
        ans = lb
    return lb, ub, ans


def resolve_scalar(
    answer: NumericAnswer,
    lower: NumericTag,
    upper: NumericTag,
    denomination: int,
    scalar_multiplier: int,
) -> List[int]:
    """Linear payout split between the short (index 0) and long (index 1) outcomes."""
    lb = rescale(lower.value, lower.multiplier, scalar_multiplier)
    ub = rescale(upper.value, upper.multiplier, scalar_multiplier)
    ans = rescale(answer.value, answer.multiplier, scalar_multiplier)

    lb, ub, ans = _normalize_scalar_line(
        (lb, lower.negative), (ub, upper.negative), (ans, answer.negative and ans > 0)
    )
    if ub <= lb:
        raise WrongBounds(f"degenerate scalar range after normalization: [{lb}, {ub}]")

    ans = min(max(ans, lb), ub)
    short = ((ub - ans) * denomination) // (ub - lb)
    return [short, denomination - short]


def resolve_categorical(answer: CategoricalAnswer, outcome_tags: Sequence[OutcomeTag], denomination: int) -> List[int]:
    for index, tag in enumerate(outcome_tags):
        if isinstance(tag, CategoricalTag) and tag.label == answer.label:
            vector = [0] * len(outcome_tags)
            vector[index] = denomination
            return vector
    raise OutcomeNotFound(f"answer {answer.label!r} matches no outcome tag")


def resolve_outcome(
    answer: Answer,
    outcome_tags: Sequence[OutcomeTag],
    denomination: int,
    *,
    is_scalar: bool = False,
    scalar_multiplier: int = 1,
) -> PayoutNumerator:
    """
    Map an oracle answer onto a payout numerator.

    Raises:
        OutcomeNotFound: Categorical label not among the tags
        ValidationError: Answer shape does not fit the market type
    """
    if isinstance(answer, InvalidAnswer):
        return PayoutNumerator.invalid()

    if isinstance(answer, CategoricalAnswer):
        if is_scalar:
            raise ValidationError("scalar market cannot resolve to a categorical answer")
        return PayoutNumerator.valid(resolve_categorical(answer, outcome_tags, denomination))

    if isinstance(answer, NumericAnswer):
        if not is_scalar:
            raise ValidationError("categorical market cannot resolve to a numeric answer")
        if answer.value < 0:
            raise ValidationError(f"answer magnitude must be non-negative: {answer.value}")
        lower, upper = outcome_tags
        if not isinstance(lower, NumericTag) or not isinstance(upper, NumericTag):
            raise NonNumericTag("scalar market bounds must be numeric tags")
        return PayoutNumerator.valid(resolve_scalar(answer, lower, upper, denomination, scalar_multiplier))

    raise TypeError(f"unknown answer variant: {type(answer).__name__}")


def invalid_payout_vector(outcomes: int, denomination: int) -> List[int]:
    """Even split for invalid markets; the rounding remainder goes to outcome 0."""
    share = denomination // outcomes
    vector = [share] * outcomes
    vector[0] += denomination - share * outcomes
    return vector


def payout_vector(numerator: PayoutNumerator, outcomes: int, denomination: int) -> List[int]:
    """Concrete per-outcome weights for a resolved numerator."""
    if numerator.kind is PayoutKind.VALID:
        validate_payout_numerator(numerator.values, outcomes, denomination)
        return list(numerator.values)
    if numerator.kind is PayoutKind.INVALID:
        return invalid_payout_vector(outcomes, denomination)
    raise ValueError("unresolved payout numerator has no payout vector")
