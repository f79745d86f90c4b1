from __future__ import annotations

import hypothesis.strategies as st
import pytest
from hypothesis import given, settings

from outcome_amm.core.errors import (
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
from outcome_amm.core.resolution import (
    invalid_payout_vector,
    payout_vector,
    resolve_outcome,
    validate_outcome_tags,
    validate_payout_numerator,
)
from outcome_amm.core.types import (
    CategoricalAnswer,
    CategoricalTag,
    InvalidAnswer,
    NumericAnswer,
    NumericTag,
    PayoutKind,
    PayoutNumerator,
)


DENOM = 10**24
HALF = 5 * 10**23


def _scalar(lower: NumericTag, upper: NumericTag, answer: NumericAnswer, multiplier: int = 1) -> list[int]:
    numerator = resolve_outcome(answer, [lower, upper], DENOM, is_scalar=True, scalar_multiplier=multiplier)
    assert numerator.kind is PayoutKind.VALID
    return list(numerator.values)


def test_categorical_answer_is_one_hot() -> None:
    tags = [CategoricalTag("YES"), CategoricalTag("NO")]
    numerator = resolve_outcome(CategoricalAnswer("NO"), tags, DENOM)
    assert numerator == PayoutNumerator.valid([0, DENOM])


def test_categorical_unknown_label() -> None:
    tags = [CategoricalTag("YES"), CategoricalTag("NO")]
    with pytest.raises(OutcomeNotFound):
        resolve_outcome(CategoricalAnswer("MAYBE"), tags, DENOM)


def test_invalid_answer() -> None:
    tags = [CategoricalTag("YES"), CategoricalTag("NO")]
    assert resolve_outcome(InvalidAnswer(), tags, DENOM).kind is PayoutKind.INVALID


def test_answer_type_must_match_market_type() -> None:
    tags = [CategoricalTag("YES"), CategoricalTag("NO")]
    with pytest.raises(ValidationError):
        resolve_outcome(NumericAnswer(1), tags, DENOM)
    with pytest.raises(ValidationError):
        resolve_outcome(CategoricalAnswer("YES"), [NumericTag(0), NumericTag(10)], DENOM, is_scalar=True)


def test_unknown_answer_variant_raises_type_error() -> None:
    with pytest.raises(TypeError):
        resolve_outcome("YES", [CategoricalTag("YES"), CategoricalTag("NO")], DENOM)  # type: ignore[arg-type]


def test_scalar_midpoint_positive_range() -> None:
    values = _scalar(NumericTag(0, 100), NumericTag(500, 100), NumericAnswer(250, 100), multiplier=100)
    assert values == [HALF, HALF]


def test_scalar_zero_inside_mixed_range() -> None:
    values = _scalar(NumericTag(50, negative=True), NumericTag(50), NumericAnswer(0))
    assert values == [HALF, HALF]


def test_scalar_negative_range_below_lower_bound() -> None:
    values = _scalar(NumericTag(200, negative=True), NumericTag(100, negative=True), NumericAnswer(201, negative=True))
    assert values == [DENOM, 0]


def test_scalar_negative_range_positive_answer() -> None:
    values = _scalar(NumericTag(200, negative=True), NumericTag(100, negative=True), NumericAnswer(5))
    assert values == [0, DENOM]


def test_scalar_negative_range_midpoint() -> None:
    values = _scalar(NumericTag(200, negative=True), NumericTag(100, negative=True), NumericAnswer(150, negative=True))
    assert values == [HALF, HALF]


def test_scalar_answer_above_upper_bound_is_clamped() -> None:
    values = _scalar(NumericTag(0), NumericTag(50), NumericAnswer(55))
    assert values == [0, DENOM]


def test_scalar_negative_answer_on_positive_range() -> None:
    values = _scalar(NumericTag(10), NumericTag(20), NumericAnswer(3, negative=True))
    assert values == [DENOM, 0]


def test_scalar_negative_answer_inside_mixed_range() -> None:
    values = _scalar(NumericTag(50, negative=True), NumericTag(50), NumericAnswer(30, negative=True))
    assert values == [8 * 10**23, 2 * 10**23]


def test_scalar_answer_is_rescaled_to_market_multiplier() -> None:
    # 2500 / 1000 == 2.5, floored to 2 in market units
    values = _scalar(NumericTag(0), NumericTag(10), NumericAnswer(2500, multiplier=1000))
    assert values == [8 * 10**23, 2 * 10**23]


def test_invalid_payout_vector_remainder_goes_to_first_outcome() -> None:
    assert invalid_payout_vector(3, 100) == [34, 33, 33]
    assert invalid_payout_vector(2, DENOM) == [HALF, HALF]
    assert payout_vector(PayoutNumerator.invalid(), 3, 100) == [34, 33, 33]


def test_payout_vector_of_unresolved_numerator() -> None:
    with pytest.raises(ValueError):
        payout_vector(PayoutNumerator.unresolved(), 2, 100)


def test_validate_payout_numerator() -> None:
    validate_payout_numerator([60, 40], 2, 100)
    with pytest.raises(PayoutSumMismatch):
        validate_payout_numerator([60, 41], 2, 100)
    with pytest.raises(PayoutLengthMismatch):
        validate_payout_numerator([100], 2, 100)


@pytest.mark.parametrize(
    "tags, outcomes, error",
    [
        ([NumericTag(200), NumericTag(300), NumericTag(400)], 3, TooManyOutcomes),
        ([NumericTag(10), NumericTag(10)], 2, WrongBounds),
        ([NumericTag(20), NumericTag(10)], 2, WrongBounds),
        ([NumericTag(10), NumericTag(20, negative=True)], 2, WrongBounds),
        ([NumericTag(10, negative=True), NumericTag(10, negative=True)], 2, WrongBounds),
        ([NumericTag(10, negative=True), NumericTag(20, negative=True)], 2, WrongBounds),
        ([NumericTag(0, negative=True), NumericTag(10)], 2, NegativeZeroBound),
        ([NumericTag(10, negative=True), NumericTag(0, negative=True)], 2, NegativeZeroBound),
        ([CategoricalTag("low"), NumericTag(10)], 2, NonNumericTag),
        ([NumericTag(0)], 2, InvalidTagLength),
    ],
)
def test_scalar_creation_rules(tags, outcomes, error) -> None:
    with pytest.raises(error):
        validate_outcome_tags(tags, outcomes, is_scalar=True)


@pytest.mark.parametrize(
    "tags",
    [
        [NumericTag(0), NumericTag(500)],
        [NumericTag(200, negative=True), NumericTag(100, negative=True)],
        [NumericTag(50, negative=True), NumericTag(50)],
    ],
)
def test_scalar_creation_accepts_ordered_bounds(tags) -> None:
    validate_outcome_tags(tags, 2, is_scalar=True)


def test_categorical_creation_rules() -> None:
    validate_outcome_tags([CategoricalTag("YES"), CategoricalTag("NO")], 2, is_scalar=False)
    with pytest.raises(ValidationError):
        validate_outcome_tags([CategoricalTag("YES"), CategoricalTag("YES")], 2, is_scalar=False)
    with pytest.raises(ValidationError):
        validate_outcome_tags([CategoricalTag(""), CategoricalTag("NO")], 2, is_scalar=False)
    with pytest.raises(ValidationError):
        validate_outcome_tags([CategoricalTag("YES"), NumericTag(1)], 2, is_scalar=False)


@pytest.mark.parametrize(
    "lower, upper, multiplier",
    [
        # 0.1 and 0.2 both floor to 0 whole units
        (NumericTag(1, 10), NumericTag(2, 10), 1),
        # 5 above 0.1 once both are in market units
        (NumericTag(5, 1), NumericTag(10, 100), 1),
        (NumericTag(5, 1), NumericTag(10, 100), 1000),
        # -0.1 rounds to zero
        (NumericTag(1, 10, negative=True), NumericTag(5), 1),
        # -0.25 and -0.2 both floor to -0.2 in tenths
        (NumericTag(25, 100, negative=True), NumericTag(2, 10, negative=True), 10),
    ],
)
def test_scalar_bounds_are_checked_in_market_units(lower, upper, multiplier) -> None:
    with pytest.raises(WrongBounds):
        validate_outcome_tags([lower, upper], 2, is_scalar=True, scalar_multiplier=multiplier)


def test_scalar_bounds_with_mixed_multipliers_resolve() -> None:
    lower, upper = NumericTag(15, 10), NumericTag(3)
    validate_outcome_tags([lower, upper], 2, is_scalar=True, scalar_multiplier=1)
    # 1.5 -> 1 and the answer 2 sits halfway in [1, 3]
    assert _scalar(lower, upper, NumericAnswer(2)) == [HALF, HALF]

    tenths = [NumericTag(1, 10), NumericTag(2, 10)]
    validate_outcome_tags(tenths, 2, is_scalar=True, scalar_multiplier=100)
    assert _scalar(tenths[0], tenths[1], NumericAnswer(15, 100), multiplier=100) == [HALF, HALF]


def test_scalar_creation_rejects_non_positive_market_multiplier() -> None:
    with pytest.raises(ValidationError):
        validate_outcome_tags([NumericTag(0), NumericTag(10)], 2, is_scalar=True, scalar_multiplier=0)


def _tag(n: int, multiplier: int = 1) -> NumericTag:
    return NumericTag(abs(n) * multiplier, multiplier, n < 0)


@settings(max_examples=300, deadline=None)
@given(
    lo=st.integers(min_value=-10**6, max_value=10**6),
    width=st.integers(min_value=1, max_value=10**6),
    answer=st.integers(min_value=-3 * 10**6, max_value=3 * 10**6),
    tag_multiplier=st.sampled_from([1, 10, 100, 10**6]),
    answer_multiplier=st.sampled_from([1, 10, 1000]),
    market_multiplier=st.sampled_from([1, 100, 10**4]),
)
def test_scalar_matches_signed_linear_interpolation(
    lo, width, answer, tag_multiplier, answer_multiplier, market_multiplier
) -> None:
    hi = lo + width
    lower, upper = _tag(lo, tag_multiplier), _tag(hi, tag_multiplier)
    validate_outcome_tags([lower, upper], 2, is_scalar=True, scalar_multiplier=market_multiplier)

    ans = NumericAnswer(abs(answer) * answer_multiplier, answer_multiplier, answer < 0)
    values = _scalar(lower, upper, ans, multiplier=market_multiplier)

    clamped = min(max(answer, lo), hi)
    short = (hi - clamped) * DENOM // (hi - lo)
    assert values == [short, DENOM - short]
    assert sum(values) == DENOM
    assert all(v >= 0 for v in values)


_raw_tag = st.builds(
    NumericTag,
    value=st.integers(min_value=0, max_value=1000),
    multiplier=st.sampled_from([1, 3, 10, 100, 1000]),
    negative=st.booleans(),
)


@settings(max_examples=500, deadline=None)
@given(
    lower=_raw_tag,
    upper=_raw_tag,
    market_multiplier=st.sampled_from([1, 7, 10, 100]),
    answer=st.builds(
        NumericAnswer,
        value=st.integers(min_value=0, max_value=10**5),
        multiplier=st.sampled_from([1, 10, 100]),
        negative=st.booleans(),
    ),
)
def test_accepted_scalar_markets_always_resolve(lower, upper, market_multiplier, answer) -> None:
    try:
        validate_outcome_tags([lower, upper], 2, is_scalar=True, scalar_multiplier=market_multiplier)
    except ValidationError:
        return
    values = _scalar(lower, upper, answer, multiplier=market_multiplier)
    assert sum(values) == DENOM
    assert all(v >= 0 for v in values)
