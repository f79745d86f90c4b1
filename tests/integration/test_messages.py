from __future__ import annotations

import json

import pytest

from outcome_amm.core.errors import InvalidMessage
from outcome_amm.core.types import (
    U128_MAX,
    CategoricalAnswer,
    CategoricalTag,
    InvalidAnswer,
    NumericAnswer,
    NumericTag,
)
from outcome_amm.integration.messages import (
    AddLiquidityArgs,
    BuyArgs,
    CreateMarketArgs,
    parse_answer_json,
    parse_transfer_message,
)


def test_parse_buy_args() -> None:
    msg = json.dumps({"BuyArgs": {"market_id": "3", "outcome_target": 1, "min_shares_out": "90"}})
    assert parse_transfer_message(msg) == BuyArgs(market_id=3, outcome_target=1, min_shares_out=90)


def test_parse_add_liquidity_args() -> None:
    msg = json.dumps({"AddLiquidityArgs": {"market_id": "0", "weight_indication": ["1", "3"]}})
    assert parse_transfer_message(msg) == AddLiquidityArgs(market_id=0, weight_indication=(1, 3))
    bare = json.dumps({"AddLiquidityArgs": {"market_id": "0"}})
    assert parse_transfer_message(bare).weight_indication is None


def test_parse_create_market_args() -> None:
    msg = json.dumps(
        {
            "CreateMarketArgs": {
                "description": "ETH price",
                "outcomes": 2,
                "outcome_tags": [
                    {"Number": {"value": "1000", "multiplier": "100", "negative": True}},
                    {"Number": {"value": "5000", "multiplier": "100"}},
                ],
                "end_time": "1000",
                "resolution_time": "2000",
                "collateral_token_id": "usdc",
                "swap_fee": "30",
                "is_scalar": True,
                "scalar_multiplier": "100",
                "challenge_period": "60000",
            }
        }
    )
    args = parse_transfer_message(msg)
    assert isinstance(args, CreateMarketArgs)
    assert args.outcome_tags == (NumericTag(1000, 100, True), NumericTag(5000, 100, False))
    assert args.scalar_multiplier == 100
    assert args.challenge_period == 60000
    assert args.categories == ()


@pytest.mark.parametrize(
    "msg",
    [
        "not json",
        json.dumps([]),
        json.dumps({"SellArgs": {}}),
        json.dumps({"BuyArgs": {"market_id": 3, "outcome_target": 1, "min_shares_out": "90"}}),
        json.dumps({"BuyArgs": {"market_id": "03", "outcome_target": 1, "min_shares_out": "90"}}),
        json.dumps({"BuyArgs": {"market_id": "3", "outcome_target": -1, "min_shares_out": "90"}}),
        json.dumps({"BuyArgs": {"market_id": "3", "outcome_target": 1, "min_shares_out": str(U128_MAX + 1)}}),
        json.dumps({"BuyArgs": {"market_id": "3", "outcome_target": 1, "min_shares_out": "-5"}}),
        json.dumps({"BuyArgs": {}, "AddLiquidityArgs": {}}),
        json.dumps({"AddLiquidityArgs": {"market_id": "0", "weight_indication": "1,3"}}),
    ],
)
def test_malformed_messages(msg) -> None:
    with pytest.raises(InvalidMessage):
        parse_transfer_message(msg)


def test_outcome_tag_variants() -> None:
    msg = json.dumps(
        {
            "CreateMarketArgs": {
                "outcomes": 2,
                "outcome_tags": [{"String": "YES"}, {"Bool": True}],
                "end_time": "1",
                "resolution_time": "1",
                "collateral_token_id": "usdc",
                "swap_fee": "0",
            }
        }
    )
    with pytest.raises(InvalidMessage):
        parse_transfer_message(msg)

    ok = msg.replace('{"Bool": true}', '{"String": "NO"}')
    assert parse_transfer_message(ok).outcome_tags == (CategoricalTag("YES"), CategoricalTag("NO"))


def test_parse_answers() -> None:
    assert parse_answer_json('"Invalid"') == InvalidAnswer()
    assert parse_answer_json('{"String": "YES"}') == CategoricalAnswer("YES")
    assert parse_answer_json('{"Number": {"value": "7", "negative": true}}') == NumericAnswer(7, 1, True)
    with pytest.raises(InvalidMessage):
        parse_answer_json('{"Number": {"value": 7}}')
