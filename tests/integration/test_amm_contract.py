from __future__ import annotations

import json

import pytest

from outcome_amm.core.errors import (
    AmmError,
    AuthorizationError,
    ContractPaused,
    InvalidCollateral,
    InvalidEndTime,
    InvalidResolutionTime,
    InvalidSwapFee,
    MarketDisabled,
    MarketNotFound,
    MissingMultiplier,
    NegativeZeroBound,
    NoPayout,
    SlippageExceeded,
    TooManyOutcomes,
    ValidationError,
    WrongBounds,
)
from outcome_amm.core.types import CategoricalAnswer, Event, MarketStatus, NumericAnswer, PayoutKind
from outcome_amm.integration.amm_contract import AMMContract
from outcome_amm.integration.config import AmmConfig
from outcome_amm.integration.oracle import DataRequest, InMemoryOracle
from outcome_amm.state.outbox import TransferStatus


GOV = "gov"
ORACLE = "oracle"
END = 1_000
RESOLUTION = 2_000


def _contract(oracle_client=None) -> AMMContract:
    config = AmmConfig(
        collateral_whitelist={"usdc": 2},
        bond_token_id="stake",
        validity_bond=100,
        max_swap_fee_bps=1000,
    )
    return AMMContract(GOV, ORACLE, config=config, oracle_client=oracle_client or InMemoryOracle())


def _create_args(**overrides) -> dict:
    args = {
        "description": "Will it rain?",
        "extra_info": "",
        "outcomes": 2,
        "outcome_tags": [{"String": "YES"}, {"String": "NO"}],
        "categories": ["weather"],
        "end_time": str(END),
        "resolution_time": str(RESOLUTION),
        "collateral_token_id": "usdc",
        "swap_fee": "0",
        "is_scalar": False,
        "sources": ["https://example.org/rain"],
    }
    args.update(overrides)
    return args


def _msg(kind: str, body: dict) -> str:
    return json.dumps({kind: body})


def _create(contract: AMMContract, sender: str = "creator", bond: int = 100, **overrides) -> int:
    contract.ft_on_transfer(sender, "stake", bond, _msg("CreateMarketArgs", _create_args(**overrides)), now=0)
    return contract.get_markets_count() - 1


def _funded_market(contract: AMMContract) -> int:
    market_id = _create(contract)
    contract.ft_on_transfer("alice", "usdc", 1000, _msg("AddLiquidityArgs", {"market_id": str(market_id)}), now=1)
    return market_id


def test_create_market_via_bond_transfer() -> None:
    contract = _contract()
    unused = contract.ft_on_transfer("creator", "stake", 150, _msg("CreateMarketArgs", _create_args()), now=0)
    assert unused == 50
    assert contract.get_markets_count() == 1

    market = contract.get_market(0, now=0)
    assert market["creator"] == "creator"
    assert market["status"] == MarketStatus.OPEN.value
    assert market["categories"] == ["weather"]

    request = contract.oracle.request_for(0)
    assert request.validity_bond == 100
    assert request.settlement_time == RESOLUTION
    assert request.outcomes == ("YES", "NO")
    assert [e.event for e in contract.events_for(0)] == [Event.MARKET_CREATED, Event.MARKET_STATUS_CHANGED]


def test_create_market_requires_bond() -> None:
    contract = _contract()
    with pytest.raises(ValidationError):
        _create(contract, bond=99)
    with pytest.raises(InvalidCollateral):
        contract.ft_on_transfer("creator", "usdc", 100, _msg("CreateMarketArgs", _create_args()), now=0)
    assert contract.get_markets_count() == 0


@pytest.mark.parametrize(
    "overrides, error",
    [
        ({"collateral_token_id": "doge"}, InvalidCollateral),
        ({"end_time": "0"}, InvalidEndTime),
        ({"resolution_time": str(END - 1)}, InvalidResolutionTime),
        ({"swap_fee": "1001"}, InvalidSwapFee),
        ({"outcomes": 9, "outcome_tags": [{"String": str(i)} for i in range(9)]}, TooManyOutcomes),
        (
            {
                "outcomes": 3,
                "is_scalar": True,
                "scalar_multiplier": "1",
                "outcome_tags": [{"Number": {"value": str(v)}} for v in (200, 300, 400)],
            },
            TooManyOutcomes,
        ),
        (
            {
                "is_scalar": True,
                "scalar_multiplier": "1",
                "outcome_tags": [{"Number": {"value": "10"}}, {"Number": {"value": "10"}}],
            },
            WrongBounds,
        ),
        (
            {
                "is_scalar": True,
                "scalar_multiplier": "1",
                "outcome_tags": [{"Number": {"value": "0", "negative": True}}, {"Number": {"value": "10"}}],
            },
            NegativeZeroBound,
        ),
        (
            {
                "is_scalar": True,
                "scalar_multiplier": "1",
                "outcome_tags": [
                    {"Number": {"value": "1", "multiplier": "10"}},
                    {"Number": {"value": "2", "multiplier": "10"}},
                ],
            },
            WrongBounds,
        ),
        (
            {
                "is_scalar": True,
                "scalar_multiplier": "1",
                "outcome_tags": [
                    {"Number": {"value": "5"}},
                    {"Number": {"value": "10", "multiplier": "100"}},
                ],
            },
            WrongBounds,
        ),
        (
            {
                "is_scalar": True,
                "outcome_tags": [{"Number": {"value": "0"}}, {"Number": {"value": "10"}}],
            },
            MissingMultiplier,
        ),
    ],
)
def test_invalid_markets_are_not_stored(overrides, error) -> None:
    contract = _contract()
    with pytest.raises(error):
        _create(contract, **overrides)
    assert contract.get_markets_count() == 0
    assert contract.oracle.requests == []


def test_full_categorical_lifecycle() -> None:
    contract = _contract()
    market_id = _funded_market(contract)
    assert contract.get_pool_balances(market_id) == [1000, 1000]
    assert contract.get_pool_token_balance(market_id, "alice") == 1000

    buy = _msg("BuyArgs", {"market_id": str(market_id), "outcome_target": 0, "min_shares_out": "190"})
    assert contract.ft_on_transfer("bob", "usdc", 100, buy, now=2) == 0
    assert contract.get_share_balance(market_id, "bob", 0) == 190
    assert contract.get_market_status(market_id, END) is MarketStatus.AWAITING_RESOLUTION

    numerator = contract.set_outcome(ORACLE, market_id, CategoricalAnswer("YES"), bond_returned=100, now=RESOLUTION)
    assert numerator.kind is PayoutKind.VALID
    assert list(numerator.values) == [100, 0]

    assert contract.claim_earnings("bob", market_id).total == 190
    assert contract.claim_earnings("alice", market_id).total == 910
    with pytest.raises(NoPayout):
        contract.claim_earnings("bob", market_id)

    transfers = [(e.receiver, e.token_id, e.amount, e.operation) for e in contract.pending_transfers()]
    assert transfers == [
        ("creator", "stake", 100, "validity_bond"),
        ("bob", "usdc", 190, "claim"),
        ("alice", "usdc", 910, "claim"),
    ]


def test_scalar_market_resolved_by_oracle() -> None:
    contract = _contract()
    market_id = _create(
        contract,
        is_scalar=True,
        scalar_multiplier="1",
        outcome_tags=[{"Number": {"value": "50", "negative": True}}, {"Number": {"value": "50"}}],
    )
    assert contract.oracle.request_for(market_id).outcomes is None
    numerator = contract.set_outcome(ORACLE, market_id, NumericAnswer(0), bond_returned=0, now=RESOLUTION)
    assert list(numerator.values) == [50, 50]
    # no bond returned, nothing queued
    assert contract.pending_transfers() == []


def test_sell_and_redeem_queue_net_collateral() -> None:
    contract = _contract()
    market_id = _funded_market(contract)
    contract.buy("bob", market_id, 100, 0, 0, now=2)

    result = contract.sell("bob", market_id, 50, 0, 1000, now=3)
    assert result.escrowed == 0
    pending = contract.pending_transfers()
    assert (pending[-1].receiver, pending[-1].amount, pending[-1].operation) == ("bob", 50, "sell")

    contract.exit_pool("alice", market_id, 500, now=4)
    redeem = contract.burn_outcome_tokens_redeem_collateral("alice", market_id, 100, now=5)
    assert redeem.payout == 100
    assert contract.pending_transfers()[-1].operation == "redeem"


def test_failed_trade_leaves_no_trace() -> None:
    contract = _contract()
    market_id = _funded_market(contract)
    balances = contract.get_pool_balances(market_id)
    events = len(contract.events)

    with pytest.raises(SlippageExceeded):
        contract.buy("bob", market_id, 100, 0, 191, now=2)

    assert contract.get_pool_balances(market_id) == balances
    assert contract.get_share_balance(market_id, "bob", 0) == 0
    assert len(contract.events) == events
    assert contract.pending_transfers() == []


def test_buy_with_wrong_collateral_token() -> None:
    contract = _contract()
    market_id = _funded_market(contract)
    buy = _msg("BuyArgs", {"market_id": str(market_id), "outcome_target": 0, "min_shares_out": "0"})
    with pytest.raises(InvalidCollateral):
        contract.ft_on_transfer("bob", "stake", 100, buy, now=2)
    with pytest.raises(MarketNotFound):
        contract.ft_on_transfer("bob", "usdc", 100, _msg("BuyArgs", {"market_id": "7", "outcome_target": 0, "min_shares_out": "0"}), now=2)


def test_authorization() -> None:
    contract = _contract()
    market_id = _funded_market(contract)
    with pytest.raises(AuthorizationError):
        contract.resolute_market("mallory", market_id, [100, 0], now=END)
    with pytest.raises(AuthorizationError):
        contract.set_outcome("mallory", market_id, CategoricalAnswer("YES"), 0, now=RESOLUTION)
    with pytest.raises(AuthorizationError):
        contract.pause("mallory")

    contract.set_gov(GOV, "new_gov")
    with pytest.raises(AuthorizationError):
        contract.pause(GOV)
    contract.pause("new_gov")
    assert contract.paused


def test_pause_blocks_user_operations() -> None:
    contract = _contract()
    market_id = _funded_market(contract)
    contract.pause(GOV)
    with pytest.raises(ContractPaused):
        contract.buy("bob", market_id, 100, 0, 0, now=2)
    with pytest.raises(ContractPaused):
        _create(contract)
    contract.unpause(GOV)
    contract.buy("bob", market_id, 100, 0, 0, now=2)


def test_governance_can_disable_and_resolve() -> None:
    contract = _contract()
    market_id = _funded_market(contract)
    contract.set_market_enabled(GOV, market_id, False)
    with pytest.raises(MarketDisabled):
        contract.buy("bob", market_id, 100, 0, 0, now=2)

    numerator = contract.resolute_market(GOV, market_id, None, now=END)
    assert numerator.kind is PayoutKind.INVALID
    assert contract.claim_earnings("alice", market_id).total == 1000


def test_collateral_whitelist_management() -> None:
    contract = _contract()
    contract.set_collateral_token(GOV, "dai", 18)
    market_id = _create(contract, collateral_token_id="dai")
    assert contract.get_market(market_id)["pool"]["collateral_denomination"] == str(10**18)

    contract.remove_collateral_token(GOV, "dai")
    with pytest.raises(InvalidCollateral):
        _create(contract, collateral_token_id="dai")


def test_transfer_acknowledgement() -> None:
    contract = _contract()
    market_id = _funded_market(contract)
    contract.resolute_market(GOV, market_id, [0, 100], now=END)
    contract.claim_earnings("alice", market_id)

    (entry,) = contract.pending_transfers()
    contract.fail_transfer(entry.key, "storage not registered")
    assert contract.outbox.get(entry.key).status is TransferStatus.FAILED
    contract.acknowledge_transfer(entry.key)
    assert contract.pending_transfers() == []
    assert [e.event for e in contract.events_for(market_id)][-2:] == [
        Event.TRANSFER_FAILED,
        Event.TRANSFER_ACKNOWLEDGED,
    ]


def test_amounts_outside_u128_are_rejected() -> None:
    contract = _contract()
    market_id = _funded_market(contract)
    with pytest.raises(ValidationError):
        contract.buy("bob", market_id, 1 << 128, 0, 0, now=2)
    with pytest.raises(ValidationError):
        contract.sell("bob", market_id, -1, 0, 0, now=2)


class _RejectingOracle:
    def create_data_request(self, request: DataRequest) -> None:
        raise AmmError(f"oracle refused request for market {request.market_id}")


def test_market_is_not_stored_when_oracle_rejects_request() -> None:
    contract = _contract(oracle_client=_RejectingOracle())
    with pytest.raises(AmmError):
        _create(contract)
    assert contract.get_markets_count() == 0
    assert contract.events == []


def test_oracle_answer_in_wire_form() -> None:
    contract = _contract()
    market_id = _funded_market(contract)
    contract.buy("bob", market_id, 100, 1, 0, now=2)

    numerator = contract.set_outcome(ORACLE, market_id, '{"String": "NO"}', bond_returned=0, now=RESOLUTION)
    assert list(numerator.values) == [0, 100]
    assert contract.claim_earnings("bob", market_id).total == 190


def test_malformed_oracle_answer_leaves_market_open() -> None:
    contract = _contract()
    market_id = _funded_market(contract)
    with pytest.raises(ValidationError):
        contract.set_outcome(ORACLE, market_id, '{"String": 1}', bond_returned=0, now=RESOLUTION)
    assert contract.get_market_status(market_id, RESOLUTION) is MarketStatus.AWAITING_RESOLUTION


def test_state_root_tracks_committed_state_only() -> None:
    contract = _contract()
    market_id = _funded_market(contract)
    root = contract.state_root()
    assert root.startswith("0x") and len(root) == 66
    assert contract.state_root() == root

    with pytest.raises(SlippageExceeded):
        contract.buy("bob", market_id, 100, 0, 191, now=2)
    assert contract.state_root() == root

    contract.buy("bob", market_id, 100, 0, 0, now=2)
    assert contract.state_root() != root
