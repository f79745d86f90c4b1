#!/usr/bin/env python3
"""
Replay a complete market lifecycle against an in-process contract.

Creates a YES/NO market, seeds liquidity, runs a few trades, resolves through
the oracle path and claims every account, then prints balances and the
outbound transfer queue.

Example:
  python3 tools/market_demo.py --answer NO --buy 250 --json
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from outcome_amm.core.errors import NoPayout
from outcome_amm.core.types import Answer, CategoricalAnswer, InvalidAnswer
from outcome_amm.integration.amm_contract import AMMContract
from outcome_amm.integration.config import AmmConfig, configure_logging, load_config


COLLATERAL = "usdc.token"
END_TIME = 1_000
RESOLUTION_TIME = 2_000


def _answer(value: str) -> Answer:
    if value.lower() == "invalid":
        return InvalidAnswer()
    return CategoricalAnswer(value.upper())


def _create_msg(swap_fee: int) -> str:
    return json.dumps(
        {
            "CreateMarketArgs": {
                "description": "Demo market",
                "outcomes": 2,
                "outcome_tags": [{"String": "YES"}, {"String": "NO"}],
                "categories": ["demo"],
                "end_time": str(END_TIME),
                "resolution_time": str(RESOLUTION_TIME),
                "collateral_token_id": COLLATERAL,
                "swap_fee": str(swap_fee),
            }
        }
    )


def run(config: AmmConfig, *, liquidity: int, buy: int, swap_fee: int, answer: Answer) -> Dict[str, Any]:
    if COLLATERAL not in config.collateral_whitelist:
        raise SystemExit(f"{COLLATERAL} must be whitelisted in the config")

    contract = AMMContract(gov="gov", oracle_id="oracle", config=config)
    contract.ft_on_transfer("creator", config.bond_token_id, max(config.validity_bond, 1), _create_msg(swap_fee), now=0)
    market_id = contract.get_markets_count() - 1

    add = json.dumps({"AddLiquidityArgs": {"market_id": str(market_id)}})
    contract.ft_on_transfer("lp", COLLATERAL, liquidity, add, now=10)

    for now, (trader, outcome) in enumerate((("yes_buyer", 0), ("no_buyer", 1)), start=20):
        msg = json.dumps({"BuyArgs": {"market_id": str(market_id), "outcome_target": outcome, "min_shares_out": "0"}})
        contract.ft_on_transfer(trader, COLLATERAL, buy, msg, now=now)

    prices = [contract.get_spot_price(market_id, i) for i in range(2)]
    contract.set_outcome("oracle", market_id, answer, bond_returned=config.validity_bond, now=RESOLUTION_TIME)

    claims: Dict[str, int] = {}
    for account in ("yes_buyer", "no_buyer", "lp"):
        try:
            claims[account] = contract.claim_earnings(account, market_id).total
        except NoPayout:
            claims[account] = 0

    return {
        "market_id": market_id,
        "spot_prices_before_close": prices,
        "payout_numerator": contract.get_market(market_id)["payout_numerator"],
        "claims": claims,
        "transfers": [e.to_dict() for e in contract.pending_transfers()],
    }


def main() -> int:
    ap = argparse.ArgumentParser(description="Run a demo prediction market end to end")
    ap.add_argument("--config", type=Path, default=None, help="YAML config (default: config/default.yaml)")
    ap.add_argument("--liquidity", type=int, default=10_000_000, help="initial liquidity (collateral units)")
    ap.add_argument("--buy", type=int, default=1_000_000, help="collateral each trader spends")
    ap.add_argument("--swap-fee", type=int, default=100, help="swap fee in basis points")
    ap.add_argument("--answer", default="YES", help="YES, NO or invalid")
    ap.add_argument("--json", action="store_true", help="emit JSON logs and output")
    args = ap.parse_args()

    config = load_config(args.config)
    if args.json:
        config = replace(config, log_format="json")
    configure_logging(config)

    result = run(config, liquidity=args.liquidity, buy=args.buy, swap_fee=args.swap_fee, answer=_answer(args.answer))
    if args.json:
        print(json.dumps(result, sort_keys=True))
    else:
        print(f"[market-demo] market_id={result['market_id']} payout={result['payout_numerator']}")
        for account, amount in result["claims"].items():
            print(f"[market-demo] {account}: {amount}")
        print(f"[market-demo] pending transfers: {len(result['transfers'])}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
