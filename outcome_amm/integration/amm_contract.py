"""
AMM contract: imperative shell around markets, pools and the resolver.

Responsibilities:
- market arena, creation validation and oracle data requests,
- governance / oracle authorization, pause switch, collateral whitelist,
- routing of inbound collateral transfers (`ft_on_transfer`),
- outbound collateral via the transfer outbox, strictly after state commit,
- structured event journal and structlog logging.

Every mutating call works on a deep copy of the market and writes it back
only when the whole operation succeeded.
"""

from __future__ import annotations

import functools
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar, Union

import structlog

from ..core.errors import (
    AmmError,
    AuthorizationError,
    ContractPaused,
    InvalidCollateral,
    InvalidEndTime,
    InvalidResolutionTime,
    InvalidSwapFee,
    MissingMultiplier,
    TooManyOutcomes,
    ValidationError,
)
from ..core.market import Market
from ..core.pool import Pool
from ..core.resolution import validate_outcome_tags
from ..core.types import U128_MAX, Answer, Event, EventRecord, MarketStatus, PayoutNumerator
from ..state.canonical import digest
from ..state.markets import MarketArena
from ..state.nonces import NonceTable
from ..state.outbox import OutboxEntry, TransferOutbox
from .config import AmmConfig
from .messages import (
    AddLiquidityArgs,
    BuyArgs,
    CreateMarketArgs,
    outcome_labels,
    parse_answer_json,
    parse_transfer_message,
)
from .oracle import DataRequest, InMemoryOracle, OracleClient


log = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _logged_call(op: str) -> Callable[[F], F]:
    """Log rejected calls at warning level and re-raise."""

    def decorate(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(self, *args, **kwargs):
            try:
                return fn(self, *args, **kwargs)
            except AmmError as e:
                log.warning("call_rejected", op=op, error=type(e).__name__, reason=str(e))
                raise

        return wrapper  # type: ignore[return-value]

    return decorate


def _require_u128(value: Any, *, name: str, positive: bool = False) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{name} must be an int")
    if value < 0 or value > U128_MAX:
        raise ValidationError(f"{name} out of u128 range: {value}")
    if positive and value == 0:
        raise ValidationError(f"{name} must be positive")
    return value


class AMMContract:
    def __init__(
        self,
        gov: str,
        oracle_id: str,
        config: Optional[AmmConfig] = None,
        oracle_client: Optional[OracleClient] = None,
    ) -> None:
        self.config = config if config is not None else AmmConfig()
        self.gov = gov
        self.oracle_id = oracle_id
        self.oracle: OracleClient = oracle_client if oracle_client is not None else InMemoryOracle()
        self.collateral_whitelist: Dict[str, int] = dict(self.config.collateral_whitelist)
        self.paused = False

        self.markets = MarketArena()
        self.outbox = TransferOutbox()
        self.nonces = NonceTable()
        self.events: List[EventRecord] = []

    # ------------------------------------------------------------------
    # Guards and bookkeeping
    # ------------------------------------------------------------------

    def _assert_gov(self, sender: str) -> None:
        if sender != self.gov:
            raise AuthorizationError(f"{sender} is not governance")

    def _assert_oracle(self, sender: str) -> None:
        if sender != self.oracle_id:
            raise AuthorizationError(f"{sender} is not the oracle")

    def _assert_unpaused(self) -> None:
        if self.paused:
            raise ContractPaused("contract is paused")

    def _emit(self, event: Event, market_id: Optional[int] = None, **fields: Any) -> None:
        self.events.append(EventRecord(event=event, market_id=market_id, fields=fields))

    def _queue_transfer(
        self, market_id: Optional[int], receiver: str, token_id: str, amount: int, operation: str
    ) -> Optional[OutboxEntry]:
        if amount <= 0:
            return None
        nonce = self.nonces.next(receiver)
        entry = self.outbox.enqueue(market_id, receiver, token_id, amount, operation, nonce)
        self._emit(
            Event.TRANSFER_QUEUED,
            market_id,
            key=entry.key,
            receiver=receiver,
            token_id=token_id,
            amount=amount,
            operation=operation,
        )
        log.info("transfer_queued", market_id=market_id, receiver=receiver, amount=amount, operation=operation)
        return entry

    def _commit(self, market: Market) -> None:
        self.markets.replace(market)

    def events_for(self, market_id: int) -> List[EventRecord]:
        return [e for e in self.events if e.market_id == market_id]

    # ------------------------------------------------------------------
    # Governance
    # ------------------------------------------------------------------

    @_logged_call("set_gov")
    def set_gov(self, sender: str, new_gov: str) -> None:
        self._assert_gov(sender)
        if not new_gov:
            raise ValidationError("new governance account must be non-empty")
        self.gov = new_gov
        self._emit(Event.GOVERNANCE_CHANGED, gov=new_gov)
        log.info("governance_changed", gov=new_gov)

    @_logged_call("pause")
    def pause(self, sender: str) -> None:
        self._assert_gov(sender)
        self.paused = True
        log.info("contract_paused")

    @_logged_call("unpause")
    def unpause(self, sender: str) -> None:
        self._assert_gov(sender)
        self.paused = False
        log.info("contract_unpaused")

    @_logged_call("set_collateral_token")
    def set_collateral_token(self, sender: str, token_id: str, decimals: int) -> None:
        self._assert_gov(sender)
        if not token_id:
            raise ValidationError("token_id must be non-empty")
        if not isinstance(decimals, int) or isinstance(decimals, bool) or not (0 <= decimals <= 38):
            raise ValidationError(f"decimals must be an int in [0, 38]: {decimals!r}")
        self.collateral_whitelist[token_id] = decimals
        log.info("collateral_whitelisted", token_id=token_id, decimals=decimals)

    @_logged_call("remove_collateral_token")
    def remove_collateral_token(self, sender: str, token_id: str) -> None:
        """Existing markets keep their collateral; only new markets are affected."""
        self._assert_gov(sender)
        if self.collateral_whitelist.pop(token_id, None) is None:
            raise InvalidCollateral(f"{token_id} is not whitelisted")
        log.info("collateral_removed", token_id=token_id)

    @_logged_call("set_market_enabled")
    def set_market_enabled(self, sender: str, market_id: int, enabled: bool) -> None:
        self._assert_gov(sender)
        market = self.markets.get(market_id)
        market.set_enabled(enabled)
        self._commit(market)
        self._emit(Event.MARKET_STATUS_CHANGED, market_id, enabled=market.enabled, finalized=market.finalized)
        log.info("market_enabled_changed", market_id=market_id, enabled=market.enabled)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _validate_creation(self, args: CreateMarketArgs, now: int) -> int:
        """Checks every creation rule; returns the collateral decimals."""
        decimals = self.collateral_whitelist.get(args.collateral_token_id)
        if decimals is None:
            raise InvalidCollateral(f"{args.collateral_token_id} is not a whitelisted collateral token")
        if not (self.config.min_outcomes <= args.outcomes <= self.config.max_outcomes):
            raise TooManyOutcomes(
                f"outcomes must be in [{self.config.min_outcomes}, {self.config.max_outcomes}]: {args.outcomes}"
            )
        if args.end_time <= now:
            raise InvalidEndTime(f"end_time {args.end_time} is not after now {now}")
        if args.resolution_time < args.end_time:
            raise InvalidResolutionTime(
                f"resolution_time {args.resolution_time} precedes end_time {args.end_time}"
            )
        if args.swap_fee > self.config.max_swap_fee_bps:
            raise InvalidSwapFee(f"swap_fee {args.swap_fee} exceeds {self.config.max_swap_fee_bps} bps")
        if args.is_scalar and not args.scalar_multiplier:
            raise MissingMultiplier("scalar markets need a positive scalar_multiplier")
        validate_outcome_tags(args.outcome_tags, args.outcomes, args.is_scalar, args.scalar_multiplier or 1)
        return decimals

    @_logged_call("create_market")
    def create_market(self, sender: str, args: CreateMarketArgs, now: int, bond_in: int = 0) -> int:
        """
        Validate and create a market; opens the oracle data request.

        `bond_in` must cover the configured validity bond, which travels with
        the data request.
        """
        self._assert_unpaused()
        _require_u128(bond_in, name="bond_in")
        if bond_in < self.config.validity_bond:
            raise ValidationError(f"validity bond {self.config.validity_bond} required, got {bond_in}")
        decimals = self._validate_creation(args, now)

        market_id = self.markets.next_id
        pool = Pool(market_id, args.outcomes, args.collateral_token_id, decimals, args.swap_fee)
        challenge_period = (
            args.challenge_period if args.challenge_period is not None else self.config.default_challenge_period
        )
        market = Market(
            market_id,
            sender,
            pool,
            args.outcome_tags,
            args.end_time,
            args.resolution_time,
            is_scalar=args.is_scalar,
            scalar_multiplier=args.scalar_multiplier,
            challenge_period=challenge_period,
            validity_bond=self.config.validity_bond,
            description=args.description,
            extra_info=args.extra_info,
            categories=args.categories,
            sources=args.sources,
        )
        # the market is stored only once the oracle has accepted its request
        self.oracle.create_data_request(
            DataRequest(
                market_id=market_id,
                requester=sender,
                bond_token_id=self.config.bond_token_id,
                validity_bond=self.config.validity_bond,
                settlement_time=args.resolution_time,
                challenge_period=challenge_period,
                sources=tuple(args.sources),
                outcomes=outcome_labels(list(args.outcome_tags)),
                description=args.description,
                is_scalar=args.is_scalar,
            )
        )
        self.markets.push(market)

        self._emit(
            Event.MARKET_CREATED,
            market_id,
            creator=sender,
            outcomes=args.outcomes,
            collateral_token_id=args.collateral_token_id,
            swap_fee=args.swap_fee,
            is_scalar=args.is_scalar,
            end_time=args.end_time,
            resolution_time=args.resolution_time,
        )
        self._emit(Event.MARKET_STATUS_CHANGED, market_id, status=market.status(now).value)
        log.info(
            "market_created",
            market_id=market_id,
            creator=sender,
            outcomes=args.outcomes,
            collateral=args.collateral_token_id,
            is_scalar=args.is_scalar,
        )
        return market_id

    # ------------------------------------------------------------------
    # Inbound collateral
    # ------------------------------------------------------------------

    @_logged_call("ft_on_transfer")
    def ft_on_transfer(self, sender: str, token_id: str, amount: int, msg: str, now: int) -> int:
        """
        Route an inbound transfer by its message. Returns the unused amount the
        token should refund to `sender`.
        """
        self._assert_unpaused()
        _require_u128(amount, name="amount", positive=True)
        payload = parse_transfer_message(msg)

        if isinstance(payload, CreateMarketArgs):
            if self.config.bond_token_id and token_id != self.config.bond_token_id:
                raise InvalidCollateral(f"market creation bond must be paid in {self.config.bond_token_id}")
            self.create_market(sender, payload, now, bond_in=amount)
            return amount - self.config.validity_bond
        if isinstance(payload, AddLiquidityArgs):
            self._check_collateral(payload.market_id, token_id)
            self.add_liquidity(sender, payload.market_id, amount, now, payload.weight_indication)
            return 0
        if isinstance(payload, BuyArgs):
            self._check_collateral(payload.market_id, token_id)
            self.buy(sender, payload.market_id, amount, payload.outcome_target, payload.min_shares_out, now)
            return 0
        raise TypeError(f"unknown transfer payload: {type(payload).__name__}")

    def _check_collateral(self, market_id: int, token_id: str) -> None:
        expected = self.markets.view(market_id).pool.collateral_token_id
        if token_id != expected:
            raise InvalidCollateral(f"market {market_id} takes {expected}, got {token_id}")

    # ------------------------------------------------------------------
    # Trading
    # ------------------------------------------------------------------

    @_logged_call("add_liquidity")
    def add_liquidity(
        self,
        sender: str,
        market_id: int,
        total_in: int,
        now: int,
        weight_indication: Optional[Sequence[int]] = None,
    ):
        self._assert_unpaused()
        _require_u128(total_in, name="total_in", positive=True)
        market = self.markets.get(market_id)
        result = market.add_liquidity(sender, total_in, now, weight_indication)
        self._commit(market)
        self._emit(
            Event.LIQUIDITY_ADDED,
            market_id,
            account=sender,
            amount=total_in,
            lp_minted=result.lp_minted,
            shares_returned=list(result.shares_returned),
        )
        log.info("liquidity_added", market_id=market_id, account=sender, amount=total_in, lp_minted=result.lp_minted)
        return result

    @_logged_call("exit_pool")
    def exit_pool(self, sender: str, market_id: int, lp_in: int, now: int):
        self._assert_unpaused()
        _require_u128(lp_in, name="lp_in", positive=True)
        market = self.markets.get(market_id)
        result = market.exit_pool(sender, lp_in, now)
        self._commit(market)
        self._emit(
            Event.POOL_EXITED,
            market_id,
            account=sender,
            lp_burned=result.lp_burned,
            fees_earned=result.fees_earned,
            shares_out=list(result.shares_out),
        )
        log.info("pool_exited", market_id=market_id, account=sender, lp_burned=lp_in, fees_earned=result.fees_earned)
        self._queue_transfer(market_id, sender, market.pool.collateral_token_id, result.fees_earned, "exit_pool")
        return result

    @_logged_call("buy")
    def buy(self, sender: str, market_id: int, collateral_in: int, outcome_target: int, min_shares_out: int, now: int):
        self._assert_unpaused()
        _require_u128(collateral_in, name="collateral_in", positive=True)
        _require_u128(min_shares_out, name="min_shares_out")
        market = self.markets.get(market_id)
        result = market.buy(sender, collateral_in, outcome_target, min_shares_out, now)
        self._commit(market)
        self._emit(
            Event.SHARES_BOUGHT,
            market_id,
            account=sender,
            outcome=outcome_target,
            collateral_in=collateral_in,
            shares_out=result.shares_out,
            fee=result.fee,
        )
        log.info(
            "shares_bought",
            market_id=market_id,
            account=sender,
            outcome=outcome_target,
            collateral_in=collateral_in,
            shares_out=result.shares_out,
        )
        return result

    @_logged_call("sell")
    def sell(self, sender: str, market_id: int, collateral_out: int, outcome_target: int, max_shares_in: int, now: int):
        self._assert_unpaused()
        _require_u128(collateral_out, name="collateral_out", positive=True)
        _require_u128(max_shares_in, name="max_shares_in")
        market = self.markets.get(market_id)
        result = market.sell(sender, collateral_out, outcome_target, max_shares_in, now)
        self._commit(market)
        self._emit(
            Event.SHARES_SOLD,
            market_id,
            account=sender,
            outcome=outcome_target,
            collateral_out=collateral_out,
            shares_in=result.shares_in,
            fee=result.fee,
        )
        log.info(
            "shares_sold",
            market_id=market_id,
            account=sender,
            outcome=outcome_target,
            collateral_out=collateral_out,
            shares_in=result.shares_in,
        )
        self._queue_transfer(
            market_id, sender, market.pool.collateral_token_id, collateral_out - result.escrowed, "sell"
        )
        return result

    @_logged_call("burn_outcome_tokens_redeem_collateral")
    def burn_outcome_tokens_redeem_collateral(self, sender: str, market_id: int, to_burn: int, now: int):
        self._assert_unpaused()
        _require_u128(to_burn, name="to_burn", positive=True)
        market = self.markets.get(market_id)
        result = market.burn_outcome_tokens_redeem_collateral(sender, to_burn, now)
        self._commit(market)
        self._emit(
            Event.COLLATERAL_REDEEMED,
            market_id,
            account=sender,
            burned=result.burned,
            fee=result.fee,
            payout=result.payout,
        )
        log.info("collateral_redeemed", market_id=market_id, account=sender, burned=to_burn, payout=result.payout)
        self._queue_transfer(market_id, sender, market.pool.collateral_token_id, result.payout, "redeem")
        return result

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    @_logged_call("resolute_market")
    def resolute_market(
        self, sender: str, market_id: int, payout_numerator: Optional[Sequence[int]], now: int
    ) -> PayoutNumerator:
        """Governance override; `None` resolves the market as invalid."""
        self._assert_gov(sender)
        market = self.markets.get(market_id)
        numerator = market.resolute_market(payout_numerator, now)
        self._commit(market)
        self._emit_finalized(market, source="governance")
        return numerator

    @_logged_call("set_outcome")
    def set_outcome(
        self, sender: str, market_id: int, answer: Union[Answer, str], bond_returned: int, now: int
    ) -> PayoutNumerator:
        """
        Oracle callback with the final answer; finalizes the market and
        forwards the returned validity bond to the market creator.

        `answer` may be given in its JSON wire form (`"Invalid"`,
        `{"String": ...}` or `{"Number": {...}}`).
        """
        self._assert_oracle(sender)
        _require_u128(bond_returned, name="bond_returned")
        if isinstance(answer, str):
            answer = parse_answer_json(answer)
        market = self.markets.get(market_id)
        market.record_oracle_answer(answer, now)
        numerator = market.finalize_from_oracle(now)
        self._commit(market)
        self._emit(Event.ORACLE_ANSWER_RECORDED, market_id, answer=repr(answer))
        self._emit_finalized(market, source="oracle")
        self._queue_transfer(market_id, market.creator, self.config.bond_token_id, bond_returned, "validity_bond")
        return numerator

    def _emit_finalized(self, market: Market, *, source: str) -> None:
        numerator = market.payout_numerator
        self._emit(
            Event.MARKET_FINALIZED,
            market.market_id,
            source=source,
            payout_kind=numerator.kind.value,
            payout_numerator=numerator.to_wire(),
        )
        self._emit(Event.MARKET_STATUS_CHANGED, market.market_id, status=MarketStatus.FINALIZED.value)
        log.info(
            "market_finalized",
            market_id=market.market_id,
            source=source,
            payout_kind=numerator.kind.value,
            payout_numerator=numerator.to_wire(),
        )

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    @_logged_call("claim_earnings")
    def claim_earnings(self, sender: str, market_id: int):
        self._assert_unpaused()
        market = self.markets.get(market_id)
        result = market.claim(sender)
        self._commit(market)
        self._emit(
            Event.EARNINGS_CLAIMED,
            market_id,
            account=sender,
            share_payout=result.share_payout,
            fees_earned=result.fees_earned,
            total=result.total,
        )
        log.info("earnings_claimed", market_id=market_id, account=sender, total=result.total)
        self._queue_transfer(market_id, sender, market.pool.collateral_token_id, result.total, "claim")
        return result

    @_logged_call("acknowledge_transfer")
    def acknowledge_transfer(self, key: str) -> OutboxEntry:
        entry = self.outbox.acknowledge(key)
        self._emit(Event.TRANSFER_ACKNOWLEDGED, entry.market_id, key=key)
        log.info("transfer_acknowledged", key=key, receiver=entry.receiver, amount=entry.amount)
        return entry

    @_logged_call("fail_transfer")
    def fail_transfer(self, key: str, reason: str) -> OutboxEntry:
        entry = self.outbox.fail(key, reason)
        self._emit(Event.TRANSFER_FAILED, entry.market_id, key=key, reason=reason, attempts=entry.attempts)
        log.warning("transfer_failed", key=key, receiver=entry.receiver, reason=reason, attempts=entry.attempts)
        return entry

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def get_markets_count(self) -> int:
        return len(self.markets)

    def get_market(self, market_id: int, now: Optional[int] = None) -> dict:
        return self.markets.view(market_id).to_dict(now)

    def get_market_status(self, market_id: int, now: int) -> MarketStatus:
        return self.markets.view(market_id).status(now)

    def get_pool_swap_fee(self, market_id: int) -> int:
        return self.markets.view(market_id).pool.swap_fee

    def get_fee_pool_weight(self, market_id: int) -> int:
        return self.markets.view(market_id).pool.fee_pool_weight

    def get_pool_token_total_supply(self, market_id: int) -> int:
        return self.markets.view(market_id).pool.lp_supply

    def get_pool_balances(self, market_id: int) -> List[int]:
        return self.markets.view(market_id).pool.get_pool_balances()

    def get_pool_token_balance(self, market_id: int, account: str) -> int:
        return self.markets.view(market_id).pool.get_pool_token_balance(account)

    def get_spot_price(self, market_id: int, outcome: int) -> int:
        return self.markets.view(market_id).pool.get_spot_price(outcome)

    def get_spot_price_sans_fee(self, market_id: int, outcome: int) -> int:
        return self.markets.view(market_id).pool.get_spot_price_sans_fee(outcome)

    def calc_buy_amount(self, market_id: int, collateral_in: int, outcome_target: int) -> int:
        return self.markets.view(market_id).pool.calc_buy_amount(collateral_in, outcome_target)

    def calc_sell_collateral_out(self, market_id: int, collateral_out: int, outcome_target: int) -> int:
        return self.markets.view(market_id).pool.calc_sell_collateral_out(collateral_out, outcome_target)

    def get_share_balance(self, market_id: int, account: str, outcome: int) -> int:
        return self.markets.view(market_id).pool.get_share_balance(account, outcome)

    def get_fees_withdrawable(self, market_id: int, account: str) -> int:
        return self.markets.view(market_id).pool.get_fees_withdrawable(account)

    def pending_transfers(self) -> List[OutboxEntry]:
        return self.outbox.pending()

    def snapshot(self) -> Dict[str, Any]:
        markets: List[Dict[str, Any]] = [m.to_dict() for m in self.markets]
        outbox: List[Dict[str, Any]] = [e.to_dict() for e in self.outbox.entries()]
        whitelist: List[Tuple[str, int]] = sorted(self.collateral_whitelist.items())
        return {
            "gov": self.gov,
            "oracle": self.oracle_id,
            "paused": self.paused,
            "collateral_whitelist": [[t, d] for t, d in whitelist],
            "markets": markets,
            "outbox": outbox,
        }

    def state_root(self) -> str:
        """Versioned sha256 digest of `snapshot()`."""
        return digest(self.snapshot())
