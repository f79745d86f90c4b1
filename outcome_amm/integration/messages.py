"""
Inbound transfer message parsing.

Collateral reaches the contract as a token transfer carrying a JSON `msg`
that names what the deposit is for:

    {"CreateMarketArgs": {...}}
    {"AddLiquidityArgs": {"market_id": "0", "weight_indication": ["1", "2"]}}
    {"BuyArgs": {"market_id": "0", "outcome_target": 1, "min_shares_out": "90"}}

U64/U128 values travel as decimal strings. Outcome tags and answers use the
tagged forms `{"String": label}` and
`{"Number": {"value": "5", "multiplier": "1", "negative": false}}`.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from ..core.errors import InvalidMessage
from ..core.types import (
    U128_MAX,
    Answer,
    CategoricalAnswer,
    CategoricalTag,
    InvalidAnswer,
    NumericAnswer,
    NumericTag,
    OutcomeTag,
)


U64_MAX = (1 << 64) - 1
_MAX_MSG_BYTES = 64 * 1024


def _require_str(value: Any, *, name: str, non_empty: bool = True, max_len: int = 4096) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    if non_empty and not value:
        raise ValueError(f"{name} must be non-empty")
    if max_len > 0 and len(value) > max_len:
        raise ValueError(f"{name} too large")
    return value


def _require_small_int(value: Any, *, name: str, max_value: int = 0xFFFF) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{name} must be an int")
    if not (0 <= value <= max_value):
        raise ValueError(f"{name} out of range: {value}")
    return value


def parse_uint(value: Any, *, name: str, max_value: int = U128_MAX) -> int:
    """Decimal-string unsigned integer bounded by `max_value`."""
    if not isinstance(value, str) or not value.isdigit() or not value.isascii():
        raise ValueError(f"{name} must be a decimal string")
    if len(value) > 1 and value.startswith("0"):
        raise ValueError(f"{name} must not have leading zeros")
    n = int(value)
    if n > max_value:
        raise ValueError(f"{name} exceeds {max_value}")
    return n


def _optional_uint(value: Any, *, name: str, max_value: int = U128_MAX) -> Optional[int]:
    if value is None:
        return None
    return parse_uint(value, name=name, max_value=max_value)


def _require_dict_str_keys(value: Any, *, name: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be an object")
    for k in value.keys():
        if not isinstance(k, str):
            raise ValueError(f"{name} keys must be strings")
    return value


def _str_list(value: Any, *, name: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ValueError(f"{name} must be a list")
    return tuple(_require_str(v, name=f"{name}[{i}]", non_empty=False) for i, v in enumerate(value))


def _single_variant(value: Any, *, name: str) -> Tuple[str, Any]:
    obj = _require_dict_str_keys(value, name=name)
    if len(obj) != 1:
        raise ValueError(f"{name} must have exactly one variant key, got {sorted(obj)}")
    ((variant, body),) = obj.items()
    return variant, body


def _parse_number(body: Any, *, name: str) -> Tuple[int, int, bool]:
    obj = _require_dict_str_keys(body, name=name)
    value = parse_uint(obj.get("value"), name=f"{name}.value")
    multiplier = parse_uint(obj.get("multiplier", "1"), name=f"{name}.multiplier")
    negative = obj.get("negative", False)
    if not isinstance(negative, bool):
        raise ValueError(f"{name}.negative must be a bool")
    return value, multiplier, negative


def parse_outcome_tag(value: Any, *, name: str = "outcome_tag") -> OutcomeTag:
    variant, body = _single_variant(value, name=name)
    if variant == "String":
        return CategoricalTag(_require_str(body, name=f"{name}.String", non_empty=False))
    if variant == "Number":
        v, m, neg = _parse_number(body, name=f"{name}.Number")
        return NumericTag(value=v, multiplier=m, negative=neg)
    raise ValueError(f"unknown {name} variant: {variant!r}")


def parse_answer(value: Any, *, name: str = "answer") -> Answer:
    """`{"String": ...}`, `{"Number": {...}}` or the string `"Invalid"`."""
    if value == "Invalid":
        return InvalidAnswer()
    variant, body = _single_variant(value, name=name)
    if variant == "String":
        return CategoricalAnswer(_require_str(body, name=f"{name}.String", non_empty=False))
    if variant == "Number":
        v, m, neg = _parse_number(body, name=f"{name}.Number")
        return NumericAnswer(value=v, multiplier=m, negative=neg)
    raise ValueError(f"unknown {name} variant: {variant!r}")


@dataclass(frozen=True)
class CreateMarketArgs:
    description: str
    extra_info: str
    outcomes: int
    outcome_tags: Tuple[OutcomeTag, ...]
    categories: Tuple[str, ...]
    end_time: int
    resolution_time: int
    collateral_token_id: str
    swap_fee: int
    is_scalar: bool = False
    scalar_multiplier: Optional[int] = None
    sources: Tuple[str, ...] = ()
    challenge_period: Optional[int] = None


@dataclass(frozen=True)
class AddLiquidityArgs:
    market_id: int
    weight_indication: Optional[Tuple[int, ...]] = None


@dataclass(frozen=True)
class BuyArgs:
    market_id: int
    outcome_target: int
    min_shares_out: int


TransferMessage = Union[CreateMarketArgs, AddLiquidityArgs, BuyArgs]


def _parse_create_market(obj: Dict[str, Any]) -> CreateMarketArgs:
    tags_raw = obj.get("outcome_tags")
    if not isinstance(tags_raw, list):
        raise ValueError("outcome_tags must be a list")
    is_scalar = obj.get("is_scalar", False)
    if not isinstance(is_scalar, bool):
        raise ValueError("is_scalar must be a bool")
    return CreateMarketArgs(
        description=_require_str(obj.get("description", ""), name="description", non_empty=False),
        extra_info=_require_str(obj.get("extra_info", ""), name="extra_info", non_empty=False),
        outcomes=_require_small_int(obj.get("outcomes"), name="outcomes"),
        outcome_tags=tuple(parse_outcome_tag(t, name=f"outcome_tags[{i}]") for i, t in enumerate(tags_raw)),
        categories=_str_list(obj.get("categories"), name="categories"),
        end_time=parse_uint(obj.get("end_time"), name="end_time", max_value=U64_MAX),
        resolution_time=parse_uint(obj.get("resolution_time"), name="resolution_time", max_value=U64_MAX),
        collateral_token_id=_require_str(obj.get("collateral_token_id"), name="collateral_token_id"),
        swap_fee=parse_uint(obj.get("swap_fee"), name="swap_fee"),
        is_scalar=is_scalar,
        scalar_multiplier=_optional_uint(obj.get("scalar_multiplier"), name="scalar_multiplier"),
        sources=_str_list(obj.get("sources"), name="sources"),
        challenge_period=_optional_uint(obj.get("challenge_period"), name="challenge_period", max_value=U64_MAX),
    )


def _parse_add_liquidity(obj: Dict[str, Any]) -> AddLiquidityArgs:
    weights_raw = obj.get("weight_indication")
    weights = None
    if weights_raw is not None:
        if not isinstance(weights_raw, list):
            raise ValueError("weight_indication must be a list")
        weights = tuple(parse_uint(w, name=f"weight_indication[{i}]") for i, w in enumerate(weights_raw))
    return AddLiquidityArgs(
        market_id=parse_uint(obj.get("market_id"), name="market_id", max_value=U64_MAX),
        weight_indication=weights,
    )


def _parse_buy(obj: Dict[str, Any]) -> BuyArgs:
    return BuyArgs(
        market_id=parse_uint(obj.get("market_id"), name="market_id", max_value=U64_MAX),
        outcome_target=_require_small_int(obj.get("outcome_target"), name="outcome_target"),
        min_shares_out=parse_uint(obj.get("min_shares_out"), name="min_shares_out"),
    )


_PARSERS = {
    "CreateMarketArgs": _parse_create_market,
    "AddLiquidityArgs": _parse_add_liquidity,
    "BuyArgs": _parse_buy,
}


def parse_transfer_message(msg: str) -> TransferMessage:
    """
    Parse the `msg` of an inbound collateral transfer.

    Raises:
        InvalidMessage: If the message is not valid JSON or not a known payload
    """
    if not isinstance(msg, str):
        raise InvalidMessage("msg must be a string")
    if len(msg.encode("utf-8")) > _MAX_MSG_BYTES:
        raise InvalidMessage("msg too large")
    try:
        payload = json.loads(msg)
    except json.JSONDecodeError as e:
        raise InvalidMessage(f"msg is not valid JSON: {e}") from e

    try:
        variant, body = _single_variant(payload, name="msg")
        parser = _PARSERS.get(variant)
        if parser is None:
            raise ValueError(f"unknown message type: {variant!r}")
        return parser(_require_dict_str_keys(body, name=variant))
    except ValueError as e:
        raise InvalidMessage(str(e)) from e


def parse_answer_json(text: str) -> Answer:
    try:
        return parse_answer(json.loads(text))
    except (json.JSONDecodeError, ValueError) as e:
        raise InvalidMessage(f"invalid answer: {e}") from e


def outcome_labels(tags: List[OutcomeTag]) -> Optional[Tuple[str, ...]]:
    """Labels of a categorical market, None when any tag is numeric."""
    labels = []
    for tag in tags:
        if isinstance(tag, CategoricalTag):
            labels.append(tag.label)
        elif isinstance(tag, NumericTag):
            return None
        else:
            raise TypeError(f"unknown outcome tag variant: {type(tag).__name__}")
    return tuple(labels)
