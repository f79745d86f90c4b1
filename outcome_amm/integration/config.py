"""
YAML config loading and structlog setup.

`load_config()` reads `config/default.yaml` (or an explicit path) into a frozen
`AmmConfig`; unknown keys are rejected so typos fail loudly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import structlog
import yaml

from ..core.errors import ValidationError
from ..core.types import FEE_DENOM


# config/ lives at the project root, next to the package
_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "default.yaml"

_LOG_FORMATS = ("console", "json")


@dataclass(frozen=True)
class AmmConfig:
    # Market creation
    min_outcomes: int = 2
    max_outcomes: int = 8
    max_swap_fee_bps: int = FEE_DENOM - 1
    # token_id -> decimals
    collateral_whitelist: Mapping[str, int] = field(default_factory=dict)

    # Oracle data requests
    bond_token_id: str = ""
    validity_bond: int = 0
    default_challenge_period: int = 0

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"

    def __post_init__(self) -> None:
        for name in ("min_outcomes", "max_outcomes", "max_swap_fee_bps", "validity_bond", "default_challenge_period"):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool) or v < 0:
                raise ValidationError(f"{name} must be a non-negative int, got {v!r}")
        if self.min_outcomes < 2:
            raise ValidationError(f"min_outcomes must be at least 2: {self.min_outcomes}")
        if self.max_outcomes < self.min_outcomes:
            raise ValidationError(
                f"max_outcomes {self.max_outcomes} is below min_outcomes {self.min_outcomes}"
            )
        if self.max_swap_fee_bps >= FEE_DENOM:
            raise ValidationError(f"max_swap_fee_bps must be below {FEE_DENOM}: {self.max_swap_fee_bps}")
        for token_id, decimals in self.collateral_whitelist.items():
            if not isinstance(token_id, str) or not token_id:
                raise ValidationError(f"collateral token ids must be non-empty strings: {token_id!r}")
            if not isinstance(decimals, int) or isinstance(decimals, bool) or not (0 <= decimals <= 38):
                raise ValidationError(f"decimals for {token_id} must be an int in [0, 38]: {decimals!r}")
        if self.log_format not in _LOG_FORMATS:
            raise ValidationError(f"log_format must be one of {_LOG_FORMATS}: {self.log_format!r}")

    @property
    def log_level_num(self) -> int:
        return getattr(logging, self.log_level.upper(), logging.INFO)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> AmmConfig:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ValidationError(f"unknown config keys: {unknown}")
        values: Dict[str, Any] = dict(raw)
        if "collateral_whitelist" in values:
            values["collateral_whitelist"] = dict(values["collateral_whitelist"] or {})
        if "validity_bond" in values:
            # U128 values may be written as strings in YAML
            values["validity_bond"] = _as_int(values["validity_bond"], "validity_bond")
        return cls(**values)


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    raise ValidationError(f"{name} must be an integer, got {value!r}")


def load_config(path: Optional[Union[str, Path]] = None) -> AmmConfig:
    """Load an `AmmConfig` from YAML; a missing default file yields built-in defaults."""
    if path is None:
        config_path = _DEFAULT_CONFIG_PATH
        if not config_path.exists():
            return AmmConfig()
    else:
        config_path = Path(path)
    with open(config_path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if raw is None:
        return AmmConfig()
    if not isinstance(raw, dict):
        raise ValidationError(f"config root must be a mapping: {config_path}")
    return AmmConfig.from_dict(raw)


def configure_logging(config: AmmConfig) -> None:
    """Configure structlog from `config`. Call once at application entry."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if config.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(config.log_level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
