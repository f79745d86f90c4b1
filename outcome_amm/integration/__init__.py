"""
Contract shell: config, message routing, oracle and settlement outbox
"""

from .amm_contract import AMMContract
from .config import AmmConfig, configure_logging, load_config
from .messages import AddLiquidityArgs, BuyArgs, CreateMarketArgs, parse_transfer_message
from .oracle import DataRequest, InMemoryOracle, OracleClient

__all__ = [
    "AMMContract",
    "AmmConfig",
    "configure_logging",
    "load_config",
    "AddLiquidityArgs",
    "BuyArgs",
    "CreateMarketArgs",
    "parse_transfer_message",
    "DataRequest",
    "InMemoryOracle",
    "OracleClient",
]
