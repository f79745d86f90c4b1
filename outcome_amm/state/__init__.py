"""
State tables for the outcome AMM
"""

from .balances import ShareTable
from .lp import LPTable
from .nonces import NonceTable
from .outbox import OutboxEntry, TransferOutbox, TransferStatus

__all__ = [
    "ShareTable",
    "LPTable",
    "NonceTable",
    "OutboxEntry",
    "TransferOutbox",
    "TransferStatus",
]
