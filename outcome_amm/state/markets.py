"""
Market arena: markets indexed by a dense integer id.

Reads hand out deep working copies. Callers mutate the copy and write it back
with `replace` once the whole operation succeeded, so a failed call never
leaves a half-applied market behind.
"""

from __future__ import annotations

import copy
from typing import Iterator, List

from ..core.errors import MarketNotFound
from ..core.market import Market


class MarketArena:
    def __init__(self) -> None:
        self._markets: List[Market] = []

    def __len__(self) -> int:
        return len(self._markets)

    def __iter__(self) -> Iterator[Market]:
        return iter(self._markets)

    @property
    def next_id(self) -> int:
        return len(self._markets)

    def push(self, market: Market) -> int:
        if market.market_id != self.next_id:
            raise ValueError(f"market id {market.market_id} does not match next arena slot {self.next_id}")
        self._markets.append(market)
        return market.market_id

    def _slot(self, market_id: int) -> int:
        if not isinstance(market_id, int) or isinstance(market_id, bool) or not (0 <= market_id < len(self._markets)):
            raise MarketNotFound(f"market {market_id!r} does not exist")
        return market_id

    def get(self, market_id: int) -> Market:
        """Deep working copy of market `market_id`."""
        return copy.deepcopy(self._markets[self._slot(market_id)])

    def view(self, market_id: int) -> Market:
        """The stored market itself; read-only by convention."""
        return self._markets[self._slot(market_id)]

    def replace(self, market: Market) -> None:
        self._markets[self._slot(market.market_id)] = market
