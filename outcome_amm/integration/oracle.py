"""
Oracle collaborator interface.

On market creation the contract opens a data request with the oracle; the
oracle later answers through `AMMContract.set_outcome`. `InMemoryOracle`
records requests for local runs and tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple


@dataclass(frozen=True)
class DataRequest:
    market_id: int
    requester: str
    bond_token_id: str
    validity_bond: int
    settlement_time: int
    challenge_period: int
    sources: Tuple[str, ...] = ()
    # None for scalar markets
    outcomes: Optional[Tuple[str, ...]] = None
    description: str = ""
    is_scalar: bool = False


class OracleClient(Protocol):
    def create_data_request(self, request: DataRequest) -> None: ...


class InMemoryOracle:
    def __init__(self) -> None:
        self.requests: List[DataRequest] = []

    def create_data_request(self, request: DataRequest) -> None:
        self.requests.append(request)

    def request_for(self, market_id: int) -> DataRequest:
        for request in self.requests:
            if request.market_id == market_id:
                return request
        raise KeyError(f"no data request for market {market_id}")
