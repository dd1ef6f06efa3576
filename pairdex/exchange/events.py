"""
Exchange events.

Events are buffered in the storage layer of the call that emitted them and
only become visible once that call commits.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .primitives import AssetId


@dataclass(frozen=True)
class PairCreated:
    """Emitted when a trading pair is registered."""
    creator: str
    asset_0: AssetId
    asset_1: AssetId

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "PairCreated",
            "creator": self.creator,
            "asset0": self.asset_0.to_dict(),
            "asset1": self.asset_1.to_dict(),
        }


@dataclass(frozen=True)
class LiquidityAdded:
    """Emitted on every successful add_liquidity."""
    owner: str
    asset_0: AssetId
    asset_1: AssetId
    amount_0: int
    amount_1: int
    mint_liquidity: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "LiquidityAdded",
            "owner": self.owner,
            "asset0": self.asset_0.to_dict(),
            "asset1": self.asset_1.to_dict(),
            "amount0": str(self.amount_0),
            "amount1": str(self.amount_1),
            "mintLiquidity": str(self.mint_liquidity),
        }


@dataclass(frozen=True)
class LiquidityRemoved:
    """Emitted on every successful remove_liquidity."""
    owner: str
    recipient: str
    asset_0: AssetId
    asset_1: AssetId
    amount_0: int
    amount_1: int
    burn_liquidity: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "LiquidityRemoved",
            "owner": self.owner,
            "recipient": self.recipient,
            "asset0": self.asset_0.to_dict(),
            "asset1": self.asset_1.to_dict(),
            "amount0": str(self.amount_0),
            "amount1": str(self.amount_1),
            "burnLiquidity": str(self.burn_liquidity),
        }


@dataclass(frozen=True)
class AssetSwap:
    """Emitted once per swap, covering the whole path."""
    owner: str
    recipient: str
    path: Tuple[AssetId, ...]
    amounts: Tuple[int, ...]

    @property
    def amount_in(self) -> int:
        return self.amounts[0]

    @property
    def amount_out(self) -> int:
        return self.amounts[-1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "AssetSwap",
            "owner": self.owner,
            "recipient": self.recipient,
            "path": [a.to_dict() for a in self.path],
            "amounts": [str(a) for a in self.amounts],
        }


@dataclass(frozen=True)
class Transferred:
    """Asset ledger transfer."""
    asset_id: AssetId
    owner: str
    target: str
    amount: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Transferred",
            "asset": self.asset_id.to_dict(),
            "from": self.owner,
            "to": self.target,
            "amount": str(self.amount),
        }


@dataclass(frozen=True)
class Minted:
    """Asset ledger mint (deposit)."""
    asset_id: AssetId
    owner: str
    amount: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Minted",
            "asset": self.asset_id.to_dict(),
            "to": self.owner,
            "amount": str(self.amount),
        }


@dataclass(frozen=True)
class Burned:
    """Asset ledger burn (withdraw)."""
    asset_id: AssetId
    owner: str
    amount: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Burned",
            "asset": self.asset_id.to_dict(),
            "from": self.owner,
            "amount": str(self.amount),
        }


def events_to_dicts(events: List[Any], kind: Optional[type] = None) -> List[Dict[str, Any]]:
    """Serialise a list of events, optionally keeping one event type only."""
    return [e.to_dict() for e in events if kind is None or isinstance(e, kind)]
