"""
Exchange primitives: asset identifiers and pair canonicalisation.

An ``AssetId`` is ``(chain_id, asset_type, asset_index)``.  Ordering is
lexicographic over those fields; a trading pair is always stored under the
sorted tuple so (A, B) and (B, A) resolve to the same record.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Tuple

from ..constants import MAX_BALANCE
from ..exceptions import NegativeAmount


class AssetKind(IntEnum):
    """Asset categories understood by the exchange."""
    NATIVE = 0       # the chain's own currency (index 0)
    LOCAL = 1        # assets issued by a local module
    LIQUIDITY = 2    # liquidity shares minted by the exchange
    RESERVED = 3     # reserved for other local issuers


SUPPORTED_KINDS = frozenset(int(k) for k in AssetKind)

# chain_id: u32, asset_type: u8, asset_index: u64
_ASSET_ID_FORMAT = struct.Struct("<IBQ")


@dataclass(frozen=True, order=True)
class AssetId:
    """Totally ordered identifier of a fungible asset."""
    chain_id: int
    asset_type: int
    asset_index: int

    def __post_init__(self) -> None:
        # store plain ints so AssetKind members and ints compare, hash and repr alike
        for name in ("chain_id", "asset_type", "asset_index"):
            object.__setattr__(self, name, int(getattr(self, name)))

    def is_support(self) -> bool:
        return self.asset_type in SUPPORTED_KINDS

    def is_native(self, self_chain_id: int) -> bool:
        return (
            self.chain_id == self_chain_id
            and self.asset_type == AssetKind.NATIVE
            and self.asset_index == 0
        )

    def is_foreign(self, self_chain_id: int) -> bool:
        return self.chain_id != self_chain_id

    def encode(self) -> bytes:
        """Fixed-width little-endian encoding used for hashing."""
        return _ASSET_ID_FORMAT.pack(self.chain_id, self.asset_type, self.asset_index)

    def to_dict(self) -> Dict[str, int]:
        return {
            "chain_id": self.chain_id,
            "asset_type": self.asset_type,
            "asset_index": self.asset_index,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AssetId:
        return cls(
            chain_id=int(data["chain_id"]),
            asset_type=int(data["asset_type"]),
            asset_index=int(data["asset_index"]),
        )

    @classmethod
    def parse(cls, value: Any) -> AssetId:
        """Accept an AssetId, a dict, or a 3-item sequence."""
        if isinstance(value, AssetId):
            return value
        if isinstance(value, dict):
            return cls.from_dict(value)
        chain_id, asset_type, asset_index = value
        return cls(int(chain_id), int(asset_type), int(asset_index))

    def __str__(self) -> str:
        return f"AssetId({self.chain_id}, {self.asset_type}, {self.asset_index})"


Pair = Tuple[AssetId, AssetId]


def sort_asset_id(asset_0: AssetId, asset_1: AssetId) -> Pair:
    """Canonical (sorted) form of a pair."""
    if asset_0 < asset_1:
        return (asset_0, asset_1)
    return (asset_1, asset_0)


def fits_balance(value: int) -> bool:
    """True if *value* is a representable balance."""
    return 0 <= value <= MAX_BALANCE


def ensure_amounts(*amounts: int) -> None:
    """Reject negative amounts and bounds before they reach a ledger."""
    for amount in amounts:
        if amount < 0:
            raise NegativeAmount()
