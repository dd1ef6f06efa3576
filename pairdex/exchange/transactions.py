"""
PairDEX Transaction Types

Defines the transaction envelope for every exchange call that is included
in a block and processed deterministically by every node.

Transaction Types:
  - CREATE_PAIR:       Register a trading pair
  - ADD_LIQUIDITY:     Deposit both assets of a pair, mint shares
  - REMOVE_LIQUIDITY:  Burn shares, withdraw both assets
  - SWAP_EXACT_IN:     Sell an exact input along a path
  - SWAP_EXACT_OUT:    Buy an exact output along a path
  - TRANSFER:          Move any supported asset between accounts
  - SET_FEE_ADMIN:     Replace the protocol-fee admin
  - SET_FEE_RECEIVER:  Set or clear the protocol-fee receiver
  - SET_FEE_POINT:     Set the protocol-fee point (0..30)

Security:
  - Nonce prevents replay attacks
  - Deadlines are block heights, checked right before execution
  - Deterministic execution: every node produces identical state
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List

from .primitives import AssetId


# ---------------------------------------------------------------------------
# Operation Types
# ---------------------------------------------------------------------------

class DexOpType(IntEnum):
    """All exchange operation types.  Values are consensus-critical."""
    CREATE_PAIR = 1
    ADD_LIQUIDITY = 2
    REMOVE_LIQUIDITY = 3
    SWAP_EXACT_IN = 4
    SWAP_EXACT_OUT = 5
    TRANSFER = 6
    SET_FEE_ADMIN = 7
    SET_FEE_RECEIVER = 8
    SET_FEE_POINT = 9


REQUIRED_PARAMS: Dict[DexOpType, tuple] = {
    DexOpType.CREATE_PAIR: ("asset_0", "asset_1"),
    DexOpType.ADD_LIQUIDITY: (
        "asset_0", "asset_1", "amount_0_desired", "amount_1_desired",
        "amount_0_min", "amount_1_min", "deadline",
    ),
    DexOpType.REMOVE_LIQUIDITY: (
        "asset_0", "asset_1", "liquidity", "amount_0_min", "amount_1_min",
        "recipient", "deadline",
    ),
    DexOpType.SWAP_EXACT_IN: ("amount_in", "amount_out_min", "path", "recipient", "deadline"),
    DexOpType.SWAP_EXACT_OUT: ("amount_out", "amount_in_max", "path", "recipient", "deadline"),
    DexOpType.TRANSFER: ("asset_id", "recipient", "amount"),
    DexOpType.SET_FEE_ADMIN: ("new_admin",),
    DexOpType.SET_FEE_RECEIVER: ("receiver",),
    DexOpType.SET_FEE_POINT: ("fee_point",),
}

AMOUNT_PARAMS = (
    "amount_0_desired", "amount_1_desired", "amount_0_min", "amount_1_min",
    "liquidity", "amount_in", "amount_out_min", "amount_out", "amount_in_max",
    "amount", "deadline", "fee_point",
)


def _json_default(value: Any) -> Any:
    if isinstance(value, AssetId):
        return value.to_dict()
    return str(value)


# ---------------------------------------------------------------------------
# Exchange Transaction
# ---------------------------------------------------------------------------

@dataclass
class DexTransaction:
    """
    Blockchain-level envelope for a single exchange call.

    Fields are consensus-critical: changing any field changes the tx hash.
    Asset ids in ``params`` may be AssetId objects, dicts or 3-item lists;
    amounts may be ints or decimal strings.
    """
    op_type: DexOpType
    sender: str                         # account of the signer
    nonce: int                          # per-sender monotonic nonce
    params: Dict[str, Any]              # operation-specific parameters

    # --- Computed after execution ---
    success: bool = False
    result: Dict[str, Any] = field(default_factory=dict)
    error: str = ""

    # -- Hashing ------------------------------------------------------------

    def tx_hash(self) -> str:
        """Deterministic transaction hash (consensus-critical)."""
        return hashlib.blake2b(self._canonical_bytes(), digest_size=32).hexdigest()

    def _canonical_bytes(self) -> bytes:
        params_json = json.dumps(
            self.params, sort_keys=True, default=_json_default
        ).encode("utf-8")
        parts = [
            int(self.op_type).to_bytes(1, "big"),
            self.sender.encode("utf-8"),
            self.nonce.to_bytes(8, "big"),
            params_json,
        ]
        return b"".join(parts)

    # -- Serialization ------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dictionary."""
        return {
            "op_type": int(self.op_type),
            "sender": self.sender,
            "nonce": self.nonce,
            "params": json.loads(json.dumps(self.params, default=_json_default)),
            "tx_hash": self.tx_hash(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> DexTransaction:
        return cls(
            op_type=DexOpType(data["op_type"]),
            sender=data["sender"],
            nonce=data["nonce"],
            params=data["params"],
        )

    # -- Validation ---------------------------------------------------------

    def validate_basic(self) -> bool:
        """
        Basic structural validation (no state access needed).

        Raises:
            ValueError: with specific reason
        """
        if not self.sender:
            raise ValueError("Missing sender address")
        if self.nonce < 0:
            raise ValueError("Nonce must be non-negative")
        if self.op_type not in REQUIRED_PARAMS:
            raise ValueError(f"Unknown operation type: {self.op_type}")

        for key in REQUIRED_PARAMS[self.op_type]:
            if key not in self.params:
                raise ValueError(f"{self.op_type.name} missing param: {key}")

        for key in AMOUNT_PARAMS:
            if key in self.params and self.int_param(key) < 0:
                raise ValueError(f"{key} must be non-negative")

        if "path" in self.params and not isinstance(self.params["path"], (list, tuple)):
            raise ValueError("path must be a list of asset ids")
        return True

    # -- Param accessors ----------------------------------------------------

    def int_param(self, key: str) -> int:
        value = self.params[key]
        if isinstance(value, bool):
            raise ValueError(f"{key} must be an integer")
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"{key} must be an integer") from e

    def asset_param(self, key: str) -> AssetId:
        try:
            return AssetId.parse(self.params[key])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"{key} must be an asset id") from e

    def path_param(self, key: str = "path") -> List[AssetId]:
        try:
            return [AssetId.parse(a) for a in self.params[key]]
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"{key} must be a list of asset ids") from e

    def __repr__(self) -> str:
        return (f"DexTransaction(op={self.op_type.name}, sender={self.sender[:16]}..., "
                f"nonce={self.nonce}, hash={self.tx_hash()[:12]}...)")
