"""
PairDEX Exchange Engine

Constant-product (x*y=k) exchange over paired-asset reserves.

Components:
  - Asset Ledger (native, foreign, liquidity, pluggable local assets)
  - Pair Registry (deterministic pair accounts)
  - Liquidity Ledger & add/remove liquidity
  - Price/Invariant Engine (pure integer math)
  - Protocol Fee (dilutive share minting on k growth)
  - Swap Router (multi-hop exact-in / exact-out)
  - State Manager & Block Processor (deterministic dispatch, state root)
"""

from .primitives import (
    AssetId,
    AssetKind,
    Pair,
    sort_asset_id,
)
from .storage import ExchangeStorage
from .events import (
    PairCreated,
    LiquidityAdded,
    LiquidityRemoved,
    AssetSwap,
    Transferred,
    Minted,
    Burned,
)
from .amm import (
    get_amount_in,
    get_amount_out,
    calculate_added_amount,
    calculate_liquidity,
    calculate_protocol_fee,
    integer_sqrt,
)
from .assets import AssetHandler, MultiAssets
from .pairs import PairMeta, PairRegistry, pair_account_id
from .liquidity import LiquidityLedger, LiquidityManager
from .fee import ProtocolFee
from .router import SwapResult, SwapRouter
from .queries import ExchangeQueries, PairInfo
from .transactions import DexOpType, DexTransaction
from .state_manager import DexExecResult, DexStateManager
from .block_processor import (
    process_exchange_transactions,
    validate_exchange_state_root,
    extract_exchange_transactions,
)

__all__ = [
    # Primitives
    "AssetId", "AssetKind", "Pair", "sort_asset_id",
    # Storage
    "ExchangeStorage",
    # Events
    "PairCreated", "LiquidityAdded", "LiquidityRemoved", "AssetSwap",
    "Transferred", "Minted", "Burned",
    # Math
    "get_amount_in", "get_amount_out", "calculate_added_amount",
    "calculate_liquidity", "calculate_protocol_fee", "integer_sqrt",
    # Engine
    "AssetHandler", "MultiAssets",
    "PairMeta", "PairRegistry", "pair_account_id",
    "LiquidityLedger", "LiquidityManager",
    "ProtocolFee",
    "SwapResult", "SwapRouter",
    "ExchangeQueries", "PairInfo",
    # Dispatch
    "DexOpType", "DexTransaction",
    "DexExecResult", "DexStateManager",
    "process_exchange_transactions", "validate_exchange_state_root",
    "extract_exchange_transactions",
]
