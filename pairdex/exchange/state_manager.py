"""
PairDEX Exchange State Manager

Central singleton that bridges the block layer with the exchange engine.
Every node maintains an identical exchange state by processing the same
sequence of DexTransactions deterministically.

Responsibilities:
  - Owns the storage handle and every engine object built on it
  - Processes DexTransactions (structure, nonce, deadline, asset kinds)
  - Runs every call inside a storage change-set: all or nothing
  - Computes the exchange state root for block commitment
  - Block-boundary lifecycle (begin_block, finalize_block, revert_block)
  - Read-only query interface for the API layer

Security:
  - All mutations go through process_transaction() or the call methods
    below, each of which opens its own change-set
  - State root is blake2b over the committed tables, nonces and height
  - Revert support for chain reorganizations
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..config.loader import ExchangeSectionConfig
from ..exceptions import Deadline, ExchangeError, UnsupportedAssetType
from .assets import AssetHandler, MultiAssets
from .fee import ProtocolFee
from .liquidity import LiquidityLedger, LiquidityManager
from .pairs import PairRegistry
from .primitives import AssetId
from .queries import ExchangeQueries, PairInfo
from .router import SwapRouter
from .storage import ExchangeStorage
from .transactions import DexOpType, DexTransaction

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Transaction execution result
# ---------------------------------------------------------------------------

class DexExecResult:
    """Result of executing a single exchange transaction."""

    __slots__ = ("success", "data", "error", "events")

    def __init__(
        self,
        success: bool = True,
        data: Optional[Dict[str, Any]] = None,
        error: str = "",
        events: Optional[List[Dict[str, Any]]] = None,
    ):
        self.success = success
        self.data = data or {}
        self.error = error
        self.events = events or []


# ---------------------------------------------------------------------------
# Exchange State Manager
# ---------------------------------------------------------------------------

class DexStateManager:
    """
    Singleton bridge between the block layer and the exchange engine.

    Usage in block production / validation:

        mgr = DexStateManager.get_instance()
        mgr.begin_block(block_height)
        for tx in exchange_txs:
            result = mgr.process_transaction(tx)
        state_root = mgr.finalize_block()
    """

    instance: Optional[DexStateManager] = None

    def __init__(
        self,
        config: Optional[ExchangeSectionConfig] = None,
        local_handler: Optional[AssetHandler] = None,
        reserved_handler: Optional[AssetHandler] = None,
    ) -> None:
        self.config = config or ExchangeSectionConfig()
        chain_id = self.config.self_chain_id

        # --- Engine instances (consensus-critical state) ---
        self.storage = ExchangeStorage()
        self.ledger = LiquidityLedger(self.storage, chain_id)
        self.assets = MultiAssets(
            self.storage, chain_id, self.ledger,
            local_handler=local_handler,
            reserved_handler=reserved_handler,
        )
        self.registry = PairRegistry(self.storage, self.assets, self.config.pallet_id, chain_id)
        self.fee = ProtocolFee(self.storage, self.ledger)
        self.liquidity = LiquidityManager(
            self.storage, self.registry, self.assets, self.ledger, self.fee,
        )
        self.router = SwapRouter(self.storage, self.registry, self.assets)
        self.queries = ExchangeQueries(self.registry, self.assets, self.router)

        self.fee.initialize(
            self.config.fee_admin,
            self.config.fee_receiver,
            self.config.fee_point,
        )

        # Per-sender nonces for replay protection
        self._nonces: Dict[str, int] = {}

        # --- Block-level tracking ---
        self._current_block_height: int = 0
        self._block_txs: List[DexTransaction] = []
        self._block_results: List[DexExecResult] = []
        self._block_events: List[Dict[str, Any]] = []

        # --- State snapshot for revert ---
        self._snapshot: Optional[Dict[str, Any]] = None

        # --- Counters ---
        self._total_swaps: int = 0

    @classmethod
    def get_instance(cls, config: Optional[ExchangeSectionConfig] = None) -> DexStateManager:
        """Get or create the singleton instance."""
        if cls.instance is None:
            cls.instance = cls(config)
            logger.info("Exchange state manager initialized")
        return cls.instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton (for testing)."""
        cls.instance = None

    # =====================================================================
    #  Block lifecycle
    # =====================================================================

    def begin_block(self, block_height: int) -> None:
        """Called at the start of block processing. Resets per-block accumulators."""
        self._current_block_height = block_height
        self._block_txs = []
        self._block_results = []
        self._block_events = []
        self.storage.take_events()

    def finalize_block(self) -> str:
        """
        Called after all transactions in a block are processed.

        Returns:
            The exchange state root hash for this block.
        """
        state_root = self.compute_state_root()
        logger.debug(
            "Block %d finalized: %d exchange txs, state_root=%s",
            self._current_block_height,
            len(self._block_txs),
            state_root[:16],
        )
        return state_root

    def revert_block(self) -> None:
        """
        Revert the state changes since the last snapshot.

        Called during chain reorganization or on a critical block error.
        """
        if self._snapshot is not None:
            reverted_height = self._current_block_height
            self._restore_snapshot(self._snapshot)
            self._snapshot = None
            logger.warning("Block %d reverted, exchange state restored", reverted_height)

    # =====================================================================
    #  Dispatch surface (each call is one change-set)
    # =====================================================================

    def _check_deadline(self, deadline: int) -> None:
        if deadline <= self._current_block_height:
            raise Deadline()

    @staticmethod
    def _check_supported(*assets: AssetId) -> None:
        for asset in assets:
            if not asset.is_support():
                raise UnsupportedAssetType()

    def _call(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        with self.storage.transaction():
            return fn(*args, **kwargs)

    def create_pair(self, who: str, asset_0: AssetId, asset_1: AssetId):
        self._check_supported(asset_0, asset_1)
        return self._call(self.registry.create_pair, who, asset_0, asset_1)

    def add_liquidity(
        self,
        who: str,
        asset_0: AssetId,
        asset_1: AssetId,
        amount_0_desired: int,
        amount_1_desired: int,
        amount_0_min: int,
        amount_1_min: int,
        deadline: int,
    ):
        self._check_supported(asset_0, asset_1)
        self._check_deadline(deadline)
        return self._call(
            self.liquidity.add_liquidity, who, asset_0, asset_1,
            amount_0_desired, amount_1_desired, amount_0_min, amount_1_min,
        )

    def remove_liquidity(
        self,
        who: str,
        asset_0: AssetId,
        asset_1: AssetId,
        liquidity: int,
        amount_0_min: int,
        amount_1_min: int,
        recipient: str,
        deadline: int,
    ):
        self._check_supported(asset_0, asset_1)
        self._check_deadline(deadline)
        return self._call(
            self.liquidity.remove_liquidity, who, asset_0, asset_1,
            liquidity, amount_0_min, amount_1_min, recipient,
        )

    def swap_exact_assets_for_assets(
        self,
        who: str,
        amount_in: int,
        amount_out_min: int,
        path: Sequence[AssetId],
        recipient: str,
        deadline: int,
    ):
        self._check_supported(*path)
        self._check_deadline(deadline)
        result = self._call(
            self.router.swap_exact_assets_for_assets,
            who, amount_in, amount_out_min, path, recipient,
        )
        self._total_swaps += 1
        return result

    def swap_assets_for_exact_assets(
        self,
        who: str,
        amount_out: int,
        amount_in_max: int,
        path: Sequence[AssetId],
        recipient: str,
        deadline: int,
    ):
        self._check_supported(*path)
        self._check_deadline(deadline)
        result = self._call(
            self.router.swap_assets_for_exact_assets,
            who, amount_out, amount_in_max, path, recipient,
        )
        self._total_swaps += 1
        return result

    def transfer(self, who: str, asset_id: AssetId, recipient: str, amount: int) -> None:
        self._check_supported(asset_id)
        self._call(self.assets.transfer, asset_id, who, recipient, amount)

    def deposit(self, asset_id: AssetId, target: str, amount: int) -> int:
        """Mint an asset to an account (genesis funding, bridged deposits)."""
        self._check_supported(asset_id)
        return self._call(self.assets.deposit, asset_id, target, amount)

    def set_fee_admin(self, origin: Optional[str], new_admin: str, root: bool = False) -> None:
        self._call(self.fee.set_fee_admin, origin, new_admin, root=root)

    def set_fee_receiver(self, origin: Optional[str], receiver: Optional[str]) -> None:
        self._call(self.fee.set_fee_receiver, origin, receiver)

    def set_fee_point(self, origin: Optional[str], fee_point: int) -> None:
        self._call(self.fee.set_fee_point, origin, fee_point)

    # =====================================================================
    #  Transaction processing (consensus-critical)
    # =====================================================================

    def process_transaction(self, tx: DexTransaction) -> DexExecResult:
        """
        Execute a single exchange transaction deterministically.

        Exchange errors and malformed params become a failed result with
        every write of the call discarded.  Any other exception is a bug
        and propagates to the block processor.
        """
        # 1. Basic structural validation
        try:
            tx.validate_basic()
        except ValueError as e:
            return DexExecResult(success=False, error=str(e))

        # 2. Nonce check (replay protection)
        expected_nonce = self._nonces.get(tx.sender, 0)
        if tx.nonce != expected_nonce:
            return DexExecResult(
                success=False,
                error=f"Invalid nonce: expected {expected_nonce}, got {tx.nonce}",
            )

        # 3. Execute the operation
        mark = len(self.storage.events)
        try:
            result = self._execute_op(tx)
        except ExchangeError as e:
            logger.info("Exchange op %s from %s failed: %s", tx.op_type.name, tx.sender, e.name)
            result = DexExecResult(success=False, error=e.name)
        except ValueError as e:
            logger.info("Exchange op %s from %s rejected: %s", tx.op_type.name, tx.sender, e)
            result = DexExecResult(success=False, error=str(e))

        # 4. Update nonce and collect events on success
        if result.success:
            self._nonces[tx.sender] = tx.nonce + 1
            result.events = [event.to_dict() for event in self.storage.events[mark:]]
            self._block_events.extend(result.events)

        # 5. Record for block tracking
        tx.success = result.success
        tx.result = result.data
        tx.error = result.error
        self._block_txs.append(tx)
        self._block_results.append(result)

        return result

    def _execute_op(self, tx: DexTransaction) -> DexExecResult:
        """Dispatch to the appropriate handler."""
        handlers = {
            DexOpType.CREATE_PAIR: self._op_create_pair,
            DexOpType.ADD_LIQUIDITY: self._op_add_liquidity,
            DexOpType.REMOVE_LIQUIDITY: self._op_remove_liquidity,
            DexOpType.SWAP_EXACT_IN: self._op_swap_exact_in,
            DexOpType.SWAP_EXACT_OUT: self._op_swap_exact_out,
            DexOpType.TRANSFER: self._op_transfer,
            DexOpType.SET_FEE_ADMIN: self._op_set_fee_admin,
            DexOpType.SET_FEE_RECEIVER: self._op_set_fee_receiver,
            DexOpType.SET_FEE_POINT: self._op_set_fee_point,
        }
        handler = handlers.get(tx.op_type)
        if handler is None:
            return DexExecResult(success=False, error=f"Unknown op type: {tx.op_type}")
        return handler(tx)

    # =====================================================================
    #  Operation handlers
    # =====================================================================

    def _op_create_pair(self, tx: DexTransaction) -> DexExecResult:
        asset_0 = tx.asset_param("asset_0")
        asset_1 = tx.asset_param("asset_1")
        meta = self.create_pair(tx.sender, asset_0, asset_1)
        return DexExecResult(
            success=True,
            data={
                "pair_account": meta.account,
                "lp_asset_id": self.registry.lp_asset_id(asset_0, asset_1).to_dict(),
            },
        )

    def _op_add_liquidity(self, tx: DexTransaction) -> DexExecResult:
        amount_0, amount_1, minted = self.add_liquidity(
            tx.sender,
            tx.asset_param("asset_0"),
            tx.asset_param("asset_1"),
            tx.int_param("amount_0_desired"),
            tx.int_param("amount_1_desired"),
            tx.int_param("amount_0_min"),
            tx.int_param("amount_1_min"),
            tx.int_param("deadline"),
        )
        return DexExecResult(
            success=True,
            data={"amount_0": str(amount_0), "amount_1": str(amount_1), "liquidity": str(minted)},
        )

    def _op_remove_liquidity(self, tx: DexTransaction) -> DexExecResult:
        amount_0, amount_1 = self.remove_liquidity(
            tx.sender,
            tx.asset_param("asset_0"),
            tx.asset_param("asset_1"),
            tx.int_param("liquidity"),
            tx.int_param("amount_0_min"),
            tx.int_param("amount_1_min"),
            str(tx.params["recipient"]),
            tx.int_param("deadline"),
        )
        return DexExecResult(
            success=True,
            data={"amount_0": str(amount_0), "amount_1": str(amount_1)},
        )

    def _op_swap_exact_in(self, tx: DexTransaction) -> DexExecResult:
        result = self.swap_exact_assets_for_assets(
            tx.sender,
            tx.int_param("amount_in"),
            tx.int_param("amount_out_min"),
            tx.path_param(),
            str(tx.params["recipient"]),
            tx.int_param("deadline"),
        )
        return DexExecResult(success=True, data={"amounts": [str(a) for a in result.amounts]})

    def _op_swap_exact_out(self, tx: DexTransaction) -> DexExecResult:
        result = self.swap_assets_for_exact_assets(
            tx.sender,
            tx.int_param("amount_out"),
            tx.int_param("amount_in_max"),
            tx.path_param(),
            str(tx.params["recipient"]),
            tx.int_param("deadline"),
        )
        return DexExecResult(success=True, data={"amounts": [str(a) for a in result.amounts]})

    def _op_transfer(self, tx: DexTransaction) -> DexExecResult:
        amount = tx.int_param("amount")
        self.transfer(tx.sender, tx.asset_param("asset_id"), str(tx.params["recipient"]), amount)
        return DexExecResult(success=True, data={"amount": str(amount)})

    def _op_set_fee_admin(self, tx: DexTransaction) -> DexExecResult:
        new_admin = str(tx.params["new_admin"])
        self.set_fee_admin(tx.sender, new_admin)
        return DexExecResult(success=True, data={"fee_admin": new_admin})

    def _op_set_fee_receiver(self, tx: DexTransaction) -> DexExecResult:
        receiver = tx.params["receiver"]
        receiver = str(receiver) if receiver else None
        self.set_fee_receiver(tx.sender, receiver)
        return DexExecResult(success=True, data={"fee_receiver": receiver})

    def _op_set_fee_point(self, tx: DexTransaction) -> DexExecResult:
        fee_point = tx.int_param("fee_point")
        self.set_fee_point(tx.sender, fee_point)
        return DexExecResult(success=True, data={"fee_point": fee_point})

    # =====================================================================
    #  State root computation (consensus-critical)
    # =====================================================================

    def compute_state_root(self) -> str:
        """
        Compute a deterministic hash of the entire exchange state.

        Returns:
            64-char hex string (blake2b-256)
        """
        hasher = hashlib.blake2b(digest_size=32)

        # 1. Committed tables (sorted by table name, then key)
        for name, rows in self.storage.committed_items():
            hasher.update(name.encode())
            for key, value in rows:
                row_hash = hashlib.blake2b(
                    f"{key!r}:{value!r}".encode(),
                    digest_size=16,
                ).digest()
                hasher.update(row_hash)

        # 2. Nonce state
        for addr in sorted(self._nonces.keys()):
            hasher.update(f"{addr}:{self._nonces[addr]}".encode())

        # 3. Block metadata
        hasher.update(self._current_block_height.to_bytes(8, "big"))

        return hasher.hexdigest()

    # =====================================================================
    #  Snapshot / restore (for revert)
    # =====================================================================

    def take_snapshot(self) -> Dict[str, Any]:
        """Capture current state for potential revert."""
        snapshot = {
            "tables": self.storage.snapshot(),
            "nonces": dict(self._nonces),
            "block_height": self._current_block_height,
            "total_swaps": self._total_swaps,
        }
        self._snapshot = snapshot
        return snapshot

    def _restore_snapshot(self, snapshot: Dict[str, Any]) -> None:
        self.storage.restore(snapshot["tables"])
        self.storage.take_events()
        self._nonces = dict(snapshot["nonces"])
        self._current_block_height = snapshot["block_height"]
        self._total_swaps = snapshot["total_swaps"]
        self._block_events = []

    # =====================================================================
    #  Query interface (read-only, for API layer)
    # =====================================================================

    def get_nonce(self, address: str) -> int:
        return self._nonces.get(address, 0)

    def get_pair(self, asset_0: AssetId, asset_1: AssetId) -> Optional[PairInfo]:
        return self.queries.get_pair_by_asset_id(asset_0, asset_1)

    def balance_of(self, asset_id: AssetId, who: str) -> int:
        return self.assets.balance_of(asset_id, who)

    @property
    def block_height(self) -> int:
        return self._current_block_height

    @property
    def block_events(self) -> List[Dict[str, Any]]:
        """Events of the transactions committed in the current block."""
        return list(self._block_events)

    @property
    def pair_count(self) -> int:
        return self.registry.pair_count

    def get_stats(self) -> Dict[str, Any]:
        """Exchange-wide statistics."""
        return {
            "pairs": self.pair_count,
            "total_swaps": self._total_swaps,
            "fee_receiver": self.fee.receiver,
            "fee_point": self.fee.fee_point,
            "block_height": self._current_block_height,
        }
