"""
PairDEX Block Processor

Processes exchange transactions during block production and validation.
The block layer calls this once per block to execute the exchange
operations of that block and obtain the exchange state root it commits to.

  - A failed transaction (exchange error, bad params, bad nonce) is
    non-critical: its writes are discarded and the block continues.
  - Any other exception is critical: the whole block is reverted to the
    snapshot taken before the first transaction.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple

from .state_manager import DexStateManager
from .transactions import DexTransaction

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Block-level exchange processing
# ---------------------------------------------------------------------------

def process_exchange_transactions(
    block_height: int,
    exchange_txs: List[DexTransaction],
    state_manager: Optional[DexStateManager] = None,
) -> Tuple[bool, str, str]:
    """
    Process all exchange transactions in a block.

    Args:
        block_height: Height of the block being processed
        exchange_txs: List of exchange transactions in the block
        state_manager: Optional state manager (uses singleton if None)

    Returns:
        Tuple of (success, error_message, exchange_state_root)
    """
    mgr = state_manager or DexStateManager.get_instance()

    # pre-block state, restored on a critical error
    mgr.take_snapshot()

    mgr.begin_block(block_height)

    failed_txs = []
    for i, tx in enumerate(exchange_txs):
        try:
            result = mgr.process_transaction(tx)
        except Exception as e:
            logger.error("Critical exchange error at tx %d of block %d: %s", i, block_height, e)
            mgr.revert_block()
            return False, f"Critical exchange error at tx {i}: {e}", ""

        if not result.success:
            failed_txs.append((i, tx.tx_hash(), result.error))
            logger.debug("Exchange tx %d failed (non-critical): %s", i, result.error)

    state_root = mgr.finalize_block()

    if failed_txs:
        logger.info(
            "Block %d: %d/%d exchange txs failed (non-critical)",
            block_height, len(failed_txs), len(exchange_txs),
        )

    return True, "", state_root


def validate_exchange_state_root(
    block_height: int,
    exchange_txs: List[DexTransaction],
    expected_state_root: str,
    state_manager: Optional[DexStateManager] = None,
) -> Tuple[bool, str]:
    """Replay a block's exchange txs and compare the resulting root with *expected_state_root*."""
    success, error, computed_root = process_exchange_transactions(
        block_height, exchange_txs, state_manager,
    )

    if not success:
        return False, f"Block {block_height} rejected: {error}"

    if computed_root != expected_state_root:
        return False, (
            f"Block {block_height}: exchange root {computed_root[:16]}... "
            f"does not match header root {expected_state_root[:16]}..."
        )

    return True, ""


# ---------------------------------------------------------------------------
# Block helpers
# ---------------------------------------------------------------------------

def extract_exchange_transactions(block: Any) -> List[DexTransaction]:
    """
    Exchange transactions carried by *block*, in block order.
    """
    if not getattr(block, "transactions", None):
        return []
    return [tx for tx in block.transactions if isinstance(tx, DexTransaction)]
