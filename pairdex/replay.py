"""
PairDEX Block Replay

Replays a JSON file of exchange blocks through a fresh state manager and
prints the exchange state root of every block.  Useful for checking that
two nodes agree on a sequence of exchange transactions.

File format:

    {
      "genesis": [
        {"asset_id": [200, 1, 2], "target": "alice", "amount": "1000"}
      ],
      "blocks": [
        {"height": 1, "transactions": [<DexTransaction.to_dict()>, ...]}
      ]
    }

A block may carry an ``expected_root``; replay stops at the first mismatch.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import PairDexConfig, load_config
from .exchange.block_processor import process_exchange_transactions
from .exchange.primitives import AssetId
from .exchange.state_manager import DexStateManager
from .exchange.transactions import DexTransaction
from .logger import LogManager

logger = logging.getLogger(__name__)


def apply_genesis(mgr: DexStateManager, deposits: List[Dict[str, Any]]) -> None:
    """Fund accounts before the first block."""
    for entry in deposits:
        asset_id = AssetId.parse(entry["asset_id"])
        mgr.deposit(asset_id, str(entry["target"]), int(entry["amount"]))
    logger.info("Applied %d genesis deposit(s)", len(deposits))


def replay(data: Dict[str, Any], config: Optional[PairDexConfig] = None) -> List[str]:
    """
    Replay every block of *data* and return the state roots in order.

    Raises:
        RuntimeError: a block failed critically or its root did not match
    """
    config = config or PairDexConfig()
    mgr = DexStateManager(config.exchange)
    apply_genesis(mgr, data.get("genesis", []))

    roots = []
    for block in data.get("blocks", []):
        height = int(block["height"])
        txs = [DexTransaction.from_dict(tx) for tx in block.get("transactions", [])]

        success, error, root = process_exchange_transactions(height, txs, mgr)
        if not success:
            raise RuntimeError(f"Block {height}: {error}")

        expected = block.get("expected_root")
        if expected and expected != root:
            raise RuntimeError(
                f"Block {height}: state root mismatch, expected {expected[:16]}..., got {root[:16]}..."
            )

        logger.info("Block %d: %d tx(s), root %s", height, len(txs), root[:16])
        roots.append(root)
    return roots


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="PairDEX exchange block replay",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Replay blocks with the default config.toml
  python -m pairdex.replay blocks.json

  # Use another config and print debug logs
  python -m pairdex.replay blocks.json --config testnet.toml --log-level DEBUG
        """
    )

    parser.add_argument(
        "blocks",
        help="JSON file with genesis deposits and blocks",
    )

    parser.add_argument(
        "--config",
        default=None,
        help="TOML config file (defaults to $PAIRDEX_CONFIG or ./config.toml)",
    )

    parser.add_argument(
        "--log-level",
        default=None,
        help="Override the configured log level",
    )

    args = parser.parse_args(argv)

    config = load_config(args.config)
    config.validate()

    LogManager().configure(
        log_level=args.log_level or config.logging.level,
        file_output=config.logging.file_enabled,
    )

    with open(Path(args.blocks), "r", encoding="utf-8") as f:
        data = json.load(f)

    try:
        roots = replay(data, config)
    except RuntimeError as e:
        logger.error("Replay failed: %s", e)
        return 1

    for root in roots:
        print(root)
    return 0


if __name__ == "__main__":
    sys.exit(main())
