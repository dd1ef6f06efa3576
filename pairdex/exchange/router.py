"""
PairDEX Swap Router

Composes per-hop constant-product quotes along a path and settles the trade
hop by hop.  The input moves once, from the trader into the first pair
account; every intermediate output goes straight to the next pair account
and the last one to the recipient.

Security features:
  - Read-only quoting (by-path quotes never mutate state)
  - k re-verified after every quoted hop (InvariantCheckFailed)
  - Slippage enforcement: amount_out_min / amount_in_max
  - Per-hop reserve guard during settlement (InsufficientPairReserve)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Sequence

from ..exceptions import (
    ExcessiveSoldAmount,
    InsufficientPairReserve,
    InsufficientTargetAmount,
    InvalidPath,
    InvariantCheckFailed,
    PairNotExists,
)
from . import amm
from .events import AssetSwap
from .pairs import PairRegistry
from .primitives import AssetId, ensure_amounts, sort_asset_id
from .storage import ExchangeStorage

if TYPE_CHECKING:
    from .assets import MultiAssets

logger = logging.getLogger(__name__)


@dataclass
class SwapResult:
    """Amounts moved at each step of a settled path."""
    path: List[AssetId]
    amounts: List[int]

    @property
    def amount_in(self) -> int:
        return self.amounts[0]

    @property
    def amount_out(self) -> int:
        return self.amounts[-1]


class SwapRouter:
    """Multi-hop exact-in / exact-out swaps over registered pairs."""

    def __init__(self, storage: ExchangeStorage, registry: PairRegistry, assets: MultiAssets) -> None:
        self.storage = storage
        self.registry = registry
        self.assets = assets

    # -- Quoting ------------------------------------------------------------

    def _hop_reserves(self, asset_in: AssetId, asset_out: AssetId):
        account = self.registry.pair_account_id(asset_in, asset_out)
        reserve_in = self.assets.balance_of(asset_in, account)
        reserve_out = self.assets.balance_of(asset_out, account)
        if reserve_in == 0 or reserve_out == 0:
            raise InvalidPath()
        return reserve_in, reserve_out

    def get_amount_out_by_path(self, amount_in: int, path: Sequence[AssetId]) -> List[int]:
        """
        Forward quote: amounts[0] is *amount_in*, amounts[i+1] the output of hop i.

        Raises:
            InvalidPath: path shorter than 2, an empty pair, or a zero hop output
            NegativeAmount: *amount_in* is negative
            InvariantCheckFailed: a hop would shrink k
        """
        if len(path) < 2:
            raise InvalidPath()
        ensure_amounts(amount_in)

        amounts = [amount_in]
        for i in range(len(path) - 1):
            reserve_in, reserve_out = self._hop_reserves(path[i], path[i + 1])

            amount_out = amm.get_amount_out(amounts[i], reserve_in, reserve_out)
            if amount_out == 0:
                raise InvalidPath()
            if not amm.check_k_invariant(reserve_in, reserve_out, amounts[i], amount_out):
                raise InvariantCheckFailed()

            amounts.append(amount_out)
        return amounts

    def get_amount_in_by_path(self, amount_out: int, path: Sequence[AssetId]) -> List[int]:
        """
        Backward quote: amounts[-1] is *amount_out*, amounts[i] the input of hop i.

        Raises:
            InvalidPath: path shorter than 2, an empty pair, or a hop input <= 1
            NegativeAmount: *amount_out* is negative
            InvariantCheckFailed: a hop would shrink k
        """
        if len(path) < 2:
            raise InvalidPath()
        ensure_amounts(amount_out)

        amounts = [amount_out]
        for i in range(len(path) - 1, 0, -1):
            reserve_in, reserve_out = self._hop_reserves(path[i - 1], path[i])

            required_out = amounts[-1]
            amount_in = amm.get_amount_in(required_out, reserve_in, reserve_out)
            if amount_in <= 1:
                raise InvalidPath()
            if not amm.check_k_invariant(reserve_in, reserve_out, amount_in, required_out):
                raise InvariantCheckFailed()

            amounts.append(amount_in)

        amounts.reverse()
        return amounts

    # -- Execution ----------------------------------------------------------

    def swap_exact_assets_for_assets(
        self,
        who: str,
        amount_in: int,
        amount_out_min: int,
        path: Sequence[AssetId],
        recipient: str,
    ) -> SwapResult:
        ensure_amounts(amount_out_min)
        amounts = self.get_amount_out_by_path(amount_in, path)
        if amounts[-1] < amount_out_min:
            raise InsufficientTargetAmount()
        return self._settle(who, amounts, path, recipient)

    def swap_assets_for_exact_assets(
        self,
        who: str,
        amount_out: int,
        amount_in_max: int,
        path: Sequence[AssetId],
        recipient: str,
    ) -> SwapResult:
        ensure_amounts(amount_in_max)
        amounts = self.get_amount_in_by_path(amount_out, path)
        if amounts[0] > amount_in_max:
            raise ExcessiveSoldAmount()
        return self._settle(who, amounts, path, recipient)

    def _settle(self, who: str, amounts: List[int], path: Sequence[AssetId], recipient: str) -> SwapResult:
        first_account = self.registry.get_pair_account_id(path[0], path[1])
        if first_account is None:
            raise PairNotExists()

        self.assets.transfer(path[0], who, first_account, amounts[0])
        self._swap(amounts, path, recipient)

        self.storage.deposit_event(AssetSwap(who, recipient, tuple(path), tuple(amounts)))
        logger.debug(
            "Swap by %s to %s over %d hop(s): in=%d out=%d",
            who, recipient, len(path) - 1, amounts[0], amounts[-1],
        )
        return SwapResult(path=list(path), amounts=amounts)

    def _swap(self, amounts: List[int], path: Sequence[AssetId], recipient: str) -> None:
        last_hop = len(amounts) - 2
        for i in range(len(amounts) - 1):
            asset_out = path[i + 1]
            pair_account = self.registry.get_pair_account_id(path[i], asset_out)
            if pair_account is None:
                raise PairNotExists()

            if i < last_hop:
                target = self.registry.get_pair_account_id(asset_out, path[i + 2])
                if target is None:
                    raise PairNotExists()
            else:
                target = recipient

            self._pair_swap(path[i], asset_out, pair_account, amounts[i + 1], target)

    def _pair_swap(
        self,
        asset_in: AssetId,
        asset_out: AssetId,
        pair_account: str,
        amount_out: int,
        target: str,
    ) -> None:
        """Move one hop's output out of the pair account."""
        asset_0, asset_1 = sort_asset_id(asset_in, asset_out)
        reserve_0 = self.assets.balance_of(asset_0, pair_account)
        reserve_1 = self.assets.balance_of(asset_1, pair_account)
        amount_0_out, amount_1_out = (amount_out, 0) if asset_out == asset_0 else (0, amount_out)

        if amount_0_out > reserve_0 or amount_1_out > reserve_1:
            raise InsufficientPairReserve()

        if amount_0_out > 0:
            self.assets.transfer(asset_0, pair_account, target, amount_0_out)
        if amount_1_out > 0:
            self.assets.transfer(asset_1, pair_account, target, amount_1_out)
