"""
PairDEX Liquidity

LiquidityLedger keeps per-(pair, holder) share balances and the pair's
share supply.  LiquidityManager implements add_liquidity / remove_liquidity
on top of the ledger, the pair registry, the asset ledger and the protocol
fee engine.

Invariant: for every pair, the sum of holder balances equals the supply
stored in the pair metadata.  All mint / burn paths go through the ledger
so the two move together.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Tuple

from ..exceptions import (
    AssetNotExists,
    InsufficientAssetBalance,
    InsufficientLiquidity,
    InsufficientTargetAmount,
    Overflow,
    PairNotExists,
)
from . import amm
from .events import Burned, LiquidityAdded, LiquidityRemoved, Minted, Transferred
from .pairs import PairMeta, PairRegistry
from .primitives import AssetId, AssetKind, Pair, ensure_amounts, fits_balance, sort_asset_id
from .storage import ExchangeStorage

if TYPE_CHECKING:
    from .assets import MultiAssets
    from .fee import ProtocolFee

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Share ledger
# ---------------------------------------------------------------------------

class LiquidityLedger:
    """Liquidity-share balances keyed by the canonical pair."""

    def __init__(self, storage: ExchangeStorage, self_chain_id: int) -> None:
        self.storage = storage
        self.self_chain_id = self_chain_id

    def _meta(self, pair: Pair) -> PairMeta:
        meta = self.storage.get("liquidity_meta", pair)
        if meta is None:
            raise AssetNotExists()
        return meta

    def _lp_asset(self, meta: PairMeta) -> AssetId:
        return AssetId(self.self_chain_id, AssetKind.LIQUIDITY, meta.lp_index)

    def pair_of_index(self, index: int) -> Optional[Pair]:
        return self.storage.get("liquidity_pairs", index)

    def balance_of(self, pair: Pair, who: str) -> int:
        return self.storage.get("liquidity_ledger", (sort_asset_id(*pair), who), 0)

    def total_supply(self, pair: Pair) -> int:
        meta = self.storage.get("liquidity_meta", sort_asset_id(*pair))
        return meta.total_supply if meta is not None else 0

    def mint(self, pair: Pair, who: str, amount: int) -> None:
        """Credit *who* and grow the supply. Raises Overflow past MAX_BALANCE."""
        pair = sort_asset_id(*pair)
        meta = self._meta(pair)

        new_balance = self.balance_of(pair, who) + amount
        new_supply = meta.total_supply + amount
        if not (fits_balance(new_balance) and fits_balance(new_supply)):
            raise Overflow()

        self.storage.set("liquidity_ledger", (pair, who), new_balance)
        self.storage.set("liquidity_meta", pair, meta.with_supply(new_supply))
        self.storage.deposit_event(Minted(self._lp_asset(meta), who, amount))

    def burn(self, pair: Pair, who: str, amount: int) -> None:
        """Debit *who* and shrink the supply. Raises InsufficientLiquidity."""
        pair = sort_asset_id(*pair)
        meta = self._meta(pair)

        balance = self.balance_of(pair, who)
        if balance < amount or meta.total_supply < amount:
            raise InsufficientLiquidity()

        self.storage.set("liquidity_ledger", (pair, who), balance - amount)
        self.storage.set("liquidity_meta", pair, meta.with_supply(meta.total_supply - amount))
        self.storage.deposit_event(Burned(self._lp_asset(meta), who, amount))

    def transfer(self, pair: Pair, owner: str, target: str, amount: int) -> None:
        pair = sort_asset_id(*pair)
        meta = self._meta(pair)

        owner_balance = self.balance_of(pair, owner)
        if owner_balance < amount:
            raise InsufficientAssetBalance()
        self.storage.set("liquidity_ledger", (pair, owner), owner_balance - amount)

        target_balance = self.balance_of(pair, target) + amount
        if not fits_balance(target_balance):
            raise Overflow()
        self.storage.set("liquidity_ledger", (pair, target), target_balance)

        self.storage.deposit_event(Transferred(self._lp_asset(meta), owner, target, amount))


# ---------------------------------------------------------------------------
# Liquidity mutation
# ---------------------------------------------------------------------------

class LiquidityManager:
    """add_liquidity / remove_liquidity entry points."""

    def __init__(
        self,
        storage: ExchangeStorage,
        registry: PairRegistry,
        assets: MultiAssets,
        ledger: LiquidityLedger,
        fee: ProtocolFee,
    ) -> None:
        self.storage = storage
        self.registry = registry
        self.assets = assets
        self.ledger = ledger
        self.fee = fee

    def _reserves(self, asset_0: AssetId, asset_1: AssetId, account: str) -> Tuple[int, int]:
        return (
            self.assets.balance_of(asset_0, account),
            self.assets.balance_of(asset_1, account),
        )

    def add_liquidity(
        self,
        who: str,
        asset_0: AssetId,
        asset_1: AssetId,
        amount_0_desired: int,
        amount_1_desired: int,
        amount_0_min: int,
        amount_1_min: int,
    ) -> Tuple[int, int, int]:
        """
        Deposit both assets and mint liquidity shares to *who*.

        Amounts are in caller order (``asset_0`` first).

        Returns:
            (amount_0, amount_1, minted_liquidity)

        Raises:
            NegativeAmount, PairNotExists, IncorrectAssetAmountRange, InsufficientAssetBalance, Overflow
        """
        ensure_amounts(amount_0_desired, amount_1_desired, amount_0_min, amount_1_min)
        meta = self.registry.get_meta(asset_0, asset_1)
        if meta is None:
            raise PairNotExists()
        pair = sort_asset_id(asset_0, asset_1)
        account = meta.account

        reserve_0, reserve_1 = self._reserves(asset_0, asset_1, account)
        amount_0, amount_1 = amm.calculate_added_amount(
            amount_0_desired, amount_1_desired,
            amount_0_min, amount_1_min,
            reserve_0, reserve_1,
        )

        if (self.assets.balance_of(asset_0, who) < amount_0
                or self.assets.balance_of(asset_1, who) < amount_1):
            raise InsufficientAssetBalance()

        total_supply = self.fee.accrue(pair, reserve_0, reserve_1, meta.total_supply)

        mint_liquidity = amm.calculate_liquidity(amount_0, amount_1, reserve_0, reserve_1, total_supply)
        if mint_liquidity == 0:
            raise Overflow()

        self.ledger.mint(pair, who, mint_liquidity)
        self.assets.transfer(asset_0, who, account, amount_0)
        self.assets.transfer(asset_1, who, account, amount_1)

        self.fee.record_k_last(pair, *self._reserves(asset_0, asset_1, account))

        self.storage.deposit_event(
            LiquidityAdded(who, asset_0, asset_1, amount_0, amount_1, mint_liquidity)
        )
        logger.debug(
            "Liquidity added by %s: %s=%d %s=%d minted=%d",
            who, asset_0, amount_0, asset_1, amount_1, mint_liquidity,
        )
        return amount_0, amount_1, mint_liquidity

    def remove_liquidity(
        self,
        who: str,
        asset_0: AssetId,
        asset_1: AssetId,
        liquidity: int,
        amount_0_min: int,
        amount_1_min: int,
        recipient: str,
    ) -> Tuple[int, int]:
        """
        Burn *liquidity* shares of *who* and pay the pro-rata reserves to *recipient*.

        Payouts are computed on the supply before the protocol fee is minted.

        Returns:
            (amount_0, amount_1)

        Raises:
            NegativeAmount, PairNotExists, InsufficientLiquidity, InsufficientTargetAmount
        """
        ensure_amounts(liquidity, amount_0_min, amount_1_min)
        meta = self.registry.get_meta(asset_0, asset_1)
        if meta is None:
            raise PairNotExists()
        pair = sort_asset_id(asset_0, asset_1)
        account = meta.account

        if self.ledger.balance_of(pair, who) < liquidity:
            raise InsufficientLiquidity()

        reserve_0, reserve_1 = self._reserves(asset_0, asset_1, account)
        amount_0 = amm.calculate_removed_amount(liquidity, reserve_0, meta.total_supply)
        amount_1 = amm.calculate_removed_amount(liquidity, reserve_1, meta.total_supply)
        if amount_0 < amount_0_min or amount_1 < amount_1_min:
            raise InsufficientTargetAmount()

        self.fee.accrue(pair, reserve_0, reserve_1, meta.total_supply)
        self.ledger.burn(pair, who, liquidity)
        self.assets.transfer(asset_0, account, recipient, amount_0)
        self.assets.transfer(asset_1, account, recipient, amount_1)

        self.fee.record_k_last(pair, *self._reserves(asset_0, asset_1, account))

        self.storage.deposit_event(
            LiquidityRemoved(who, recipient, asset_0, asset_1, amount_0, amount_1, liquidity)
        )
        logger.debug(
            "Liquidity removed by %s to %s: %s=%d %s=%d burned=%d",
            who, recipient, asset_0, amount_0, asset_1, amount_1, liquidity,
        )
        return amount_0, amount_1
