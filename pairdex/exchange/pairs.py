"""
PairDEX Pair Registry

Maps an unordered pair of assets to its deterministic pair account and the
pair's liquidity-share metadata.  Pairs are registered once and never
removed; the registration order gives each pair the index of its
liquidity asset ``AssetId(self_chain, LIQUIDITY, index)``.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, List, Optional

from ..constants import MODULE_ACCOUNT_PREFIX, PAIR_ACCOUNT_HASH_SIZE
from ..exceptions import (
    AssetNotExists,
    DeniedCreatePair,
    PairAlreadyExists,
    UnsupportedAssetType,
)
from .events import PairCreated
from .primitives import AssetId, AssetKind, Pair, sort_asset_id
from .storage import ExchangeStorage

if TYPE_CHECKING:
    from .assets import MultiAssets

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PairMeta:
    """Stored per canonical pair: owning account, share supply, list index."""
    account: str
    total_supply: int
    lp_index: int

    def with_supply(self, total_supply: int) -> PairMeta:
        return replace(self, total_supply=total_supply)


def pair_account_id(pallet_id: str, asset_0: AssetId, asset_1: AssetId) -> str:
    """
    Deterministic account owning a pair's reserves.

    ``"modl" + pallet_id + blake2b(encode(a0) + encode(a1))`` over the sorted
    pair, so the result does not depend on argument order.
    """
    asset_0, asset_1 = sort_asset_id(asset_0, asset_1)
    digest = hashlib.blake2b(
        asset_0.encode() + asset_1.encode(),
        digest_size=PAIR_ACCOUNT_HASH_SIZE,
    ).hexdigest()
    return f"{MODULE_ACCOUNT_PREFIX}{pallet_id}{digest}"


class PairRegistry:
    """Registry of trading pairs backed by the ``liquidity_meta`` / ``liquidity_pairs`` tables."""

    def __init__(
        self,
        storage: ExchangeStorage,
        assets: MultiAssets,
        pallet_id: str,
        self_chain_id: int,
    ) -> None:
        self.storage = storage
        self.assets = assets
        self.pallet_id = pallet_id
        self.self_chain_id = self_chain_id

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def create_pair(self, who: str, asset_0: AssetId, asset_1: AssetId) -> PairMeta:
        """
        Register a new pair.

        Raises:
            UnsupportedAssetType, DeniedCreatePair, AssetNotExists, PairAlreadyExists
        """
        if not asset_0.is_support() or not asset_1.is_support():
            raise UnsupportedAssetType()
        if asset_0 == asset_1:
            raise DeniedCreatePair()
        if not self.assets.is_exists(asset_0) or not self.assets.is_exists(asset_1):
            raise AssetNotExists()

        pair = sort_asset_id(asset_0, asset_1)
        if self.storage.contains("liquidity_meta", pair):
            raise PairAlreadyExists()

        index = self.storage.append("liquidity_pairs", pair)
        meta = PairMeta(
            account=self.pair_account_id(asset_0, asset_1),
            total_supply=0,
            lp_index=index,
        )
        self.storage.set("liquidity_meta", pair, meta)
        self.storage.deposit_event(PairCreated(who, asset_0, asset_1))

        logger.info("Pair created: %s / %s -> %s (lp index %d)", pair[0], pair[1], meta.account, index)
        return meta

    # ------------------------------------------------------------------
    # Lookups (always canonicalised)
    # ------------------------------------------------------------------

    def pair_account_id(self, asset_0: AssetId, asset_1: AssetId) -> str:
        return pair_account_id(self.pallet_id, asset_0, asset_1)

    def get_meta(self, asset_0: AssetId, asset_1: AssetId) -> Optional[PairMeta]:
        return self.storage.get("liquidity_meta", sort_asset_id(asset_0, asset_1))

    def get_pair_account_id(self, asset_0: AssetId, asset_1: AssetId) -> Optional[str]:
        """Pair account from storage; None if the pair is not registered."""
        meta = self.get_meta(asset_0, asset_1)
        return meta.account if meta is not None else None

    def lp_asset_id(self, asset_0: AssetId, asset_1: AssetId) -> Optional[AssetId]:
        meta = self.get_meta(asset_0, asset_1)
        if meta is None:
            return None
        return AssetId(self.self_chain_id, AssetKind.LIQUIDITY, meta.lp_index)

    def pair_of_lp_index(self, index: int) -> Optional[Pair]:
        return self.storage.get("liquidity_pairs", index)

    def all_pairs(self) -> List[Pair]:
        return self.storage.values_in_order("liquidity_pairs")

    @property
    def pair_count(self) -> int:
        return self.storage.count("liquidity_pairs")
