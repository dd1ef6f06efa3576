"""
Read-only exchange queries for the API layer.

Nothing here mutates storage; quote helpers swallow exchange errors and
answer 0, matching what a wallet expects from an estimate.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from ..exceptions import ExchangeError
from . import amm
from .pairs import PairRegistry
from .primitives import AssetId, AssetKind, sort_asset_id
from .router import SwapRouter

if TYPE_CHECKING:
    from .assets import MultiAssets


@dataclass(frozen=True)
class PairInfo:
    """Snapshot of one pair as seen by a caller."""
    asset_0: AssetId
    asset_1: AssetId
    account: str
    total_liquidity: int
    holding_liquidity: int
    reserve_0: int
    reserve_1: int
    lp_asset_id: AssetId

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset0": self.asset_0.to_dict(),
            "asset1": self.asset_1.to_dict(),
            "account": self.account,
            "totalLiquidity": str(self.total_liquidity),
            "holdingLiquidity": str(self.holding_liquidity),
            "reserve0": str(self.reserve_0),
            "reserve1": str(self.reserve_1),
            "lpAssetId": self.lp_asset_id.to_dict(),
        }


class ExchangeQueries:
    def __init__(self, registry: PairRegistry, assets: MultiAssets, router: SwapRouter) -> None:
        self.registry = registry
        self.assets = assets
        self.router = router

    def _lp_id(self, index: int) -> AssetId:
        return AssetId(self.registry.self_chain_id, AssetKind.LIQUIDITY, index)

    def _pair_info(self, asset_0: AssetId, asset_1: AssetId, index: int) -> PairInfo:
        meta = self.registry.get_meta(asset_0, asset_1)
        return PairInfo(
            asset_0=asset_0,
            asset_1=asset_1,
            account=meta.account,
            total_liquidity=meta.total_supply,
            holding_liquidity=0,
            reserve_0=self.assets.balance_of(asset_0, meta.account),
            reserve_1=self.assets.balance_of(asset_1, meta.account),
            lp_asset_id=self._lp_id(index),
        )

    def get_assets(self) -> List[AssetId]:
        """Registered foreign assets followed by every liquidity asset."""
        assets = self.assets.foreign.list_assets()
        assets.extend(self._lp_id(i) for i in range(self.registry.pair_count))
        return assets

    def get_all_pairs(self) -> List[PairInfo]:
        return [
            self._pair_info(pair[0], pair[1], index)
            for index, pair in enumerate(self.registry.all_pairs())
        ]

    def get_owner_pairs(self, owner: str) -> List[PairInfo]:
        """Pairs in which *owner* holds liquidity, with the holding filled in."""
        owned = []
        for info in self.get_all_pairs():
            held = self.assets.balance_of(info.lp_asset_id, owner)
            if held > 0:
                owned.append(replace(info, holding_liquidity=held))
        return owned

    def get_pair_by_asset_id(self, asset_0: AssetId, asset_1: AssetId) -> Optional[PairInfo]:
        """Pair info with reserves in caller order; None if unregistered."""
        meta = self.registry.get_meta(asset_0, asset_1)
        if meta is None:
            return None
        return self._pair_info(asset_0, asset_1, meta.lp_index)

    def supply_out_amount(self, supply: int, path: Sequence[AssetId]) -> int:
        """Output of selling *supply* along *path*, or 0 if it cannot be quoted."""
        try:
            return self.router.get_amount_out_by_path(supply, path)[-1]
        except ExchangeError:
            return 0

    def desired_in_amount(self, desired_amount: int, path: Sequence[AssetId]) -> int:
        """Input needed to buy *desired_amount* along *path*, or 0 if it cannot be quoted."""
        try:
            return self.router.get_amount_in_by_path(desired_amount, path)[0]
        except ExchangeError:
            return 0

    def get_estimate_lptoken(
        self,
        asset_0: AssetId,
        asset_1: AssetId,
        amount_0_desired: int,
        amount_1_desired: int,
        amount_0_min: int,
        amount_1_min: int,
    ) -> int:
        """Shares add_liquidity would mint right now (protocol fee not included)."""
        meta = self.registry.get_meta(*sort_asset_id(asset_0, asset_1))
        if meta is None:
            return 0
        reserve_0 = self.assets.balance_of(asset_0, meta.account)
        reserve_1 = self.assets.balance_of(asset_1, meta.account)
        try:
            amount_0, amount_1 = amm.calculate_added_amount(
                amount_0_desired, amount_1_desired,
                amount_0_min, amount_1_min,
                reserve_0, reserve_1,
            )
        except ExchangeError:
            return 0
        return amm.calculate_liquidity(amount_0, amount_1, reserve_0, reserve_1, meta.total_supply)
