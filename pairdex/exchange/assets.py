"""
PairDEX Asset Ledger

``MultiAssets`` is the single fungible-asset interface the exchange reads and
writes through.  Calls are routed by asset kind:

    NATIVE    (self chain, index 0)  -> NativeCurrency
    LIQUIDITY (self chain)           -> LiquidityLedger (pair shares)
    LOCAL     (self chain)           -> pluggable AssetHandler
    RESERVED  (self chain)           -> pluggable AssetHandler
    any kind  (other chain)          -> ForeignAssets

Foreign assets are registered on their first deposit; withdrawing one that
was never deposited fails with AssetNotExists.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from ..exceptions import AssetNotExists, InsufficientAssetBalance, Overflow, UnsupportedAssetType
from .events import Burned, Minted, Transferred
from .liquidity import LiquidityLedger
from .primitives import AssetId, AssetKind, ensure_amounts, fits_balance
from .storage import ExchangeStorage

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pluggable handlers for LOCAL / RESERVED assets
# ---------------------------------------------------------------------------

class AssetHandler(ABC):
    """Ledger of assets issued by another local module."""

    @abstractmethod
    def balance_of(self, asset_id: AssetId, who: str) -> int: ...

    @abstractmethod
    def total_supply(self, asset_id: AssetId) -> int: ...

    @abstractmethod
    def is_exists(self, asset_id: AssetId) -> bool: ...

    @abstractmethod
    def deposit(self, asset_id: AssetId, target: str, amount: int) -> int:
        """Mint *amount* to *target*; return the amount credited."""

    @abstractmethod
    def withdraw(self, asset_id: AssetId, origin: str, amount: int) -> int:
        """Burn *amount* from *origin*; return the amount debited."""

    def transfer(self, asset_id: AssetId, origin: str, target: str, amount: int) -> None:
        withdrawn = self.withdraw(asset_id, origin, amount)
        self.deposit(asset_id, target, withdrawn)


# ---------------------------------------------------------------------------
# Built-in ledgers
# ---------------------------------------------------------------------------

class NativeCurrency:
    """Balances of the chain's own currency (``native_ledger`` / ``native_issuance``)."""

    def __init__(self, storage: ExchangeStorage, asset_id: AssetId) -> None:
        self.storage = storage
        self.asset_id = asset_id

    def balance_of(self, who: str) -> int:
        return self.storage.get("native_ledger", who, 0)

    def total_issuance(self) -> int:
        return self.storage.get("native_issuance", "total", 0)

    def transfer(self, origin: str, target: str, amount: int) -> None:
        balance = self.balance_of(origin)
        if balance < amount:
            raise InsufficientAssetBalance()
        self.storage.set("native_ledger", origin, balance - amount)

        new_balance = self.balance_of(target) + amount
        if not fits_balance(new_balance):
            raise Overflow()
        self.storage.set("native_ledger", target, new_balance)
        self.storage.deposit_event(Transferred(self.asset_id, origin, target, amount))

    def deposit(self, target: str, amount: int) -> int:
        new_balance = self.balance_of(target) + amount
        new_issuance = self.total_issuance() + amount
        if not (fits_balance(new_balance) and fits_balance(new_issuance)):
            raise Overflow()
        self.storage.set("native_ledger", target, new_balance)
        self.storage.set("native_issuance", "total", new_issuance)
        self.storage.deposit_event(Minted(self.asset_id, target, amount))
        return amount

    def withdraw(self, origin: str, amount: int) -> int:
        balance = self.balance_of(origin)
        if balance < amount:
            raise InsufficientAssetBalance()
        self.storage.set("native_ledger", origin, balance - amount)
        self.storage.set("native_issuance", "total", self.total_issuance() - amount)
        self.storage.deposit_event(Burned(self.asset_id, origin, amount))
        return amount


class ForeignAssets:
    """Assets reserved on other chains (``foreign_ledger`` / ``foreign_meta`` / ``foreign_list``)."""

    def __init__(self, storage: ExchangeStorage) -> None:
        self.storage = storage

    def balance_of(self, asset_id: AssetId, who: str) -> int:
        return self.storage.get("foreign_ledger", (asset_id, who), 0)

    def total_supply(self, asset_id: AssetId) -> int:
        return self.storage.get("foreign_meta", asset_id, 0)

    def is_exists(self, asset_id: AssetId) -> bool:
        return self.storage.contains("foreign_meta", asset_id)

    def list_assets(self) -> List[AssetId]:
        return self.storage.values_in_order("foreign_list")

    def transfer(self, asset_id: AssetId, origin: str, target: str, amount: int) -> None:
        balance = self.balance_of(asset_id, origin)
        if balance < amount:
            raise InsufficientAssetBalance()
        self.storage.set("foreign_ledger", (asset_id, origin), balance - amount)

        new_balance = self.balance_of(asset_id, target) + amount
        if not fits_balance(new_balance):
            raise Overflow()
        self.storage.set("foreign_ledger", (asset_id, target), new_balance)
        self.storage.deposit_event(Transferred(asset_id, origin, target, amount))

    def mint(self, asset_id: AssetId, target: str, amount: int) -> None:
        new_balance = self.balance_of(asset_id, target) + amount
        new_supply = self.total_supply(asset_id) + amount
        if not (fits_balance(new_balance) and fits_balance(new_supply)):
            raise Overflow()

        if not self.is_exists(asset_id):
            self.storage.append("foreign_list", asset_id)
            logger.debug("Foreign asset registered: %s", asset_id)

        self.storage.set("foreign_ledger", (asset_id, target), new_balance)
        self.storage.set("foreign_meta", asset_id, new_supply)
        self.storage.deposit_event(Minted(asset_id, target, amount))

    def burn(self, asset_id: AssetId, origin: str, amount: int) -> None:
        if not self.is_exists(asset_id):
            raise AssetNotExists()
        balance = self.balance_of(asset_id, origin)
        if balance < amount:
            raise InsufficientAssetBalance()
        self.storage.set("foreign_ledger", (asset_id, origin), balance - amount)
        self.storage.set("foreign_meta", asset_id, max(self.total_supply(asset_id) - amount, 0))
        self.storage.deposit_event(Burned(asset_id, origin, amount))


# ---------------------------------------------------------------------------
# Router over all kinds
# ---------------------------------------------------------------------------

class MultiAssets:
    """Fungible-asset ledger consumed by the exchange engine."""

    def __init__(
        self,
        storage: ExchangeStorage,
        self_chain_id: int,
        liquidity: LiquidityLedger,
        local_handler: Optional[AssetHandler] = None,
        reserved_handler: Optional[AssetHandler] = None,
    ) -> None:
        self.storage = storage
        self.self_chain_id = self_chain_id
        self.native_asset_id = AssetId(self_chain_id, AssetKind.NATIVE, 0)
        self.native = NativeCurrency(storage, self.native_asset_id)
        self.foreign = ForeignAssets(storage)
        self.liquidity = liquidity
        self.local_handler = local_handler
        self.reserved_handler = reserved_handler

    def _handler(self, asset_id: AssetId) -> Optional[AssetHandler]:
        if asset_id.asset_type == AssetKind.LOCAL:
            return self.local_handler
        if asset_id.asset_type == AssetKind.RESERVED:
            return self.reserved_handler
        return None

    def _route(self, asset_id: AssetId) -> str:
        """Name of the ledger owning *asset_id*, or "" if none does."""
        if asset_id.is_foreign(self.self_chain_id):
            return "foreign"
        kind = asset_id.asset_type
        if kind == AssetKind.NATIVE:
            return "native" if asset_id.is_native(self.self_chain_id) else ""
        if kind == AssetKind.LIQUIDITY:
            return "liquidity"
        if kind in (AssetKind.LOCAL, AssetKind.RESERVED):
            return "handler" if self._handler(asset_id) is not None else ""
        return ""

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def balance_of(self, asset_id: AssetId, who: str) -> int:
        route = self._route(asset_id)
        if route == "native":
            return self.native.balance_of(who)
        if route == "liquidity":
            pair = self.liquidity.pair_of_index(asset_id.asset_index)
            return self.liquidity.balance_of(pair, who) if pair is not None else 0
        if route == "handler":
            return self._handler(asset_id).balance_of(asset_id, who)
        if route == "foreign":
            return self.foreign.balance_of(asset_id, who)
        return 0

    def total_supply(self, asset_id: AssetId) -> int:
        route = self._route(asset_id)
        if route == "native":
            return self.native.total_issuance()
        if route == "liquidity":
            pair = self.liquidity.pair_of_index(asset_id.asset_index)
            return self.liquidity.total_supply(pair) if pair is not None else 0
        if route == "handler":
            return self._handler(asset_id).total_supply(asset_id)
        if route == "foreign":
            return self.foreign.total_supply(asset_id)
        return 0

    def is_exists(self, asset_id: AssetId) -> bool:
        route = self._route(asset_id)
        if route == "native":
            return True
        if route == "liquidity":
            return self.liquidity.pair_of_index(asset_id.asset_index) is not None
        if route == "handler":
            return self._handler(asset_id).is_exists(asset_id)
        if route == "foreign":
            return self.foreign.is_exists(asset_id)
        return False

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _lp_pair(self, asset_id: AssetId):
        pair = self.liquidity.pair_of_index(asset_id.asset_index)
        if pair is None:
            raise AssetNotExists()
        return pair

    def transfer(self, asset_id: AssetId, origin: str, target: str, amount: int) -> None:
        ensure_amounts(amount)
        route = self._route(asset_id)
        if route == "native":
            self.native.transfer(origin, target, amount)
        elif route == "liquidity":
            self.liquidity.transfer(self._lp_pair(asset_id), origin, target, amount)
        elif route == "handler":
            self._handler(asset_id).transfer(asset_id, origin, target, amount)
        elif route == "foreign":
            self.foreign.transfer(asset_id, origin, target, amount)
        else:
            raise UnsupportedAssetType()

    def deposit(self, asset_id: AssetId, target: str, amount: int) -> int:
        """Mint *amount* of *asset_id* to *target*."""
        ensure_amounts(amount)
        route = self._route(asset_id)
        if route == "native":
            return self.native.deposit(target, amount)
        if route == "liquidity":
            self.liquidity.mint(self._lp_pair(asset_id), target, amount)
            return amount
        if route == "handler":
            return self._handler(asset_id).deposit(asset_id, target, amount)
        if route == "foreign":
            self.foreign.mint(asset_id, target, amount)
            return amount
        raise UnsupportedAssetType()

    def withdraw(self, asset_id: AssetId, origin: str, amount: int) -> int:
        """Burn *amount* of *asset_id* from *origin*."""
        ensure_amounts(amount)
        route = self._route(asset_id)
        if route == "native":
            return self.native.withdraw(origin, amount)
        if route == "liquidity":
            self.liquidity.burn(self._lp_pair(asset_id), origin, amount)
            return amount
        if route == "handler":
            return self._handler(asset_id).withdraw(asset_id, origin, amount)
        if route == "foreign":
            self.foreign.burn(asset_id, origin, amount)
            return amount
        raise UnsupportedAssetType()

    def list_assets(self) -> List[AssetId]:
        """Native asset followed by every registered foreign asset."""
        return [self.native_asset_id] + self.foreign.list_assets()
