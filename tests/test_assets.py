"""
Test suite for asset identifiers and the multi-asset ledger.

Covers:
  - AssetId ordering, parsing and encoding
  - Routing by asset kind (native, foreign, liquidity, pluggable handlers)
  - Foreign asset auto-registration
  - Balance / supply bookkeeping and error cases
"""

import pytest

from pairdex.exceptions import (
    AssetNotExists,
    InsufficientAssetBalance,
    NegativeAmount,
    Overflow,
    UnsupportedAssetType,
)
from pairdex.constants import MAX_BALANCE
from pairdex.exchange.assets import AssetHandler, MultiAssets
from pairdex.exchange.events import Burned, Minted, Transferred
from pairdex.exchange.liquidity import LiquidityLedger
from pairdex.exchange.primitives import AssetId, AssetKind, fits_balance, sort_asset_id
from pairdex.exchange.storage import ExchangeStorage

SELF_CHAIN = 0

ALICE = "0xPQ" + "a" * 64
BOB = "0xPQ" + "b" * 64

NATIVE = AssetId(SELF_CHAIN, AssetKind.NATIVE, 0)
DOT = AssetId(200, AssetKind.LOCAL, 2)
BTC = AssetId(300, AssetKind.RESERVED, 3)
LOCAL_TOKEN = AssetId(SELF_CHAIN, AssetKind.LOCAL, 7)
RESERVED_TOKEN = AssetId(SELF_CHAIN, AssetKind.RESERVED, 1)


class DictHandler(AssetHandler):
    """In-memory ledger standing in for another local module."""

    def __init__(self):
        self.balances = {}
        self.known = set()

    def balance_of(self, asset_id, who):
        return self.balances.get((asset_id, who), 0)

    def total_supply(self, asset_id):
        return sum(v for (a, _), v in self.balances.items() if a == asset_id)

    def is_exists(self, asset_id):
        return asset_id in self.known

    def deposit(self, asset_id, target, amount):
        self.known.add(asset_id)
        self.balances[(asset_id, target)] = self.balance_of(asset_id, target) + amount
        return amount

    def withdraw(self, asset_id, origin, amount):
        balance = self.balance_of(asset_id, origin)
        if balance < amount:
            raise InsufficientAssetBalance()
        self.balances[(asset_id, origin)] = balance - amount
        return amount


@pytest.fixture
def storage() -> ExchangeStorage:
    return ExchangeStorage()


@pytest.fixture
def assets(storage) -> MultiAssets:
    return MultiAssets(storage, SELF_CHAIN, LiquidityLedger(storage, SELF_CHAIN))


# ============================================================================
# AssetId
# ============================================================================

class TestAssetId:

    def test_ordering_is_lexicographic(self):
        assert AssetId(1, 3, 9) < AssetId(2, 0, 0)
        assert AssetId(1, 0, 9) < AssetId(1, 1, 0)
        assert AssetId(1, 1, 1) < AssetId(1, 1, 2)

    def test_sort_asset_id(self):
        assert sort_asset_id(BTC, DOT) == (DOT, BTC)
        assert sort_asset_id(DOT, BTC) == (DOT, BTC)

    def test_kind_members_equal_ints(self):
        assert AssetId(200, AssetKind.LOCAL, 2) == AssetId(200, 1, 2)
        assert hash(AssetId(200, AssetKind.LOCAL, 2)) == hash(AssetId(200, 1, 2))

    def test_support(self):
        assert DOT.is_support()
        assert not AssetId(200, 4, 0).is_support()

    def test_native_and_foreign(self):
        assert NATIVE.is_native(SELF_CHAIN)
        assert not AssetId(SELF_CHAIN, AssetKind.NATIVE, 1).is_native(SELF_CHAIN)
        assert DOT.is_foreign(SELF_CHAIN)
        assert not LOCAL_TOKEN.is_foreign(SELF_CHAIN)

    def test_parse_forms(self):
        assert AssetId.parse(DOT) is DOT
        assert AssetId.parse([200, 1, 2]) == DOT
        assert AssetId.parse({"chain_id": 200, "asset_type": 1, "asset_index": 2}) == DOT
        assert AssetId.from_dict(DOT.to_dict()) == DOT

    def test_parse_rejects_short_sequence(self):
        with pytest.raises(ValueError):
            AssetId.parse([200, 1])

    def test_encode_width(self):
        # u32 + u8 + u64
        assert len(DOT.encode()) == 13
        assert DOT.encode() != BTC.encode()

    def test_str(self):
        assert str(DOT) == "AssetId(200, 1, 2)"

    def test_fits_balance(self):
        assert fits_balance(0)
        assert fits_balance(MAX_BALANCE)
        assert not fits_balance(MAX_BALANCE + 1)
        assert not fits_balance(-1)


# ============================================================================
# Native currency
# ============================================================================

class TestNativeCurrency:

    def test_always_exists(self, assets):
        assert assets.is_exists(NATIVE)

    def test_deposit_and_issuance(self, assets):
        assets.deposit(NATIVE, ALICE, 100)
        assert assets.balance_of(NATIVE, ALICE) == 100
        assert assets.total_supply(NATIVE) == 100

    def test_transfer(self, assets, storage):
        assets.deposit(NATIVE, ALICE, 100)
        assets.transfer(NATIVE, ALICE, BOB, 40)
        assert assets.balance_of(NATIVE, ALICE) == 60
        assert assets.balance_of(NATIVE, BOB) == 40
        assert storage.events[-1] == Transferred(NATIVE, ALICE, BOB, 40)

    def test_transfer_insufficient(self, assets):
        assets.deposit(NATIVE, ALICE, 10)
        with pytest.raises(InsufficientAssetBalance):
            assets.transfer(NATIVE, ALICE, BOB, 11)

    def test_withdraw(self, assets, storage):
        assets.deposit(NATIVE, ALICE, 100)
        assert assets.withdraw(NATIVE, ALICE, 30) == 30
        assert assets.total_supply(NATIVE) == 70
        assert storage.events[-1] == Burned(NATIVE, ALICE, 30)

    def test_deposit_overflow(self, assets):
        assets.deposit(NATIVE, ALICE, MAX_BALANCE)
        with pytest.raises(Overflow):
            assets.deposit(NATIVE, BOB, 1)

    def test_negative_amounts_rejected(self, assets):
        assets.deposit(NATIVE, ALICE, 100)
        with pytest.raises(NegativeAmount):
            assets.transfer(NATIVE, BOB, ALICE, -100)
        with pytest.raises(NegativeAmount):
            assets.deposit(NATIVE, BOB, -1)
        with pytest.raises(NegativeAmount):
            assets.withdraw(NATIVE, ALICE, -1)
        assert assets.balance_of(NATIVE, ALICE) == 100
        assert assets.balance_of(NATIVE, BOB) == 0
        assert assets.total_supply(NATIVE) == 100


# ============================================================================
# Foreign assets
# ============================================================================

class TestForeignAssets:

    def test_unknown_until_first_deposit(self, assets):
        assert not assets.is_exists(DOT)
        assets.deposit(DOT, ALICE, 0)
        assert assets.is_exists(DOT)

    def test_registration_order(self, assets):
        assets.deposit(BTC, ALICE, 1)
        assets.deposit(DOT, ALICE, 1)
        assets.deposit(BTC, BOB, 1)
        assert assets.foreign.list_assets() == [BTC, DOT]
        assert assets.list_assets() == [NATIVE, BTC, DOT]

    def test_mint_emits_event(self, assets, storage):
        assets.deposit(DOT, ALICE, 5)
        assert storage.events[-1] == Minted(DOT, ALICE, 5)
        assert assets.total_supply(DOT) == 5

    def test_burn_unknown(self, assets):
        with pytest.raises(AssetNotExists):
            assets.withdraw(DOT, ALICE, 1)

    def test_burn_insufficient(self, assets):
        assets.deposit(DOT, ALICE, 1)
        with pytest.raises(InsufficientAssetBalance):
            assets.withdraw(DOT, ALICE, 2)

    def test_mint_overflow_leaves_asset_unregistered(self, assets):
        assets.deposit(DOT, ALICE, MAX_BALANCE)
        with pytest.raises(Overflow):
            assets.deposit(DOT, BOB, 1)
        with pytest.raises(Overflow):
            assets.deposit(BTC, ALICE, MAX_BALANCE + 1)
        assert not assets.is_exists(BTC)

    def test_negative_transfer_mints_nothing(self, assets):
        assets.deposit(DOT, ALICE, 10)
        with pytest.raises(NegativeAmount):
            assets.transfer(DOT, BOB, ALICE, -1000)
        assert assets.balance_of(DOT, BOB) == 0
        assert assets.balance_of(DOT, ALICE) == 10

    def test_transfer_between_accounts(self, assets):
        assets.deposit(DOT, ALICE, 10)
        assets.transfer(DOT, ALICE, BOB, 10)
        assert assets.balance_of(DOT, ALICE) == 0
        assert assets.balance_of(DOT, BOB) == 10
        assert assets.total_supply(DOT) == 10


# ============================================================================
# Pluggable handlers
# ============================================================================

class TestHandlers:

    def test_local_without_handler(self, assets):
        assert not assets.is_exists(LOCAL_TOKEN)
        assert assets.balance_of(LOCAL_TOKEN, ALICE) == 0
        with pytest.raises(UnsupportedAssetType):
            assets.deposit(LOCAL_TOKEN, ALICE, 1)
        with pytest.raises(UnsupportedAssetType):
            assets.transfer(LOCAL_TOKEN, ALICE, BOB, 1)

    def test_local_routed_to_handler(self, storage):
        handler = DictHandler()
        assets = MultiAssets(
            storage, SELF_CHAIN, LiquidityLedger(storage, SELF_CHAIN), local_handler=handler,
        )
        assets.deposit(LOCAL_TOKEN, ALICE, 50)
        assets.transfer(LOCAL_TOKEN, ALICE, BOB, 20)
        assert handler.balance_of(LOCAL_TOKEN, BOB) == 20
        assert assets.balance_of(LOCAL_TOKEN, ALICE) == 30
        assert assets.total_supply(LOCAL_TOKEN) == 50
        assert assets.is_exists(LOCAL_TOKEN)
        # reserved kind has no handler
        assert not assets.is_exists(RESERVED_TOKEN)

    def test_reserved_routed_to_handler(self, storage):
        handler = DictHandler()
        assets = MultiAssets(
            storage, SELF_CHAIN, LiquidityLedger(storage, SELF_CHAIN), reserved_handler=handler,
        )
        assets.deposit(RESERVED_TOKEN, ALICE, 5)
        assert assets.withdraw(RESERVED_TOKEN, ALICE, 5) == 5
        assert assets.balance_of(RESERVED_TOKEN, ALICE) == 0

    def test_other_native_index_unsupported(self, assets):
        other = AssetId(SELF_CHAIN, AssetKind.NATIVE, 1)
        assert not assets.is_exists(other)
        with pytest.raises(UnsupportedAssetType):
            assets.deposit(other, ALICE, 1)


# ============================================================================
# Liquidity assets
# ============================================================================

class TestLiquidityAssets:

    def test_unknown_lp_index(self, assets):
        lp = AssetId(SELF_CHAIN, AssetKind.LIQUIDITY, 0)
        assert not assets.is_exists(lp)
        assert assets.balance_of(lp, ALICE) == 0
        assert assets.total_supply(lp) == 0
        with pytest.raises(AssetNotExists):
            assets.transfer(lp, ALICE, BOB, 1)
