"""
Test suite for the PairDEX constant-product price engine.

Covers:
  - get_amount_out / get_amount_in rounding and zero / overflow handling
  - k re-verification
  - Added-amount matching and liquidity minting
  - Pro-rata payouts and the protocol-fee formula
"""

import pytest

from pairdex.constants import MAX_BALANCE
from pairdex.exceptions import IncorrectAssetAmountRange
from pairdex.exchange import amm

DOT_UNIT = 10 ** 15
BTC_UNIT = 10 ** 8


class TestAmountOut:

    def test_small_pool(self):
        # 1000*997*1000 / (1000*1000 + 1000*997) = 499.25
        assert amm.get_amount_out(1000, 1000, 1000) == 499

    def test_matches_known_quote(self):
        out = amm.get_amount_out(DOT_UNIT, 10000 * DOT_UNIT, 10000 * BTC_UNIT)
        assert out == 99690060

    def test_fee_keeps_output_below_spot(self):
        out = amm.get_amount_out(DOT_UNIT, 10000 * DOT_UNIT, 10000 * BTC_UNIT)
        assert BTC_UNIT * 996 // 1000 < out < BTC_UNIT * 997 // 1000

    @pytest.mark.parametrize("args", [(0, 10, 10), (10, 0, 10), (10, 10, 0)])
    def test_zero_inputs(self, args):
        assert amm.get_amount_out(*args) == 0

    def test_tiny_input_rounds_to_zero(self):
        assert amm.get_amount_out(1, 10 ** 6, 10) == 0


class TestAmountIn:

    def test_small_pool(self):
        # 1000*499*1000 / (501*997) = 999.005 -> 999 + 1
        assert amm.get_amount_in(499, 1000, 1000) == 1000

    def test_round_trip_never_underpays(self):
        amount_in = amm.get_amount_in(BTC_UNIT, 10 ** 6 * DOT_UNIT, 10 ** 6 * BTC_UNIT)
        assert amount_in == 1003010030091274
        assert amm.get_amount_out(amount_in, 10 ** 6 * DOT_UNIT, 10 ** 6 * BTC_UNIT) >= BTC_UNIT

    def test_draining_reserve_is_zero(self):
        assert amm.get_amount_in(1000, 1000, 1000) == 0
        assert amm.get_amount_in(1001, 1000, 1000) == 0

    @pytest.mark.parametrize("args", [(0, 10, 10), (1, 0, 10), (1, 10, 0)])
    def test_zero_inputs(self, args):
        assert amm.get_amount_in(*args) == 0

    def test_result_beyond_max_balance_is_zero(self):
        assert amm.get_amount_in(MAX_BALANCE - 1, MAX_BALANCE, MAX_BALANCE) == 0


class TestKInvariant:

    def test_growing_k_passes(self):
        # 110 * 91 = 10010 >= 10000
        assert amm.check_k_invariant(100, 100, 10, 9)

    def test_shrinking_k_fails(self):
        # 110 * 90 = 9900 < 10000
        assert not amm.check_k_invariant(100, 100, 10, 10)

    def test_output_above_reserve_saturates(self):
        assert not amm.check_k_invariant(100, 100, 10, 500)


class TestAddedAmount:

    def test_empty_pool_takes_desired(self):
        assert amm.calculate_added_amount(10, 30, 0, 0, 0, 0) == (10, 30)

    def test_matches_asset_1_to_desired_asset_0(self):
        assert amm.calculate_added_amount(10, 30, 0, 0, 100, 200) == (10, 20)

    def test_matches_asset_0_to_desired_asset_1(self):
        assert amm.calculate_added_amount(10, 10, 0, 0, 100, 200) == (5, 10)

    def test_asset_1_below_min(self):
        with pytest.raises(IncorrectAssetAmountRange):
            amm.calculate_added_amount(10, 30, 0, 25, 100, 200)

    def test_asset_0_below_min(self):
        with pytest.raises(IncorrectAssetAmountRange):
            amm.calculate_added_amount(10, 10, 6, 0, 100, 200)


class TestLiquidity:

    def test_bootstrap_is_geometric_mean(self):
        assert amm.calculate_liquidity(DOT_UNIT, BTC_UNIT, 0, 0, 0) == 316227766016

    def test_proportional_takes_smaller_share(self):
        assert amm.calculate_liquidity(10, 30, 100, 200, 1000) == 100
        assert amm.calculate_liquidity(10, 10, 100, 200, 1000) == 50

    def test_zero_reserve_with_supply(self):
        assert amm.calculate_liquidity(10, 10, 0, 200, 1000) == 0

    def test_integer_sqrt_floors(self):
        assert amm.integer_sqrt(15) == 3
        assert amm.integer_sqrt(16) == 4
        assert amm.integer_sqrt(10 ** 23) == 316227766016

    def test_removed_amount(self):
        supply = amm.integer_sqrt(50 * DOT_UNIT * 50 * BTC_UNIT)
        assert supply == 15811388300841
        assert amm.calculate_removed_amount(BTC_UNIT, 50 * DOT_UNIT, supply) == 316227766016
        assert amm.calculate_removed_amount(BTC_UNIT, 50 * BTC_UNIT, supply) == 31622

    def test_removed_amount_without_supply(self):
        assert amm.calculate_removed_amount(10, 100, 0) == 0


class TestProtocolFeeFormula:

    def test_default_point(self):
        # fix = 5: 100*10 / (110*5 + 100)
        assert amm.calculate_protocol_fee(100, 110, 100, 5) == 1

    def test_whole_trading_fee(self):
        # fix = 0: 100*10 / 100
        assert amm.calculate_protocol_fee(100, 110, 100, 30) == 10

    def test_fix_is_floored(self):
        # (30 - 7) // 7 = 3: 1000*10 / (110*3 + 100)
        assert amm.calculate_protocol_fee(1000, 110, 100, 7) == 23

    def test_no_growth(self):
        assert amm.calculate_protocol_fee(100, 100, 100, 5) == 0
