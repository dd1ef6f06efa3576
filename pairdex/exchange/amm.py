"""
PairDEX Constant-Product Price Engine

Pure integer functions computing swap outputs/inputs and liquidity ratios
from current reserves.  Python ints are unbounded, so every product of two
balance-scale values is exact; results that do not fit a balance are
reported as 0 by the quote functions and rejected by the callers that mint.

Rounding:
  - get_amount_out floors (trader receives at most the exact value)
  - get_amount_in floors then adds 1 (trader pays at least the exact value)
  - share / payout computations floor in the pool's favour
"""

from __future__ import annotations

import math
from typing import Tuple

from ..constants import MAX_BALANCE, MAX_FEE_POINT, SWAP_FEE_DENOMINATOR, SWAP_FEE_NUMERATOR
from ..exceptions import IncorrectAssetAmountRange


def integer_sqrt(value: int) -> int:
    """floor(sqrt(value))."""
    return math.isqrt(value)


# ---------------------------------------------------------------------------
# Swap quotes
# ---------------------------------------------------------------------------

def get_amount_out(amount_in: int, reserve_in: int, reserve_out: int) -> int:
    """
    Output for an exact input, with the 0.3% trading fee kept in the pool.

        out = in*997*reserve_out / (reserve_in*1000 + in*997)

    Returns 0 on any zero input.
    """
    if amount_in == 0 or reserve_in == 0 or reserve_out == 0:
        return 0

    amount_in_with_fee = amount_in * SWAP_FEE_NUMERATOR
    numerator = amount_in_with_fee * reserve_out
    denominator = reserve_in * SWAP_FEE_DENOMINATOR + amount_in_with_fee

    amount_out = numerator // denominator
    if amount_out > MAX_BALANCE:
        return 0
    return amount_out


def get_amount_in(amount_out: int, reserve_in: int, reserve_out: int) -> int:
    """
    Input required for an exact output.

        in = reserve_in*out*1000 / ((reserve_out - out)*997) + 1

    Returns 0 on any zero input, or when the output would drain the reserve.
    """
    if amount_out == 0 or reserve_in == 0 or reserve_out == 0:
        return 0
    if amount_out >= reserve_out:
        return 0

    numerator = reserve_in * amount_out * SWAP_FEE_DENOMINATOR
    denominator = (reserve_out - amount_out) * SWAP_FEE_NUMERATOR

    amount_in = numerator // denominator + 1
    if amount_in > MAX_BALANCE:
        return 0
    return amount_in


def check_k_invariant(reserve_in: int, reserve_out: int, amount_in: int, amount_out: int) -> bool:
    """True if (reserve_in + in) * (reserve_out - out) >= reserve_in * reserve_out."""
    new_reserve_out = max(reserve_out - amount_out, 0)
    return (reserve_in + amount_in) * new_reserve_out >= reserve_in * reserve_out


# ---------------------------------------------------------------------------
# Liquidity
# ---------------------------------------------------------------------------

def calculate_share_amount(amount_0: int, reserve_0: int, reserve_1: int) -> int:
    """amount_0 priced in asset 1 at the current reserve ratio (floored)."""
    if amount_0 == 0 or reserve_0 == 0 or reserve_1 == 0:
        return 0
    return amount_0 * reserve_1 // reserve_0


def calculate_added_amount(
    amount_0_desired: int,
    amount_1_desired: int,
    amount_0_min: int,
    amount_1_min: int,
    reserve_0: int,
    reserve_1: int,
) -> Tuple[int, int]:
    """
    Amounts actually deposited by add_liquidity.

    An empty side bootstraps at the desired amounts.  Otherwise asset 1 is
    matched to the full desired asset 0; if that needs more asset 1 than
    desired, asset 0 is matched to the full desired asset 1 instead.

    Raises:
        IncorrectAssetAmountRange: the matched side misses its bound
    """
    if reserve_0 == 0 or reserve_1 == 0:
        return amount_0_desired, amount_1_desired

    amount_1_optimal = calculate_share_amount(amount_0_desired, reserve_0, reserve_1)
    if amount_1_optimal <= amount_1_desired:
        if amount_1_optimal < amount_1_min:
            raise IncorrectAssetAmountRange()
        return amount_0_desired, amount_1_optimal

    amount_0_optimal = calculate_share_amount(amount_1_desired, reserve_1, reserve_0)
    if not amount_0_min <= amount_0_optimal <= amount_0_desired:
        raise IncorrectAssetAmountRange()
    return amount_0_optimal, amount_1_desired


def calculate_liquidity(
    amount_0: int,
    amount_1: int,
    reserve_0: int,
    reserve_1: int,
    total_supply: int,
) -> int:
    """
    Liquidity shares minted for a deposit.

    Bootstrap mints the geometric mean; afterwards the smaller proportional
    share across both assets is minted.  A zero result is returned as-is;
    the caller rejects it.
    """
    if total_supply == 0:
        return integer_sqrt(amount_0 * amount_1)
    if reserve_0 == 0 or reserve_1 == 0:
        return 0
    return min(
        amount_0 * total_supply // reserve_0,
        amount_1 * total_supply // reserve_1,
    )


def calculate_removed_amount(liquidity: int, reserve: int, total_supply: int) -> int:
    """Pro-rata payout of one asset for burning *liquidity* shares (floored)."""
    if total_supply == 0:
        return 0
    return liquidity * reserve // total_supply


def calculate_protocol_fee(total_supply: int, root_k: int, root_k_last: int, fee_point: int) -> int:
    """
    Shares minted to the fee receiver for invariant growth since KLast.

        fee = supply*(root_k - root_k_last) / (root_k*((30 - fee_point)/fee_point) + root_k_last)

    ``fee_point`` must be non-zero; callers disable the fee before reaching here.
    """
    fix = (MAX_FEE_POINT - fee_point) // fee_point
    numerator = total_supply * (root_k - root_k_last)
    denominator = root_k * fix + root_k_last
    if denominator == 0:
        return 0
    return numerator // denominator
