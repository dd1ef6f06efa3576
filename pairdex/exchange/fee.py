"""
PairDEX Protocol Fee

Takes a cut of the trading fee earned by liquidity providers by minting
new liquidity shares to a fee receiver.  Swaps never change share supply,
only reserves, so the growth of sqrt(k) since the last liquidity mutation
(``KLast``) is realised the next time liquidity is added or removed.

The fee is on only while a receiver is configured and ``fee_point > 0``.
``fee_point`` is out of 30 (the whole 0.30% trading fee):

    fee_point  5  ->  1/6 of the trading fee (0.05%)
    fee_point 30  ->  all of it

Fee settings live in the ``fee_meta`` table and may only be changed by the
fee admin (the admin itself may also be replaced by root).
"""

from __future__ import annotations

import logging
from typing import Optional

from ..constants import DEFAULT_FEE_POINT, MAX_FEE_POINT
from ..exceptions import InvalidFeePoint, RequireProtocolAdmin
from . import amm
from .liquidity import LiquidityLedger
from .primitives import Pair, sort_asset_id
from .storage import ExchangeStorage

logger = logging.getLogger(__name__)


class ProtocolFee:
    """Fee settings, KLast bookkeeping and protocol-fee minting."""

    def __init__(self, storage: ExchangeStorage, ledger: LiquidityLedger) -> None:
        self.storage = storage
        self.ledger = ledger

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def initialize(
        self,
        admin: str,
        receiver: Optional[str] = None,
        fee_point: int = DEFAULT_FEE_POINT,
    ) -> None:
        """Write genesis fee settings."""
        if not 0 <= fee_point <= MAX_FEE_POINT:
            raise InvalidFeePoint()
        self.storage.set("fee_meta", "admin", admin)
        self.storage.set("fee_meta", "receiver", receiver)
        self.storage.set("fee_meta", "fee_point", fee_point)

    @property
    def admin(self) -> str:
        return self.storage.get("fee_meta", "admin", "")

    @property
    def receiver(self) -> Optional[str]:
        return self.storage.get("fee_meta", "receiver")

    @property
    def fee_point(self) -> int:
        return self.storage.get("fee_meta", "fee_point", DEFAULT_FEE_POINT)

    @property
    def enabled(self) -> bool:
        return self.receiver is not None and self.fee_point > 0

    def _ensure_admin(self, origin: Optional[str]) -> None:
        if origin is None or not self.admin or origin != self.admin:
            raise RequireProtocolAdmin()

    def set_fee_admin(self, origin: Optional[str], new_admin: str, root: bool = False) -> None:
        """Replace the fee admin. Root or the current admin only."""
        if not root:
            self._ensure_admin(origin)
        self.storage.set("fee_meta", "admin", new_admin)
        logger.info("Fee admin set to %s", new_admin)

    def set_fee_receiver(self, origin: Optional[str], receiver: Optional[str]) -> None:
        """Set (or clear, with None) the protocol-fee receiver."""
        self._ensure_admin(origin)
        self.storage.set("fee_meta", "receiver", receiver)
        logger.info("Fee receiver set to %s", receiver)

    def set_fee_point(self, origin: Optional[str], fee_point: int) -> None:
        self._ensure_admin(origin)
        if not 0 <= fee_point <= MAX_FEE_POINT:
            raise InvalidFeePoint()
        self.storage.set("fee_meta", "fee_point", fee_point)
        logger.info("Fee point set to %d", fee_point)

    # ------------------------------------------------------------------
    # KLast
    # ------------------------------------------------------------------

    def k_last(self, pair: Pair) -> int:
        return self.storage.get("k_last", sort_asset_id(*pair), 0)

    def _set_k_last(self, pair: Pair, value: int) -> None:
        self.storage.set("k_last", sort_asset_id(*pair), value)

    def record_k_last(self, pair: Pair, reserve_0: int, reserve_1: int) -> None:
        """Persist the post-mutation reserve product while the fee is on."""
        if self.enabled:
            self._set_k_last(pair, reserve_0 * reserve_1)

    # ------------------------------------------------------------------
    # Accrual
    # ------------------------------------------------------------------

    def mint_protocol_fee(self, pair: Pair, reserve_0: int, reserve_1: int, total_supply: int) -> int:
        """
        Shares owed to the receiver for invariant growth since KLast.

        Resets KLast to 0 when the fee is off.  Nothing is minted here.
        """
        k_last = self.k_last(pair)

        if not self.enabled:
            if k_last != 0:
                self._set_k_last(pair, 0)
            return 0

        if k_last == 0:
            return 0

        root_k = amm.integer_sqrt(reserve_0 * reserve_1)
        root_k_last = amm.integer_sqrt(k_last)
        if root_k <= root_k_last:
            return 0

        return amm.calculate_protocol_fee(total_supply, root_k, root_k_last, self.fee_point)

    def accrue(self, pair: Pair, reserve_0: int, reserve_1: int, total_supply: int) -> int:
        """
        Mint the protocol fee to the receiver and return the new share supply.
        """
        fee = self.mint_protocol_fee(pair, reserve_0, reserve_1, total_supply)
        if fee > 0:
            self.ledger.mint(pair, self.receiver, fee)
            logger.debug("Protocol fee minted: %d shares to %s", fee, self.receiver)
            return total_supply + fee
        return total_supply
