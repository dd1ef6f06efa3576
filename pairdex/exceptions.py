"""
PairDEX Exceptions

Custom exception classes for the PairDEX exchange engine.

Every exchange error aborts the whole call.  The state manager turns an
``ExchangeError`` into a failed execution result; the storage change-set
opened for the call is discarded, so no partial mutation survives.
"""


class PairDexException(Exception):
    """Base exception for PairDEX."""
    pass


class ConfigurationError(PairDexException):
    """Configuration error."""
    pass


class ExchangeError(PairDexException):
    """Base class for every error raised by the exchange engine."""

    @property
    def name(self) -> str:
        return type(self).__name__


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

class ValidationError(ExchangeError):
    """Pre-state validation failed."""


class SufficiencyError(ExchangeError):
    """An account, holding or reserve cannot cover the request."""


class SlippageError(ExchangeError):
    """A caller-supplied minimum / maximum bound was not met."""


class StructuralError(ExchangeError):
    """Pair registry or path structure is wrong."""


class ArithmeticSafetyError(ExchangeError):
    """Overflow or invariant re-verification failure."""


class AdminError(ExchangeError):
    """Protocol-fee administration rejected."""


# ---------------------------------------------------------------------------
# (a) pre-state validation
# ---------------------------------------------------------------------------

class UnsupportedAssetType(ValidationError):
    """Asset id is not of a kind this exchange understands."""


class DeniedCreatePair(ValidationError):
    """Trading pair can't be created (both sides are the same asset)."""


class AssetNotExists(ValidationError):
    """Asset is unknown to the asset ledger."""


class Deadline(ValidationError):
    """Current block height has reached the transaction deadline."""


class NegativeAmount(ValidationError):
    """Amounts and slippage bounds must be non-negative."""


# ---------------------------------------------------------------------------
# (b) sufficiency
# ---------------------------------------------------------------------------

class InsufficientAssetBalance(SufficiencyError):
    """Account balance must be greater than or equal to the transfer amount."""


class InsufficientLiquidity(SufficiencyError):
    """Liquidity holding is not enough."""


class InsufficientPairReserve(SufficiencyError):
    """Pair reserve cannot cover a hop output."""


# ---------------------------------------------------------------------------
# (c) slippage bounds
# ---------------------------------------------------------------------------

class InsufficientTargetAmount(SlippageError):
    """Received amount is less than the caller's minimum."""


class ExcessiveSoldAmount(SlippageError):
    """Required input is more than the caller's maximum."""


class IncorrectAssetAmountRange(SlippageError):
    """Neither side of an add-liquidity request satisfies its minimum."""


# ---------------------------------------------------------------------------
# (d) structural
# ---------------------------------------------------------------------------

class PairNotExists(StructuralError):
    """Trading pair does not exist."""


class PairAlreadyExists(StructuralError):
    """Trading pair already exists."""


class InvalidPath(StructuralError):
    """Swap path is too short or crosses an empty pair."""


# ---------------------------------------------------------------------------
# (e) arithmetic safety
# ---------------------------------------------------------------------------

class Overflow(ArithmeticSafetyError):
    """Result does not fit a balance, or a mint would be zero."""


class InvariantCheckFailed(ArithmeticSafetyError):
    """Reserve product would decrease across a hop."""


# ---------------------------------------------------------------------------
# Fee administration
# ---------------------------------------------------------------------------

class RequireProtocolAdmin(AdminError):
    """Only the protocol-fee admin may change fee settings."""


class InvalidFeePoint(AdminError):
    """Fee point must be an integer in [0, 30]."""
