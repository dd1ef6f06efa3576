"""
PairDEX Constants

This module consolidates the global constants and environment configuration
used throughout the codebase. Constants are organized by category for easy
reference and maintenance.
"""
import ast
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_ENABLED':                'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# WARNING: THE VALUES BELOW ARE CONSENSUS-CRITICAL. EVERY NODE MUST USE THE SAME
# VALUES OR IT WILL COMPUTE DIFFERENT SWAP OUTPUTS, LIQUIDITY SHARES AND STATE ROOTS.

# ==================================================================================
# BALANCE BOUNDS
# ==================================================================================
BALANCE_BITS = 128
MAX_BALANCE = 2 ** BALANCE_BITS - 1  # Largest representable asset balance


# ==================================================================================
# SWAP FEE
# ==================================================================================
# 0.3% trading fee, kept in the pool: out = in*997*r_out / (r_in*1000 + in*997)
SWAP_FEE_NUMERATOR = 997
SWAP_FEE_DENOMINATOR = 1000


# ==================================================================================
# PROTOCOL FEE
# ==================================================================================
# The fee point is an integer in [0, 30]:
#   0  -> no protocol fee
#   30 -> the whole 0.30% trading fee goes to the receiver
#   5  -> 0.30% * 1/6 = 0.05% (default)
MAX_FEE_POINT = 30
DEFAULT_FEE_POINT = 5


# ==================================================================================
# ACCOUNTS
# ==================================================================================
MODULE_ACCOUNT_PREFIX = 'modl'
DEFAULT_PALLET_ID = '/pairdex'
PAIR_ACCOUNT_HASH_SIZE = 16  # blake2b digest bytes appended to the pallet id
DEFAULT_SELF_CHAIN_ID = 0


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    def __hash__(self):
        return hash(bool(self))


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
DEFAULTS = LOGGER_DEFAULTS
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Avoids exceptions by only calling ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        # ast.literal_eval expects "True"/"False"
        return ast.literal_eval(s.title())
    return v

for key, default_raw in DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    # Parses only boolean-literals. Leaves other values untouched.
    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        # Preserves the original raw string for ConfigString storage.
        namespace[key] = ConfigString(value_raw, default_val)
