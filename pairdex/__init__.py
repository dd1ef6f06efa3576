"""
PairDEX Package

Core imports are lazily loaded to keep package import cheap.
For direct module access, import from submodules:

    from pairdex.exchange import DexStateManager, AssetId
    from pairdex.config import load_config
    from pairdex.exceptions import ExchangeError
"""

# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'DexStateManager':
        from .exchange.state_manager import DexStateManager
        return DexStateManager
    elif name == 'load_config':
        from .config import load_config
        return load_config
    elif name == 'ExchangeError':
        from .exceptions import ExchangeError
        return ExchangeError
    raise AttributeError(f"module 'pairdex' has no attribute {name!r}")

__all__ = ['DexStateManager', 'load_config', 'ExchangeError']
