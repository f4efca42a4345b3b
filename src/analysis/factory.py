"""
Linear-Model Engine Factory and Registry.

Engines register themselves with a decorator; callers ask for one by name or
fall back to ANALYSIS_ENGINE from config.

Usage
-----
    from analysis.factory import get_engine, list_engines, register_engine

    engine = get_engine()            # config default
    engine = get_engine('numpy')     # explicit

    @register_engine('custom')
    class CustomEngine(BaseLinearEngine):
        ...
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional

sys.path.insert(0, str(Path(__file__).parent.parent))

if TYPE_CHECKING:
    from .base import LinearEngine

# Engine registry: name -> engine class
_engine_registry: dict[str, type] = {}


def register_engine(name: str):
    """
    Decorator to register an engine implementation under a name.

    Example
    -------
        @register_engine('numpy')
        class NumpyEngine(BaseLinearEngine):
            ...
    """
    def decorator(cls):
        _engine_registry[name] = cls
        return cls
    return decorator


def get_engine(name: Optional[str] = None, **kwargs) -> 'LinearEngine':
    """
    Get an engine instance.

    Parameters
    ----------
    name : str, optional
        Engine name ('statsmodels', 'numpy'); default ANALYSIS_ENGINE
    **kwargs
        Passed to the engine constructor

    Raises
    ------
    ValueError
        If the engine name is not registered
    """
    _ensure_engines_loaded()

    if name is None:
        from config import ANALYSIS_ENGINE
        name = ANALYSIS_ENGINE

    name = name.lower()
    if name not in _engine_registry:
        available = ', '.join(sorted(_engine_registry.keys()))
        raise ValueError(f"Unknown engine: '{name}'. Available engines: {available}")

    return _engine_registry[name](**kwargs)


def list_engines() -> dict[str, bool]:
    """
    Registered engines and whether each reports itself usable.

    Example
    -------
        >>> list_engines()
        {'numpy': True, 'statsmodels': True}
    """
    _ensure_engines_loaded()
    return {
        name: engine_cls().validate_installation()[0]
        for name, engine_cls in sorted(_engine_registry.items())
    }


def get_engine_info(name: str) -> dict:
    """
    Name, availability, version and status message of an engine.

    Unknown names are reported as unavailable rather than raising.
    """
    _ensure_engines_loaded()

    if name not in _engine_registry:
        return {
            'name': name,
            'available': False,
            'version': 'N/A',
            'message': f"Unknown engine: {name}",
        }

    engine = _engine_registry[name]()
    available, message = engine.validate_installation()
    return {
        'name': name,
        'available': available,
        'version': engine.version if available else 'N/A',
        'message': message,
    }


def _ensure_engines_loaded() -> None:
    """Import engine modules so their decorators run (idempotent)."""
    from . import engines  # noqa: F401
