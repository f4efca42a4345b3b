"""
Linear-Model Engine Implementations.

Available Engines
-----------------
- statsmodels: formula-based OLS (default)
- numpy: normal-equations OLS on NumPy arrays

Engines are registered via the @register_engine decorator when this
package is imported.
"""
from __future__ import annotations

from . import numpy_engine
from . import statsmodels_engine
