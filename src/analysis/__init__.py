"""
Linear-model engines for the oxygen model-selection analysis.

Candidate models are described by specifications (outcome, predictors,
categorical predictors) and fitted by interchangeable engines that all
return a ModelFit.

Usage
-----
    from analysis import get_engine, list_engines, load_specifications

    engine = get_engine()                 # ANALYSIS_ENGINE from config
    engine = get_engine('numpy')

    engines = list_engines()
    # {'numpy': True, 'statsmodels': True}

    specs = load_specifications()
    fits = engine.fit_batch(df, [dict(spec, name=name) for name, spec in specs.items()])
"""
from __future__ import annotations

from .base import LinearEngine, BaseLinearEngine, ModelFit, model_data
from .factory import get_engine, get_engine_info, list_engines, register_engine
from .specifications import (
    create_specification,
    get_specification,
    list_specifications,
    load_specifications,
    spec_to_formula,
    validate_specification,
)

__all__ = [
    # Base classes and types
    'LinearEngine',
    'BaseLinearEngine',
    'ModelFit',
    'model_data',
    # Factory functions
    'get_engine',
    'get_engine_info',
    'list_engines',
    'register_engine',
    # Specification utilities
    'create_specification',
    'get_specification',
    'list_specifications',
    'load_specifications',
    'spec_to_formula',
    'validate_specification',
]
