"""
Base Protocol and Types for Linear-Model Engines.

Defines the interface every linear-model engine implements and the result
container they all return, so fits from different engines can be compared
side by side (coefficients, R-squared, AIC, BIC).

Usage
-----
    from analysis.base import BaseLinearEngine, ModelFit

    class MyEngine(BaseLinearEngine):
        @property
        def name(self) -> str:
            return 'my_engine'

        def fit(self, data, specification) -> ModelFit:
            ...
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

import numpy as np
import pandas as pd


@dataclass
class ModelFit:
    """
    Engine-independent container for one fitted linear model.

    Attributes
    ----------
    specification : str
        Name of the candidate model
    formula : str
        Model formula ('y ~ a + C(b)')
    outcome : str
        Outcome variable
    predictors : list[str]
        Predictor variables as listed in the specification
    n_obs : int
        Observations used in the fit
    n_params : int
        Number of regression coefficients including the intercept
    coefficients, std_errors, t_stats, p_values, ci_lower, ci_upper : dict
        Per-term estimates keyed by term name ('Intercept', 'temperature',
        'C(season)[T.summer]')
    r_squared, adj_r_squared : float
        Goodness of fit
    aic, bic : float
        Information criteria: -2 logL + 2k and -2 logL + k ln(n), with k the
        number of coefficients and logL the Gaussian log-likelihood at the
        maximum-likelihood error variance
    log_likelihood : float
        Maximised log-likelihood
    sigma : float
        Residual standard error (df-corrected)
    warnings : list[str]
        Notes raised while fitting
    engine, engine_version : str
        Engine that produced the fit
    execution_time_seconds : float
        Wall time of the fit
    fitted_values, residuals : list[float]
        Per-observation values for diagnostic plots (not serialized by default)
    """

    specification: str
    formula: str = ''
    outcome: str = ''
    predictors: list = field(default_factory=list)
    n_obs: int = 0
    n_params: int = 0
    coefficients: dict = field(default_factory=dict)
    std_errors: dict = field(default_factory=dict)
    t_stats: dict = field(default_factory=dict)
    p_values: dict = field(default_factory=dict)
    ci_lower: dict = field(default_factory=dict)
    ci_upper: dict = field(default_factory=dict)
    r_squared: float = 0.0
    adj_r_squared: float = 0.0
    aic: float = float('nan')
    bic: float = float('nan')
    log_likelihood: float = float('nan')
    sigma: float = float('nan')
    warnings: list = field(default_factory=list)
    engine: str = 'unknown'
    engine_version: str = 'unknown'
    execution_time_seconds: float = 0.0
    fitted_values: list = field(default_factory=list, repr=False)
    residuals: list = field(default_factory=list, repr=False)

    def get_coefficient(self, term: str) -> Optional[float]:
        """Get coefficient for a term, or None if not found."""
        return self.coefficients.get(term)

    def get_p_value(self, term: str) -> Optional[float]:
        return self.p_values.get(term)

    def is_significant(self, term: str, level: float = 0.05) -> bool:
        """Check if a coefficient is significant at the given level."""
        p = self.p_values.get(term)
        return p is not None and p < level

    def format_coefficient(self, term: str, decimals: int = 3) -> str:
        """Format coefficient with significance stars and SE."""
        coef = self.coefficients.get(term)
        if coef is None:
            return ''

        p = self.p_values.get(term)
        stars = ''
        if p is not None:
            if p < 0.001:
                stars = '***'
            elif p < 0.01:
                stars = '**'
            elif p < 0.05:
                stars = '*'

        se = self.std_errors.get(term)
        if se is not None:
            return f"{coef:.{decimals}f}{stars} ({se:.{decimals}f})"
        return f"{coef:.{decimals}f}{stars}"

    def summary_row(self) -> dict:
        """One-line summary used in model comparison tables."""
        return {
            'specification': self.specification,
            'formula': self.formula,
            'n_obs': self.n_obs,
            'n_params': self.n_params,
            'r_squared': self.r_squared,
            'adj_r_squared': self.adj_r_squared,
            'log_likelihood': self.log_likelihood,
            'aic': self.aic,
            'bic': self.bic,
            'sigma': self.sigma,
            'engine': self.engine,
        }

    def to_dict(self, include_arrays: bool = False) -> dict:
        """Convert to dictionary for serialization."""
        data = asdict(self)
        if not include_arrays:
            data.pop('fitted_values')
            data.pop('residuals')
        return data

    def to_json(self, path: Path) -> None:
        """Write result to JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2, default=float)

    @classmethod
    def from_json(cls, path: Path) -> 'ModelFit':
        """Load result from JSON file."""
        with open(path) as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> 'ModelFit':
        """Create from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@runtime_checkable
class LinearEngine(Protocol):
    """
    Protocol for linear-model engines.

    Methods
    -------
    validate_installation()
        Check the engine's libraries are importable.
    fit(data, specification)
        Fit one candidate model.
    fit_batch(data, specifications)
        Fit several candidates, skipping ones that fail.
    """

    @property
    def name(self) -> str:
        ...

    @property
    def version(self) -> str:
        ...

    def validate_installation(self) -> tuple[bool, str]:
        ...

    def fit(self, data: pd.DataFrame, specification: dict) -> ModelFit:
        """
        Fit a single specification.

        Parameters
        ----------
        data : pd.DataFrame
            Observations
        specification : dict
            Keys: name, outcome, predictors, categorical (optional)
        """
        ...

    def fit_batch(self, data: pd.DataFrame, specifications: list[dict]) -> list[ModelFit]:
        ...


def model_data(data: pd.DataFrame, specification: dict) -> pd.DataFrame:
    """
    Complete cases of the columns a specification uses.

    Raises
    ------
    ValueError
        If a column is missing or no complete rows remain
    """
    columns = [specification['outcome']] + list(specification.get('predictors') or [])
    missing = [c for c in columns if c not in data.columns]
    if missing:
        raise ValueError(f"Columns not found for '{specification.get('name', 'unnamed')}': {missing}")

    subset = data[columns].dropna()
    if len(subset) == 0:
        raise ValueError("No valid observations after filtering for missing values")
    return subset


class BaseLinearEngine:
    """
    Shared behaviour for linear-model engines.

    Concrete engines implement name, version, validate_installation and fit.
    """

    def __init__(self, confidence_level: float = 0.95):
        self.confidence_level = confidence_level

    @property
    def name(self) -> str:
        raise NotImplementedError

    @property
    def version(self) -> str:
        raise NotImplementedError

    def validate_installation(self) -> tuple[bool, str]:
        raise NotImplementedError

    def fit(self, data: pd.DataFrame, specification: dict) -> ModelFit:
        raise NotImplementedError

    def fit_batch(self, data: pd.DataFrame, specifications: list[dict]) -> list[ModelFit]:
        """
        Fit specifications one after another.

        A specification that cannot be fitted (missing column, too few rows,
        singular design) is reported and skipped.
        """
        results = []
        for spec in specifications:
            try:
                results.append(self.fit(data, spec))
            except (ValueError, KeyError, np.linalg.LinAlgError) as e:
                print(f"  ERROR in {spec.get('name', 'unknown')}: {e}")
        return results

    @staticmethod
    def _information_criteria(log_likelihood: float, n_params: int, n_obs: int) -> tuple[float, float]:
        """(AIC, BIC) with k counted as the number of coefficients."""
        aic = -2.0 * log_likelihood + 2.0 * n_params
        bic = -2.0 * log_likelihood + np.log(n_obs) * n_params
        return float(aic), float(bic)
