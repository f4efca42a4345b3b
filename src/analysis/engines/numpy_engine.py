"""
NumPy Linear-Model Engine.

Ordinary least squares from the normal equations, beta = (X'X)^-1 X'y, with
classical standard errors and t-based p-values and confidence intervals.
Categorical predictors are dummy coded against their first (sorted) level and
terms are named the way patsy names them, so fits line up term by term with
the statsmodels engine.

Usage
-----
    from analysis import get_engine

    engine = get_engine('numpy')
    fit = engine.fit(df, {'name': 'physical', 'outcome': 'do_saturation',
                          'predictors': ['temperature', 'flow']})
"""
from __future__ import annotations

import time

import numpy as np
import scipy
import pandas as pd
from scipy import stats

from ..base import BaseLinearEngine, ModelFit, model_data
from ..factory import register_engine
from ..specifications import spec_to_formula


def design_matrix(data: pd.DataFrame, specification: dict) -> tuple[np.ndarray, list[str]]:
    """
    Intercept plus one column per numeric predictor and per non-reference level.

    Predictors listed as categorical are named 'C(var)[T.level]'; other
    non-numeric predictors 'var[T.level]'.

    Returns
    -------
    tuple
        (design matrix, term names)
    """
    categorical = set(specification.get('categorical') or [])
    columns = [np.ones(len(data))]
    names = ['Intercept']

    for var in specification.get('predictors') or []:
        values = data[var]
        explicit = var in categorical
        if explicit or not pd.api.types.is_numeric_dtype(values):
            label = f"C({var})" if explicit else var
            levels = sorted(values.unique())
            for level in levels[1:]:
                columns.append((values == level).to_numpy(dtype=float))
                names.append(f"{label}[T.{level}]")
        else:
            columns.append(values.to_numpy(dtype=float))
            names.append(var)

    return np.column_stack(columns), names


@register_engine('numpy')
class NumpyEngine(BaseLinearEngine):
    """OLS via the normal equations on NumPy arrays."""

    def __init__(self, confidence_level: float = 0.95):
        super().__init__(confidence_level)
        self._version = f"numpy {np.__version__}"

    @property
    def name(self) -> str:
        return 'numpy'

    @property
    def version(self) -> str:
        return self._version

    def validate_installation(self) -> tuple[bool, str]:
        return True, f"NumPy engine ready (numpy {np.__version__}, scipy {scipy.__version__})"

    def fit(self, data: pd.DataFrame, specification: dict) -> ModelFit:
        """
        Fit one specification by OLS.

        Raises
        ------
        ValueError
            If columns are missing or there are no residual degrees of freedom
        """
        start_time = time.time()
        warnings = []

        subset = model_data(data, specification)
        X, names = design_matrix(subset, specification)
        y = subset[specification['outcome']].to_numpy(dtype=float)

        n, k = X.shape
        dof = n - k
        if dof <= 0:
            raise ValueError(f"Insufficient observations: {n} rows for {k} coefficients")

        XtX = X.T @ X
        try:
            XtX_inv = np.linalg.inv(XtX)
        except np.linalg.LinAlgError:
            XtX_inv = np.linalg.pinv(XtX)
            warnings.append("Singular design matrix; used pseudo-inverse")

        beta = XtX_inv @ X.T @ y
        fitted = X @ beta
        resid = y - fitted

        ssr = float(resid @ resid)
        centered_tss = float(np.sum((y - y.mean()) ** 2))
        r_squared = 1.0 - ssr / centered_tss if centered_tss > 0 else 0.0
        adj_r_squared = 1.0 - (1.0 - r_squared) * (n - 1) / dof

        s2 = ssr / dof
        se = np.sqrt(np.diag(s2 * XtX_inv))
        with np.errstate(divide='ignore', invalid='ignore'):
            t_values = beta / se
        p_values = 2 * stats.t.sf(np.abs(t_values), dof)
        t_crit = stats.t.ppf(1 - (1 - self.confidence_level) / 2, dof)

        log_likelihood = -0.5 * n * (np.log(2 * np.pi) + np.log(ssr / n) + 1)
        aic, bic = self._information_criteria(log_likelihood, k, n)

        return ModelFit(
            specification=specification.get('name', 'unnamed'),
            formula=spec_to_formula(specification),
            outcome=specification['outcome'],
            predictors=list(specification.get('predictors') or []),
            n_obs=n,
            n_params=k,
            coefficients=dict(zip(names, beta.tolist())),
            std_errors=dict(zip(names, se.tolist())),
            t_stats=dict(zip(names, t_values.tolist())),
            p_values=dict(zip(names, p_values.tolist())),
            ci_lower=dict(zip(names, (beta - t_crit * se).tolist())),
            ci_upper=dict(zip(names, (beta + t_crit * se).tolist())),
            r_squared=float(r_squared),
            adj_r_squared=float(adj_r_squared),
            aic=aic,
            bic=bic,
            log_likelihood=float(log_likelihood),
            sigma=float(np.sqrt(s2)),
            warnings=warnings,
            engine=self.name,
            engine_version=self._version,
            execution_time_seconds=time.time() - start_time,
            fitted_values=fitted.tolist(),
            residuals=resid.tolist(),
        )
