"""
statsmodels Linear-Model Engine (default).

Fits each specification with statsmodels' formula interface,
``smf.ols(formula, data).fit()``, and copies the results into a ModelFit.

Usage
-----
    from analysis import get_engine

    engine = get_engine('statsmodels')
    fit = engine.fit(df, spec)
    print(fit.aic, fit.coefficients)
"""
from __future__ import annotations

import time
import warnings

import numpy as np
import pandas as pd
import statsmodels
import statsmodels.formula.api as smf

from ..base import BaseLinearEngine, ModelFit, model_data
from ..factory import register_engine
from ..specifications import spec_to_formula


@register_engine('statsmodels')
class StatsmodelsEngine(BaseLinearEngine):
    """OLS through statsmodels.formula.api.ols."""

    def __init__(self, confidence_level: float = 0.95):
        super().__init__(confidence_level)
        self._version = f"statsmodels {statsmodels.__version__}"

    @property
    def name(self) -> str:
        return 'statsmodels'

    @property
    def version(self) -> str:
        return self._version

    def validate_installation(self) -> tuple[bool, str]:
        return True, f"statsmodels engine ready ({self._version}, pandas {pd.__version__})"

    def fit(self, data: pd.DataFrame, specification: dict) -> ModelFit:
        """
        Fit one specification.

        Raises
        ------
        ValueError
            If columns are missing or there are no residual degrees of freedom
        """
        start_time = time.time()
        subset = model_data(data, specification)
        formula = spec_to_formula(specification)

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            result = smf.ols(formula, data=subset).fit()

        n = int(result.nobs)
        k = int(len(result.params))
        if result.df_resid <= 0:
            raise ValueError(f"Insufficient observations: {n} rows for {k} coefficients")

        conf = result.conf_int(alpha=1 - self.confidence_level)
        aic, bic = self._information_criteria(float(result.llf), k, n)

        return ModelFit(
            specification=specification.get('name', 'unnamed'),
            formula=formula,
            outcome=specification['outcome'],
            predictors=list(specification.get('predictors') or []),
            n_obs=n,
            n_params=k,
            coefficients=result.params.to_dict(),
            std_errors=result.bse.to_dict(),
            t_stats=result.tvalues.to_dict(),
            p_values=result.pvalues.to_dict(),
            ci_lower=conf[0].to_dict(),
            ci_upper=conf[1].to_dict(),
            r_squared=float(result.rsquared),
            adj_r_squared=float(result.rsquared_adj),
            aic=aic,
            bic=bic,
            log_likelihood=float(result.llf),
            sigma=float(np.sqrt(result.scale)),
            warnings=[str(w.message) for w in caught],
            engine=self.name,
            engine_version=self._version,
            execution_time_seconds=time.time() - start_time,
            fitted_values=np.asarray(result.fittedvalues, dtype=float).tolist(),
            residuals=np.asarray(result.resid, dtype=float).tolist(),
        )
