"""Tests for analysis.base module."""
from __future__ import annotations

import math
import tempfile
from pathlib import Path

import numpy as np
import pandas as pd
import pytest


class TestModelFit:
    """Tests for the ModelFit dataclass."""

    def test_basic_creation(self):
        """Test creating a basic ModelFit."""
        from analysis.base import ModelFit

        fit = ModelFit(
            specification='temperature',
            formula='do_saturation ~ temperature',
            n_obs=200,
            n_params=2,
            coefficients={'Intercept': 100.0, 'temperature': -0.9},
            aic=850.0,
            engine='numpy',
        )

        assert fit.specification == 'temperature'
        assert fit.n_params == 2
        assert fit.coefficients['temperature'] == -0.9
        assert fit.engine == 'numpy'

    def test_defaults(self):
        from analysis.base import ModelFit

        fit = ModelFit(specification='empty')
        assert math.isnan(fit.aic)
        assert fit.warnings == []

    def test_get_coefficient(self):
        """Test coefficient accessor."""
        from analysis.base import ModelFit

        fit = ModelFit(specification='test', coefficients={'Intercept': 1.0, 'flow': 0.04})

        assert fit.get_coefficient('flow') == 0.04
        assert fit.get_coefficient('missing') is None

    def test_is_significant(self):
        """Test significance checking."""
        from analysis.base import ModelFit

        fit = ModelFit(
            specification='test',
            p_values={'temperature': 0.01, 'ph': 0.08, 'nitrate': 0.5},
        )

        assert fit.is_significant('temperature', level=0.05)
        assert not fit.is_significant('nitrate', level=0.05)
        assert fit.is_significant('ph', level=0.10)
        assert not fit.is_significant('missing')

    def test_format_coefficient(self):
        """Test coefficient formatting with stars."""
        from analysis.base import ModelFit

        fit = ModelFit(
            specification='test',
            coefficients={'temperature': -0.912345},
            std_errors={'temperature': 0.05},
            p_values={'temperature': 0.0001},
        )

        formatted = fit.format_coefficient('temperature', decimals=3)
        assert formatted == '-0.912*** (0.050)'
        assert fit.format_coefficient('absent') == ''

    def test_summary_row(self):
        from analysis.base import ModelFit

        row = ModelFit(specification='full', n_obs=50, n_params=9, aic=1.0, bic=2.0).summary_row()
        assert row['specification'] == 'full'
        assert row['n_params'] == 9
        assert 'coefficients' not in row

    def test_to_dict_drops_arrays(self):
        """Test conversion to dictionary."""
        from analysis.base import ModelFit

        fit = ModelFit(specification='test', fitted_values=[1.0, 2.0], residuals=[0.1, -0.1])

        assert 'fitted_values' not in fit.to_dict()
        assert fit.to_dict(include_arrays=True)['residuals'] == [0.1, -0.1]

    def test_json_serialization(self):
        """Test JSON serialization round-trip."""
        from analysis.base import ModelFit

        fit = ModelFit(
            specification='seasonal',
            n_obs=100,
            coefficients={'C(season)[T.summer]': -2.0},
            aic=412.5,
            engine='statsmodels',
        )

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / 'fit.json'
            fit.to_json(path)

            loaded = ModelFit.from_json(path)

            assert loaded.specification == fit.specification
            assert loaded.aic == fit.aic
            assert loaded.coefficients == fit.coefficients

    def test_from_dict_ignores_unknown_keys(self):
        from analysis.base import ModelFit

        fit = ModelFit.from_dict({'specification': 'x', 'n_obs': 3, 'legacy_field': True})
        assert fit.n_obs == 3


class TestModelData:

    def test_complete_cases(self):
        from analysis.base import model_data

        df = pd.DataFrame({'y': [1.0, 2.0, np.nan], 'x': [1.0, np.nan, 3.0], 'z': [np.nan] * 3})
        subset = model_data(df, {'outcome': 'y', 'predictors': ['x']})
        assert list(subset.columns) == ['y', 'x']
        assert len(subset) == 1

    def test_missing_column(self):
        from analysis.base import model_data

        with pytest.raises(ValueError, match="Columns not found for 'demo'"):
            model_data(pd.DataFrame({'y': [1.0]}), {'name': 'demo', 'outcome': 'y', 'predictors': ['x']})

    def test_no_rows_left(self):
        from analysis.base import model_data

        df = pd.DataFrame({'y': [np.nan], 'x': [1.0]})
        with pytest.raises(ValueError, match='No valid observations'):
            model_data(df, {'outcome': 'y', 'predictors': ['x']})


class TestInformationCriteria:

    def test_formulas(self):
        from analysis.base import BaseLinearEngine

        aic, bic = BaseLinearEngine._information_criteria(-100.0, 3, 50)
        assert aic == pytest.approx(206.0)
        assert bic == pytest.approx(200.0 + 3 * np.log(50))


class TestLinearEngineProtocol:
    """Tests for the LinearEngine protocol."""

    @pytest.mark.parametrize('name', ['numpy', 'statsmodels'])
    def test_protocol_isinstance(self, name):
        """Test that engines satisfy the Protocol."""
        from analysis.base import LinearEngine
        from analysis.factory import get_engine

        assert isinstance(get_engine(name), LinearEngine)

    def test_base_methods_not_implemented(self):
        from analysis.base import BaseLinearEngine

        engine = BaseLinearEngine()
        with pytest.raises(NotImplementedError):
            engine.fit(pd.DataFrame(), {})
        with pytest.raises(NotImplementedError):
            _ = engine.name
