#!/usr/bin/env python3
"""
Tests for src/utils/synthetic_data.py
"""
from __future__ import annotations

from pathlib import Path
import sys

import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent / 'src'))

from utils.synthetic_data import SyntheticDataGenerator


class TestSyntheticDataGenerator:

    def test_same_seed_same_data(self):
        a = SyntheticDataGenerator(seed=5).generate('oxygen')
        b = SyntheticDataGenerator(seed=5).generate('oxygen')
        pd.testing.assert_frame_equal(a, b)

    def test_unknown_dataset(self):
        with pytest.raises(ValueError, match='No demo generator'):
            SyntheticDataGenerator().generate('rainfall')

    def test_stream_chemistry_layout(self):
        df = SyntheticDataGenerator().stream_chemistry(n_sites=8, n_samples=3)
        assert len(df) == 24
        assert df['Site ID'].nunique() == 8
        assert {'pH', 'Ca (mg/L)', 'Field Notes'} <= set(df.columns)
        # Field notes are mostly empty and get dropped during cleaning
        assert df['Field Notes'].isna().mean() > 0.5

    def test_news_articles_layout(self):
        df = SyntheticDataGenerator().news_articles(n_articles=20)
        assert len(df) == 20
        assert df['_id'].is_unique
        assert df['pub_date'].str.endswith('+0000').all()

    def test_forest_fires_layout(self):
        df = SyntheticDataGenerator().forest_fires(n_fires=200)
        assert list(df.columns[:4]) == ['X', 'Y', 'month', 'day']
        assert (df['area'] >= 0).all()
        assert (df['area'] == 0).any()

    def test_oxygen_layout(self):
        df = SyntheticDataGenerator().oxygen(n_obs=100)
        assert set(df['Season']) <= {'winter', 'spring', 'summer', 'fall'}
        assert 'DO (% sat)' in df.columns

    def test_amphibian_layout(self):
        df = SyntheticDataGenerator().amphibian_surveys(n_sites=3, years=(2018, 2019), surveys_per_year=2)
        assert set(df['Site Code']) <= {'POND-01', 'POND-02', 'POND-03'}
        assert (df['Number Observed'] >= 0).all()
        years = pd.to_datetime(df['Survey Date']).dt.year
        assert set(years) <= {2018, 2019}
