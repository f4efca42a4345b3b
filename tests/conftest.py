#!/usr/bin/env python3
"""
Shared pytest fixtures for the test suite.

This module provides common fixtures used across test modules including:
- Temporary directories and an isolated pipeline workspace
- Small DataFrames for each dataset in its cleaned layout
- Demo datasets run through ingestion
"""
from __future__ import annotations

import sys
from pathlib import Path

# Add src directory to Python path for test imports
_project_root = Path(__file__).parent.parent
_src_path = _project_root / 'src'
if str(_src_path) not in sys.path:
    sys.path.insert(0, str(_src_path))

import matplotlib
matplotlib.use('Agg')

import pytest
import pandas as pd
import numpy as np
import tempfile
import shutil


# ============================================================
# PATH FIXTURES
# ============================================================

@pytest.fixture
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def temp_dir():
    """Create a temporary directory that is cleaned up after tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def workspace(temp_dir, monkeypatch):
    """
    Point every config output path at a temporary directory.

    Stages read paths from config at call time, so this isolates a whole
    pipeline run from the project tree.
    """
    import config

    paths = {
        'root': temp_dir,
        'data_raw': temp_dir / 'data_raw',
        'data_work': temp_dir / 'data_work',
        'diagnostics': temp_dir / 'data_work' / 'diagnostics',
        'quality': temp_dir / 'data_work' / 'quality',
        'figures': temp_dir / 'figures',
        'reports': temp_dir / 'reports',
    }
    for path in paths.values():
        path.mkdir(parents=True, exist_ok=True)

    monkeypatch.setattr(config, 'DATA_RAW_DIR', paths['data_raw'])
    monkeypatch.setattr(config, 'DATA_WORK_DIR', paths['data_work'])
    monkeypatch.setattr(config, 'DIAGNOSTICS_DIR', paths['diagnostics'])
    monkeypatch.setattr(config, 'QA_REPORTS_DIR', paths['quality'])
    monkeypatch.setattr(config, 'FIGURES_DIR', paths['figures'])
    monkeypatch.setattr(config, 'REPORTS_DIR', paths['reports'])
    return paths


# ============================================================
# GENERIC DATA FIXTURES
# ============================================================

@pytest.fixture
def sample_df() -> pd.DataFrame:
    """Sample-level chemistry with one row per sample."""
    rng = np.random.default_rng(7)
    n = 60
    return pd.DataFrame({
        'sample_id': range(1, n + 1),
        'site': np.repeat([f'S{i:02d}' for i in range(1, 11)], 6),
        'ph': rng.normal(7.2, 0.4, n),
        'conductivity': rng.normal(300, 60, n),
        'geology': rng.choice(['carbonate', 'granite', 'urban'], n),
        'sample_date': pd.date_range('2021-01-01', periods=n, freq='W'),
    })


@pytest.fixture
def df_with_missing(sample_df) -> pd.DataFrame:
    """Chemistry samples with lab gaps in conductivity."""
    df = sample_df.copy()
    df.loc[5:9, 'conductivity'] = np.nan
    return df


@pytest.fixture
def df_with_duplicates() -> pd.DataFrame:
    """Repeated survey rows."""
    return pd.DataFrame({
        'site': ['P1', 'P2', 'P2', 'P3', 'P4', 'P4', 'P4', 'P5'],
        'count': [3, 5, 5, 0, 2, 2, 2, 7],
    })


# ============================================================
# DATASET FIXTURES (cleaned layout)
# ============================================================

@pytest.fixture
def stream_df() -> pd.DataFrame:
    """Three well separated groups of sites, two samples each."""
    rng = np.random.default_rng(1)
    centers = {
        'A': (8.0, 500.0, 80.0),
        'B': (6.5, 50.0, 5.0),
        'C': (7.4, 900.0, 60.0),
    }
    rows = []
    for group, (ph, cond, ca) in centers.items():
        for i in range(4):
            for _ in range(2):
                rows.append({
                    'site': f'{group}{i}',
                    'ph': ph + rng.normal(0, 0.05),
                    'conductivity': cond + rng.normal(0, 5),
                    'calcium': ca + rng.normal(0, 1),
                })
    return pd.DataFrame(rows)


@pytest.fixture
def news_df() -> pd.DataFrame:
    """Four articles with clearly positive, negative and neutral text."""
    return pd.DataFrame({
        'article_id': ['a1', 'a2', 'a3', 'a4'],
        'headline': ['Good news for the river', 'Terrible flood', 'Council meeting', 'Happy happy day'],
        'abstract': ['A great and happy result.', 'Bad damage and loss.', 'The council met.', None],
        'lead_paragraph': [None, 'Worst disaster.', 'Agenda items.', 'Good.'],
        'section': ['Science', 'U.S.', 'U.S.', 'Science'],
        'pub_date': pd.to_datetime(['2023-01-05', '2023-01-20', '2023-02-03', '2023-02-14']),
    })


@pytest.fixture
def forest_df() -> pd.DataFrame:
    """Small fire table with a weather signal in burned area."""
    rng = np.random.default_rng(3)
    n = 120
    temp = rng.normal(18, 5, n)
    wind = rng.normal(4, 1.5, n)
    area = np.where(rng.random(n) < 0.5, 0.0, np.expm1(np.clip(0.15 * temp + rng.normal(0, 0.5, n), 0, None)))
    return pd.DataFrame({
        'x': rng.integers(1, 10, n),
        'y': rng.integers(2, 10, n),
        'month': rng.choice(['mar', 'aug', 'sep'], n),
        'day': rng.choice(['mon', 'fri', 'sun'], n),
        'temp': temp,
        'rh': rng.normal(45, 10, n),
        'wind': wind,
        'area': area,
    })


@pytest.fixture
def oxygen_df() -> pd.DataFrame:
    """DO saturation driven by temperature, flow and season."""
    rng = np.random.default_rng(11)
    n = 200
    season = rng.choice(['fall', 'spring', 'summer', 'winter'], n)
    temperature = rng.normal(14, 5, n)
    flow = rng.lognormal(4, 0.5, n)
    nitrate = rng.normal(2, 0.7, n)
    effect = pd.Series(season).map({'fall': 0.0, 'spring': 3.0, 'summer': -2.0, 'winter': 1.0}).values
    do_sat = 100 - 0.9 * temperature + 0.04 * flow + effect + rng.normal(0, 2, n)
    return pd.DataFrame({
        'do_saturation': do_sat,
        'temperature': temperature,
        'flow': flow,
        'conductivity': rng.normal(350, 60, n),
        'ph': rng.normal(7.4, 0.3, n),
        'nitrate': nitrate,
        'turbidity': rng.lognormal(1.5, 0.5, n),
        'season': season,
    })


@pytest.fixture
def amphibian_df() -> pd.DataFrame:
    """Survey counts over three sites and three years."""
    rows = [
        ('P1', 'Western Toad', 2019, 4), ('P1', 'Western Toad', 2021, 6),
        ('P1', 'Rough-skinned Newt', 2019, 2), ('P2', 'Western Toad', 2020, 1),
        ('P2', 'Pacific Chorus Frog', 2020, 10), ('P2', 'Pacific Chorus Frog', 2021, 12),
        ('P3', 'Pacific Chorus Frog', 2019, 5), ('P3', 'Rough-skinned Newt', 2021, 0),
    ]
    df = pd.DataFrame(rows, columns=['site', 'species', 'year', 'count'])
    df['survey_date'] = pd.to_datetime(df['year'].astype(str) + '-05-01')
    return df


@pytest.fixture
def sample_parquet(temp_dir, sample_df) -> Path:
    """Create a sample parquet file."""
    path = temp_dir / 'sample.parquet'
    sample_df.to_parquet(path)
    return path


@pytest.fixture
def sample_csv(temp_dir, sample_df) -> Path:
    """Create a sample CSV file."""
    path = temp_dir / 'sample.csv'
    sample_df.to_csv(path, index=False)
    return path
