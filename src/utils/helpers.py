#!/usr/bin/env python3
"""
Common utility functions for the analysis pipelines.

This module provides shared helper functions used across multiple stages.
"""
from __future__ import annotations

from pathlib import Path
from typing import Union
import re

import pandas as pd


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_project_root() -> Path:
    """Get the project root directory."""
    # Walk up from this file to find the project root
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'src').exists() and (parent / 'specifications.yml').exists():
            return parent
    raise RuntimeError("Could not find project root")


def get_data_dir(subdir: str = 'work') -> Path:
    """Get a data directory ('raw', 'work', 'diagnostics')."""
    from config import get_data_dir as _get_data_dir
    return _get_data_dir(subdir)


def get_figures_dir() -> Path:
    """Get the figures output directory."""
    from config import FIGURES_DIR
    return FIGURES_DIR


def get_reports_dir() -> Path:
    """Get the HTML reports output directory."""
    from config import REPORTS_DIR
    return REPORTS_DIR


# ============================================================
# FILE I/O
# ============================================================

def load_data(path: Union[str, Path], **kwargs) -> pd.DataFrame:
    """
    Load a tabular file, choosing the reader from the file suffix.

    Parameters
    ----------
    path : str or Path
        File to load (.csv, .parquet, .xlsx, .xls, .json)
    **kwargs
        Passed through to the pandas reader

    Returns
    -------
    pd.DataFrame
        Loaded data

    Raises
    ------
    FileNotFoundError
        If the file does not exist
    ValueError
        If the suffix is not supported
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == '.csv':
        return pd.read_csv(path, **kwargs)
    elif suffix == '.parquet':
        return pd.read_parquet(path, **kwargs)
    elif suffix in ('.xlsx', '.xls'):
        return pd.read_excel(path, **kwargs)
    elif suffix == '.json':
        return pd.read_json(path, **kwargs)

    raise ValueError(f"Unsupported file type: {suffix} ({path.name})")


def save_data(df: pd.DataFrame, path: Union[str, Path]) -> Path:
    """Save a DataFrame as Parquet or CSV depending on the suffix."""
    path = Path(path)
    ensure_dir(path.parent)

    suffix = path.suffix.lower()
    if suffix == '.parquet':
        df.to_parquet(path, index=False)
    elif suffix == '.csv':
        df.to_csv(path, index=False)
    else:
        raise ValueError(f"Unsupported output type: {suffix} ({path.name})")
    return path


def save_diagnostic(df: pd.DataFrame, name: str, index: bool = False) -> Path:
    """Save a diagnostic table to data_work/diagnostics/<name>.csv."""
    diag_dir = ensure_dir(get_data_dir('diagnostics'))
    path = diag_dir / f'{name}.csv'
    df.to_csv(path, index=index)
    return path


def load_diagnostic(name: str) -> pd.DataFrame:
    """
    Load a diagnostic CSV by name (without .csv extension).

    Raises
    ------
    FileNotFoundError
        If the diagnostic has not been produced yet
    """
    path = get_data_dir('diagnostics') / f'{name}.csv'
    if not path.exists():
        raise FileNotFoundError(f"Diagnostic file not found: {path}")
    return pd.read_csv(path)


# ============================================================
# FORMATTING
# ============================================================

def normalize_column_name(name) -> str:
    """Lower-case a header and collapse non-alphanumerics to underscores."""
    text = str(name).strip().lower()
    text = re.sub(r'[^0-9a-z]+', '_', text)
    return text.strip('_')


def format_pvalue(p: float, threshold: float = 0.001) -> str:
    """Format p-value for display."""
    if p < threshold:
        return f"<{threshold}"
    return f"{p:.3f}"


def format_ci(lo: float, hi: float, decimals: int = 3) -> str:
    """Format confidence interval as [lo, hi]."""
    return f"[{lo:.{decimals}f}, {hi:.{decimals}f}]"


def add_significance_stars(p: float) -> str:
    """Add significance stars based on p-value."""
    if p < 0.001:
        return "***"
    elif p < 0.01:
        return "**"
    elif p < 0.05:
        return "*"
    return ""
