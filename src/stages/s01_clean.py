#!/usr/bin/env python3
"""
Stage 01: Missing-Data Cleaning

Purpose: Drop high-missingness columns, then impute or filter remaining gaps.

Cleaning is deliberately simple: a column whose missing fraction exceeds the
threshold is dropped, rows missing a required value are removed, and what is
left is either imputed (median / mode) or filtered (complete cases).

Input Files
-----------
- data_work/{dataset}_raw.parquet

Output Files
------------
- data_work/{dataset}_clean.parquet
- data_work/diagnostics/{dataset}_missingness.csv

Usage
-----
    python src/pipeline.py clean_data --dataset oxygen
    python src/pipeline.py clean_data --dataset news_articles --strategy filter
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

import pandas as pd

from config import (
    DEFAULT_MISSING_STRATEGY,
    MAX_MISSING_FRACTION,
    MISSING_STRATEGIES,
    get_dataset_config,
)
from utils.helpers import get_data_dir, load_data, save_data, save_diagnostic
from stages._qa_utils import qa_for_stage


# ============================================================
# CONFIGURATION
# ============================================================

INPUT_TEMPLATE = '{dataset}_raw.parquet'
OUTPUT_TEMPLATE = '{dataset}_clean.parquet'


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass
class CleaningResult:
    """Cleaned data plus a record of what was removed or filled."""
    data: pd.DataFrame
    dropped_columns: list[str] = field(default_factory=list)
    n_rows_before: int = 0
    n_rows_after: int = 0
    n_imputed: int = 0
    strategy: str = DEFAULT_MISSING_STRATEGY

    @property
    def n_rows_removed(self) -> int:
        return self.n_rows_before - self.n_rows_after

    def to_dict(self) -> dict:
        return {
            'strategy': self.strategy,
            'dropped_columns': ', '.join(self.dropped_columns),
            'n_rows_before': self.n_rows_before,
            'n_rows_after': self.n_rows_after,
            'n_rows_removed': self.n_rows_removed,
            'n_imputed': self.n_imputed,
        }


# ============================================================
# MISSINGNESS
# ============================================================

def missingness_summary(df: pd.DataFrame) -> pd.DataFrame:
    """
    Count missing values per column.

    Returns
    -------
    pd.DataFrame
        Columns: column, n_missing, missing_frac; most-missing first
    """
    n_missing = df.isna().sum()
    summary = pd.DataFrame({
        'column': n_missing.index,
        'n_missing': n_missing.values.astype(int),
        'missing_frac': (n_missing / len(df)).values if len(df) else 0.0,
    })
    return summary.sort_values(['missing_frac', 'column'], ascending=[False, True]).reset_index(drop=True)


def drop_sparse_columns(
    df: pd.DataFrame,
    max_missing_fraction: float,
    keep: Iterable[str] = (),
) -> tuple[pd.DataFrame, list[str]]:
    """
    Drop columns whose missing fraction is strictly above the threshold.

    Parameters
    ----------
    df : pd.DataFrame
        Input data
    max_missing_fraction : float
        Threshold in (0, 1]; a column at exactly the threshold is kept
    keep : iterable of str
        Columns never dropped

    Returns
    -------
    tuple
        (data without sparse columns, list of dropped column names)
    """
    if not 0 < max_missing_fraction <= 1:
        raise ValueError(f"max_missing_fraction must be in (0, 1]: {max_missing_fraction}")
    if len(df) == 0:
        return df, []

    keep = set(keep)
    frac = df.isna().mean()
    dropped = [c for c in df.columns if frac[c] > max_missing_fraction and c not in keep]
    return df.drop(columns=dropped), dropped


def impute_missing(
    df: pd.DataFrame,
    columns: Optional[Iterable[str]] = None,
) -> tuple[pd.DataFrame, int]:
    """
    Fill gaps with the column median (numeric) or mode (everything else).

    Columns with no observed values are left untouched.

    Returns
    -------
    tuple
        (imputed copy, number of cells filled)
    """
    df = df.copy()
    columns = list(columns) if columns is not None else list(df.columns)
    n_imputed = 0

    for col in columns:
        n_missing = int(df[col].isna().sum())
        if n_missing == 0 or n_missing == len(df):
            continue

        if pd.api.types.is_numeric_dtype(df[col]) and not pd.api.types.is_bool_dtype(df[col]):
            fill = df[col].median()
            if pd.api.types.is_integer_dtype(df[col]):
                fill = round(fill)
        else:
            fill = df[col].mode(dropna=True).iloc[0]

        df[col] = df[col].fillna(fill)
        n_imputed += n_missing

    return df, n_imputed


def filter_missing(
    df: pd.DataFrame,
    subset: Optional[Iterable[str]] = None,
) -> tuple[pd.DataFrame, int]:
    """
    Drop rows with a missing value in any of the subset columns.

    Returns
    -------
    tuple
        (filtered data with a fresh index, number of rows removed)
    """
    subset = [c for c in subset if c in df.columns] if subset is not None else None
    n_before = len(df)
    df = df.dropna(subset=subset).reset_index(drop=True)
    return df, n_before - len(df)


def clean_dataset(
    df: pd.DataFrame,
    dataset_config: dict,
    max_missing_fraction: Optional[float] = None,
    strategy: Optional[str] = None,
) -> CleaningResult:
    """
    Apply the full cleaning recipe for one dataset.

    Rows missing a required column are always removed, whatever the strategy.

    Parameters
    ----------
    df : pd.DataFrame
        Ingested data
    dataset_config : dict
        Entry of config.DATASETS
    max_missing_fraction : float, optional
        Column-drop threshold (default: MAX_MISSING_FRACTION)
    strategy : str, optional
        'impute' or 'filter' (default: the dataset's missing_strategy)

    Raises
    ------
    ValueError
        If the strategy is unknown
    """
    max_missing_fraction = MAX_MISSING_FRACTION if max_missing_fraction is None else max_missing_fraction
    strategy = strategy or dataset_config.get('missing_strategy', DEFAULT_MISSING_STRATEGY)
    if strategy not in MISSING_STRATEGIES:
        raise ValueError(f"Unknown missing strategy '{strategy}'. Use one of {MISSING_STRATEGIES}")

    required = list(dataset_config.get('required', []))
    n_before = len(df)

    data, dropped = drop_sparse_columns(df, max_missing_fraction, keep=required)
    data, _ = filter_missing(data, subset=required)

    n_imputed = 0
    if strategy == 'impute':
        data, n_imputed = impute_missing(data)
    else:
        data, _ = filter_missing(data)

    return CleaningResult(
        data=data,
        dropped_columns=dropped,
        n_rows_before=n_before,
        n_rows_after=len(data),
        n_imputed=n_imputed,
        strategy=strategy,
    )


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(dataset: str, strategy: Optional[str] = None) -> CleaningResult:
    """Clean the ingested dataset and write the analysis-ready table."""
    print("=" * 60)
    print(f"Stage 01: Missing-Data Cleaning ({dataset})")
    print("=" * 60)

    ds_config = get_dataset_config(dataset)
    work_dir = get_data_dir('work')
    input_path = work_dir / INPUT_TEMPLATE.format(dataset=dataset)
    output_path = work_dir / OUTPUT_TEMPLATE.format(dataset=dataset)

    if not input_path.exists():
        print(f"ERROR: Input file not found: {input_path}")
        print(f"Run: python src/pipeline.py ingest_data --dataset {dataset}")
        sys.exit(1)

    print(f"\n  Loading: {input_path.name}")
    df = load_data(input_path)
    print(f"    -> {len(df):,} rows, {len(df.columns)} columns")

    summary = missingness_summary(df)
    summary_path = save_diagnostic(summary, f'{dataset}_missingness')
    n_incomplete = int((summary['n_missing'] > 0).sum())
    print(f"  Columns with missing values: {n_incomplete}/{len(summary)}")

    result = clean_dataset(df, ds_config, strategy=strategy)

    if result.dropped_columns:
        print(f"  -> Dropped sparse columns: {', '.join(result.dropped_columns)}")
    if result.strategy == 'impute':
        print(f"  -> Imputed {result.n_imputed:,} cells")
    print(f"  -> Removed {result.n_rows_removed:,} rows")

    if len(result.data) == 0:
        print("\nERROR: No rows left after cleaning. Aborting.")
        sys.exit(1)

    save_data(result.data, output_path)

    print("\n" + "-" * 60)
    print("SUMMARY")
    print("-" * 60)
    print(f"  Strategy: {result.strategy}")
    print(f"  Rows: {result.n_rows_before:,} -> {result.n_rows_after:,}")
    print(f"  Output: {output_path}")
    print(f"  Missingness table: {summary_path}")

    qa_for_stage(
        f's01_clean_{dataset}', result.data,
        additional_metrics={
            'n_rows_removed': result.n_rows_removed,
            'n_imputed': result.n_imputed,
            'n_dropped_columns': len(result.dropped_columns),
        },
        output_file=str(output_path),
    )

    print("\n" + "=" * 60)
    print("Stage 01 complete.")
    print("=" * 60)

    return result


if __name__ == '__main__':
    main(sys.argv[1] if len(sys.argv) > 1 else 'forest_fires')
