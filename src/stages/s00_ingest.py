#!/usr/bin/env python3
"""
Stage 00: Data Ingestion

Purpose: Load a raw dataset, map its headers onto canonical names and coerce types.

This stage handles:
- Loading raw exports for one dataset (CSV, Excel, Parquet, JSON)
- Normalizing headers and applying the dataset's rename map
- Type conversion from the dataset's dtype map
- Basic validation checks
- Output to standardized parquet format

Input Files
-----------
- data_raw/<dataset patterns from config.DATASETS>
- OR synthetic data if no raw data exists

Output Files
------------
- data_work/{dataset}_raw.parquet

Usage
-----
    python src/pipeline.py ingest_data --dataset forest_fires
    python src/pipeline.py ingest_data --dataset oxygen --demo
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Union
import sys

# Add parent directory for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pandas as pd

from config import RANDOM_STATE, get_dataset_config
from utils.helpers import (
    get_data_dir,
    load_data,
    save_data,
    ensure_dir,
    normalize_column_name,
)
from utils.validation import (
    DataValidator,
    required_columns,
    row_count,
)
from stages._qa_utils import qa_for_stage


# ============================================================
# CONFIGURATION
# ============================================================

# Default input patterns when a dataset lists none
INPUT_PATTERNS = ['*.csv', '*.parquet', '*.xlsx']

# Output file name template
OUTPUT_TEMPLATE = '{dataset}_raw.parquet'

NUMERIC_PREFIXES = ('int', 'float', 'Int', 'Float')


# ============================================================
# DATA LOADING
# ============================================================

def find_input_files(
    raw_dir: Path,
    patterns: list[str] = None
) -> list[Path]:
    """
    Find all input files matching specified patterns.

    Parameters
    ----------
    raw_dir : Path
        Directory to search
    patterns : list, optional
        Glob patterns to match

    Returns
    -------
    list[Path]
        Sorted matching files, each listed once
    """
    patterns = patterns or INPUT_PATTERNS
    files = set()
    for pattern in patterns:
        files.update(Path(raw_dir).glob(pattern))
    return sorted(files)


def load_all_sources(
    files: list[Path],
    concat: bool = True
) -> Union[pd.DataFrame, dict[str, pd.DataFrame]]:
    """
    Load data from multiple source files.

    Read errors propagate to the caller.

    Parameters
    ----------
    files : list[Path]
        Files to load
    concat : bool
        If True, concatenate all files into single DataFrame

    Returns
    -------
    DataFrame or dict
        Loaded data
    """
    dataframes = {}

    for path in files:
        print(f"  Loading: {path.name}")
        df = load_data(path)
        dataframes[path.stem] = df
        print(f"    -> {len(df):,} rows, {len(df.columns)} columns")

    if concat and dataframes:
        return pd.concat(dataframes.values(), ignore_index=True)
    return dataframes


def generate_demo_data(dataset: str) -> pd.DataFrame:
    """
    Generate a synthetic version of a raw dataset.

    Parameters
    ----------
    dataset : str
        Dataset name (key of config.DATASETS)

    Returns
    -------
    pd.DataFrame
        Synthetic data with raw header spellings
    """
    print(f"  Generating synthetic demo data for {dataset}...")

    from utils.synthetic_data import SyntheticDataGenerator

    gen = SyntheticDataGenerator(seed=RANDOM_STATE)
    df = gen.generate(dataset)

    print(f"    -> Generated {len(df):,} rows")
    return df


# ============================================================
# DATA CLEANING
# ============================================================

def rename_columns(
    df: pd.DataFrame,
    rename_map: Optional[dict] = None
) -> pd.DataFrame:
    """
    Normalize headers and map them onto canonical names.

    Headers are stripped, lower-cased and non-alphanumeric runs replaced by
    underscores ('Ca (mg/L)' -> 'ca_mg_l') before the rename map is applied.

    Parameters
    ----------
    df : pd.DataFrame
        Raw data
    rename_map : dict, optional
        Normalized header -> canonical name

    Returns
    -------
    pd.DataFrame
        Data with canonical column names
    """
    df = df.rename(columns=normalize_column_name)
    if rename_map:
        df = df.rename(columns=rename_map)
    return df


def clean_data(
    df: pd.DataFrame,
    drop_duplicates: bool = True,
    reset_index: bool = True
) -> pd.DataFrame:
    """
    Apply basic data cleaning operations.

    Parameters
    ----------
    df : pd.DataFrame
        Input DataFrame
    drop_duplicates : bool
        Whether to drop duplicate rows
    reset_index : bool
        Whether to reset the index

    Returns
    -------
    pd.DataFrame
        Cleaned DataFrame
    """
    print("  Cleaning data...")
    n_original = len(df)

    # Drop completely empty rows
    df = df.dropna(how='all')
    n_after_empty = len(df)
    if n_after_empty < n_original:
        print(f"    Dropped {n_original - n_after_empty} empty rows")

    if drop_duplicates:
        df = df.drop_duplicates()
        n_after_dups = len(df)
        if n_after_dups < n_after_empty:
            print(f"    Dropped {n_after_empty - n_after_dups} duplicate rows")

    if reset_index:
        df = df.reset_index(drop=True)

    return df


def convert_types(
    df: pd.DataFrame,
    type_map: Optional[dict] = None
) -> pd.DataFrame:
    """
    Convert column types according to a dtype map.

    Datetimes are parsed with pd.to_datetime (unparseable -> NaT, time zones
    dropped after conversion to UTC), numeric types go through
    pd.to_numeric(errors='coerce') and strings keep missing values missing.
    A cast that fails leaves the column as it was and prints a warning.

    Parameters
    ----------
    df : pd.DataFrame
        Input DataFrame
    type_map : dict, optional
        Mapping of column names to types

    Returns
    -------
    pd.DataFrame
        DataFrame with converted types
    """
    df = df.copy()

    for col, dtype in (type_map or {}).items():
        if col not in df.columns:
            continue
        try:
            if str(dtype).startswith('datetime'):
                df[col] = pd.to_datetime(df[col], errors='coerce', utc=True).dt.tz_localize(None)
            elif str(dtype).startswith(NUMERIC_PREFIXES):
                df[col] = pd.to_numeric(df[col], errors='coerce').astype(dtype)
            elif dtype == 'str':
                df[col] = df[col].where(df[col].isna(), df[col].astype(str))
            else:
                df[col] = df[col].astype(dtype)
        except (ValueError, TypeError) as e:
            print(f"  Warning: Could not convert {col} to {dtype}: {e}")

    return df


def derive_columns(df: pd.DataFrame, dataset: str) -> pd.DataFrame:
    """Add columns computed from others (survey year for amphibian counts)."""
    if dataset == 'amphibian_surveys' and 'year' not in df.columns and 'survey_date' in df.columns:
        df = df.copy()
        df['year'] = pd.to_datetime(df['survey_date']).dt.year.astype('Int64')
    return df


# ============================================================
# VALIDATION
# ============================================================

def validate_input(df: pd.DataFrame, required: Optional[list[str]] = None) -> bool:
    """
    Validate input data meets requirements.

    Parameters
    ----------
    df : pd.DataFrame
        Data to validate
    required : list[str], optional
        Columns that must be present

    Returns
    -------
    bool
        True if validation passes
    """
    print("  Validating data...")

    validator = DataValidator()
    validator.add_rule(row_count(min_rows=1))
    if required:
        validator.add_rule(required_columns(required))

    report = validator.validate(df)

    if report.has_errors:
        print(report.format())
        return False

    print(f"    All validations passed ({report.passed}/{len(report.results)})")
    return True


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def ingest_dataset(dataset: str, use_demo: bool = False) -> pd.DataFrame:
    """Load (or generate), rename, clean and type one dataset without saving."""
    ds_config = get_dataset_config(dataset)
    raw_dir = get_data_dir('raw')

    input_files = [] if use_demo else find_input_files(raw_dir, ds_config.get('files'))

    if use_demo or not input_files:
        if not use_demo:
            print(f"\n  No raw files for {dataset} found in {raw_dir}")
        df = generate_demo_data(dataset)
    else:
        print(f"\n  Found {len(input_files)} input file(s)")
        df = load_all_sources(input_files)

    df = rename_columns(df, ds_config.get('rename'))
    df = clean_data(df)
    df = convert_types(df, ds_config.get('types'))
    return derive_columns(df, dataset)


def main(
    dataset: str,
    use_demo: bool = False,
    validate: bool = True,
    verbose: bool = True
) -> pd.DataFrame:
    """
    Execute data ingestion for one dataset.

    Parameters
    ----------
    dataset : str
        Dataset name (key of config.DATASETS)
    use_demo : bool
        Force use of synthetic demo data
    validate : bool
        Run validation checks
    verbose : bool
        Print detailed output
    """
    print("=" * 60)
    print(f"Stage 00: Data Ingestion ({dataset})")
    print("=" * 60)

    ds_config = get_dataset_config(dataset)
    work_dir = ensure_dir(get_data_dir('work'))
    output_path = work_dir / OUTPUT_TEMPLATE.format(dataset=dataset)

    df = ingest_dataset(dataset, use_demo=use_demo)

    if validate:
        if not validate_input(df, ds_config.get('required')):
            print("\nERROR: Validation failed. Aborting.")
            sys.exit(1)

    print(f"\n  Saving to: {output_path}")
    save_data(df, output_path)

    # Summary
    print("\n" + "-" * 60)
    print("SUMMARY")
    print("-" * 60)
    print(f"  Dataset: {dataset}")
    print(f"  Rows: {len(df):,}")
    print(f"  Columns: {len(df.columns)}")
    print(f"  Output: {output_path}")

    if verbose:
        print("\n  Columns:")
        for col in df.columns:
            print(f"    - {col}: {df[col].dtype}")

    qa_for_stage(
        f's00_ingest_{dataset}', df,
        output_file=str(output_path),
        key_columns=ds_config.get('required'),
    )

    print("\n" + "=" * 60)
    print("Stage 00 complete.")
    print("=" * 60)

    return df


if __name__ == '__main__':
    main(sys.argv[1] if len(sys.argv) > 1 else 'forest_fires')
