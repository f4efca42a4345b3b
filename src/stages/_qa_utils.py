#!/usr/bin/env python3
"""
Quality assurance reports for pipeline stages.

Every stage that writes a table also records a handful of data quality
metrics (row counts, missingness, duplicates) as a small CSV under
data_work/quality/, one file per stage run.

Usage
-----
    from stages._qa_utils import qa_for_stage

    qa_for_stage('s01_clean_oxygen', df, additional_metrics={'n_imputed': 12})
"""
from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional, Union

sys.path.insert(0, str(Path(__file__).parent.parent))

import pandas as pd

import config


class QAMetrics:
    """
    Ordered collection of named QA metrics.

    Examples
    --------
    >>> metrics = QAMetrics()
    >>> metrics.add('n_rows', 517).add_pct('missing', 1.234)
    QAMetrics({'n_rows': 517, 'missing_pct': 1.23})
    """

    def __init__(self):
        self._metrics: dict[str, Any] = {}

    def add(self, name: str, value: Any) -> 'QAMetrics':
        self._metrics[name] = value
        return self

    def add_pct(self, name: str, value: float) -> 'QAMetrics':
        """Add a percentage rounded to 2 places, stored as '<name>_pct'."""
        self._metrics[f'{name}_pct'] = round(float(value), 2)
        return self

    def add_count(self, name: str, value: int) -> 'QAMetrics':
        """Add an integer count, stored as '<name>_count'."""
        self._metrics[f'{name}_count'] = int(value)
        return self

    def to_dict(self) -> dict[str, Any]:
        return self._metrics.copy()

    def __len__(self) -> int:
        return len(self._metrics)

    def __repr__(self) -> str:
        return f"QAMetrics({self._metrics})"


def _as_dict(metrics: Union[QAMetrics, dict]) -> dict:
    return metrics.to_dict() if isinstance(metrics, QAMetrics) else dict(metrics)


def compute_dataframe_metrics(
    df: pd.DataFrame,
    key_columns: Optional[Iterable[str]] = None,
) -> QAMetrics:
    """
    Compute standard QA metrics for a DataFrame.

    Parameters
    ----------
    df : pd.DataFrame
        Table written by the stage
    key_columns : iterable of str, optional
        Columns whose individual missing counts are also recorded

    Returns
    -------
    QAMetrics
        Row/column counts, missing cells, duplicate rows and memory use
    """
    metrics = QAMetrics()
    metrics.add('n_rows', len(df))
    metrics.add('n_columns', len(df.columns))
    metrics.add('n_numeric_columns', int(df.select_dtypes('number').shape[1]))

    missing_cells = int(df.isna().sum().sum())
    metrics.add_count('missing_cells', missing_cells)
    metrics.add_pct('missing', missing_cells / df.size * 100 if df.size else 0.0)

    n_duplicates = int(df.duplicated().sum()) if len(df.columns) else 0
    metrics.add_count('duplicate_rows', n_duplicates)
    metrics.add_pct('duplicate', n_duplicates / len(df) * 100 if len(df) else 0.0)

    for col in key_columns or []:
        if col in df.columns:
            metrics.add_count(f'missing_{col}', int(df[col].isna().sum()))

    metrics.add('memory_mb', round(df.memory_usage(deep=True).sum() / (1024 * 1024), 3))
    return metrics


def generate_qa_report(
    stage_name: str,
    metrics: Union[QAMetrics, dict],
    output_dir: Optional[Path] = None,
    include_timestamp: bool = True,
) -> Optional[Path]:
    """
    Write metrics as a long CSV (metric, value, stage, timestamp).

    Returns None when QA reports are disabled in config.
    """
    if not config.ENABLE_QA_REPORTS:
        return None

    output_dir = Path(output_dir or config.QA_REPORTS_DIR)
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    suffix = f'_{timestamp}' if include_timestamp else ''
    report_path = output_dir / f'{stage_name}_quality{suffix}.csv'

    pd.DataFrame([
        {'metric': key, 'value': value, 'stage': stage_name, 'timestamp': timestamp}
        for key, value in _as_dict(metrics).items()
    ]).to_csv(report_path, index=False)

    print(f"QA report saved: {report_path}")
    return report_path


def print_qa_summary(metrics: Union[QAMetrics, dict], stage_name: str = '') -> None:
    """Print metrics one per line under a short header."""
    print(f"\nQA Summary: {stage_name}" if stage_name else "\nQA Summary")
    print("-" * 40)
    for key, value in _as_dict(metrics).items():
        if isinstance(value, float):
            print(f"  {key}: {value:,.2f}")
        elif isinstance(value, int):
            print(f"  {key}: {value:,}")
        else:
            print(f"  {key}: {value}")


def check_thresholds(
    metrics: Union[QAMetrics, dict],
    thresholds: Optional[dict] = None,
) -> list[str]:
    """
    Compare metrics against QA_THRESHOLDS and return warning messages.

    Recognised thresholds: max_missing_pct, min_row_count, max_duplicate_pct.
    """
    thresholds = config.QA_THRESHOLDS if thresholds is None else thresholds
    values = _as_dict(metrics)
    warnings = []

    if 'missing_pct' in values and 'max_missing_pct' in thresholds:
        if values['missing_pct'] > thresholds['max_missing_pct']:
            warnings.append(
                f"Missing values ({values['missing_pct']:.1f}%) exceed "
                f"threshold ({thresholds['max_missing_pct']}%)"
            )

    if 'n_rows' in values and 'min_row_count' in thresholds:
        if values['n_rows'] < thresholds['min_row_count']:
            warnings.append(
                f"Row count ({values['n_rows']}) below "
                f"threshold ({thresholds['min_row_count']})"
            )

    if 'duplicate_pct' in values and 'max_duplicate_pct' in thresholds:
        if values['duplicate_pct'] > thresholds['max_duplicate_pct']:
            warnings.append(
                f"Duplicate rows ({values['duplicate_pct']:.1f}%) exceed "
                f"threshold ({thresholds['max_duplicate_pct']}%)"
            )

    return warnings


def qa_for_stage(
    stage_name: str,
    df: pd.DataFrame,
    additional_metrics: Optional[dict] = None,
    output_file: Optional[str] = None,
    key_columns: Optional[Iterable[str]] = None,
) -> Optional[Path]:
    """
    Compute, check, print and save QA metrics for a stage output.

    Parameters
    ----------
    stage_name : str
        Stage (and dataset) label, e.g. 's00_ingest_forest_fires'
    df : pd.DataFrame
        Output table of the stage
    additional_metrics : dict, optional
        Stage-specific metrics appended after the standard ones
    output_file : str, optional
        Path of the written output, recorded as a metric
    key_columns : iterable of str, optional
        Columns whose missing counts are reported individually

    Returns
    -------
    Path or None
        Path to the QA CSV
    """
    metrics = compute_dataframe_metrics(df, key_columns=key_columns)
    if output_file:
        metrics.add('output_file', str(output_file))
    for key, value in (additional_metrics or {}).items():
        metrics.add(key, value)

    warnings = check_thresholds(metrics)
    if warnings:
        print(f"\nQA Warnings for {stage_name}:")
        for warning in warnings:
            print(f"  WARNING: {warning}")

    print_qa_summary(metrics, stage_name)
    return generate_qa_report(stage_name, metrics)
