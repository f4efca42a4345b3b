#!/usr/bin/env python3
"""
Stage 06: Amphibian Survey Counts

Purpose: Summarise amphibian survey counts by species, site and year with plots.

Input Files
-----------
- data_work/amphibian_surveys_clean.parquet

Output Files
------------
- data_work/diagnostics/amphibian_species_totals.csv
- data_work/diagnostics/amphibian_yearly_counts.csv
- data_work/diagnostics/amphibian_site_species.csv
- data_work/diagnostics/amphibian_richness.csv
- figures/fig_amphibian_species.png
- figures/fig_amphibian_trends.png
- figures/fig_amphibian_heatmap.png

Usage
-----
    python src/pipeline.py plot_amphibians
    python src/pipeline.py plot_amphibians --top-n 4
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from config import AMPHIBIAN_TOP_N_SPECIES
from utils.helpers import get_data_dir, get_figures_dir, load_data, save_diagnostic
from utils.figure_style import apply_style, get_color_palette, save_figure
from utils.validation import DataValidator, positive_values, required_columns, row_count
from stages._qa_utils import qa_for_stage


# ============================================================
# CONFIGURATION
# ============================================================

INPUT_FILE = 'amphibian_surveys_clean.parquet'

REQUIRED = ['site', 'species', 'count']


def _survey_key(df: pd.DataFrame) -> list[str]:
    """Columns identifying one survey visit."""
    return ['site', 'survey_date'] if 'survey_date' in df.columns else ['site', 'year']


# ============================================================
# AGGREGATION
# ============================================================

def species_totals(df: pd.DataFrame) -> pd.DataFrame:
    """
    Total count, number of surveys and number of sites per species.

    Returns
    -------
    pd.DataFrame
        Columns: species, total, n_surveys, n_sites; largest total first
    """
    key = _survey_key(df)
    visits = df[key].astype(str).agg('|'.join, axis=1)
    totals = (df.assign(_visit=visits)
        .groupby('species')
        .agg(total=('count', 'sum'), n_surveys=('_visit', 'nunique'), n_sites=('site', 'nunique'))
        .reset_index())
    return totals.sort_values(['total', 'species'], ascending=[False, True]).reset_index(drop=True)


def top_species(df: pd.DataFrame, n: int = AMPHIBIAN_TOP_N_SPECIES) -> list[str]:
    """Names of the n most counted species."""
    return species_totals(df)['species'].head(n).tolist()


def yearly_counts(df: pd.DataFrame, species: Optional[list[str]] = None) -> pd.DataFrame:
    """
    Year x species totals with 0 for species not seen in a year.

    Parameters
    ----------
    species : list[str], optional
        Restrict to these species (columns kept in this order)
    """
    if 'year' not in df.columns:
        raise ValueError("Yearly counts need a 'year' column")

    data = df if species is None else df[df['species'].isin(species)]
    table = data.pivot_table(index='year', columns='species', values='count', aggfunc='sum', fill_value=0)
    if species is not None:
        table = table.reindex(columns=species, fill_value=0)

    years = df['year'].dropna().astype(int)
    if len(years):
        table = table.reindex(range(years.min(), years.max() + 1), fill_value=0)
    table.index.name = 'year'
    table.columns.name = None
    return table.astype(int)


def site_species_matrix(df: pd.DataFrame) -> pd.DataFrame:
    """Site x species totals (0 where a species was never counted at a site)."""
    matrix = df.pivot_table(index='site', columns='species', values='count', aggfunc='sum', fill_value=0)
    matrix.columns.name = None
    return matrix.astype(int)


def species_richness(df: pd.DataFrame) -> pd.DataFrame:
    """Number of species with a positive count, and total count, per site."""
    matrix = site_species_matrix(df)
    richness = pd.DataFrame({
        'site': matrix.index,
        'richness': (matrix > 0).sum(axis=1).values,
        'total': matrix.sum(axis=1).values,
    })
    return richness.sort_values(['richness', 'total', 'site'], ascending=[False, False, True]).reset_index(drop=True)


# ============================================================
# FIGURES
# ============================================================

def plot_species_totals(totals: pd.DataFrame, output_path: Path) -> Path:
    apply_style()
    data = totals.iloc[::-1]
    fig, ax = plt.subplots(figsize=(7, max(3.0, 0.35 * len(data))))
    ax.barh(data['species'], data['total'], color=get_color_palette('default')[1])
    ax.set_xlabel('Individuals counted')
    ax.set_title('Amphibian counts by species')
    path = save_figure(fig, output_path)
    plt.close(fig)
    return path


def plot_yearly_trends(yearly: pd.DataFrame, output_path: Path) -> Path:
    apply_style()
    colors = get_color_palette('default')
    fig, ax = plt.subplots()
    for i, species in enumerate(yearly.columns):
        ax.plot(yearly.index, yearly[species], marker='o', color=colors[i % len(colors)], label=species)
    ax.set_xlabel('Year')
    ax.set_ylabel('Individuals counted')
    ax.set_title('Yearly counts of the most common species')
    ax.legend(fontsize=8, ncol=2)
    path = save_figure(fig, output_path)
    plt.close(fig)
    return path


def plot_site_heatmap(matrix: pd.DataFrame, output_path: Path) -> Path:
    apply_style()
    fig, ax = plt.subplots(figsize=(max(6.0, 0.6 * matrix.shape[1] + 2), max(3.5, 0.35 * matrix.shape[0] + 1.5)))
    image = ax.imshow(np.log1p(matrix.values), aspect='auto', cmap='Blues')
    ax.set_xticks(range(matrix.shape[1]))
    ax.set_xticklabels(matrix.columns, rotation=45, ha='right')
    ax.set_yticks(range(matrix.shape[0]))
    ax.set_yticklabels(matrix.index)
    ax.grid(False)
    fig.colorbar(image, ax=ax, label='log(1 + count)')
    ax.set_title('Counts by site and species')
    path = save_figure(fig, output_path)
    plt.close(fig)
    return path


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(top_n: Optional[int] = None) -> dict[str, pd.DataFrame]:
    """Write amphibian summary tables and figures."""
    print("=" * 60)
    print("Stage 06: Amphibian Survey Counts")
    print("=" * 60)

    top_n = top_n or AMPHIBIAN_TOP_N_SPECIES
    input_path = get_data_dir('work') / INPUT_FILE
    figures_dir = get_figures_dir()

    if not input_path.exists():
        print(f"ERROR: Input file not found: {input_path}")
        print("Run: python src/pipeline.py run_analysis amphibians")
        sys.exit(1)

    df = load_data(input_path)
    report = (DataValidator()
        .add_rule(row_count(min_rows=1))
        .add_rule(required_columns(REQUIRED))
        .add_rule(positive_values('count', allow_zero=True))
    ).validate(df)
    if report.has_errors:
        print(report.format())
        print("\nERROR: Validation failed. Aborting.")
        sys.exit(1)

    print(f"\n  Records: {len(df):,}  Sites: {df['site'].nunique()}  Species: {df['species'].nunique()}")

    totals = species_totals(df)
    matrix = site_species_matrix(df)
    richness = species_richness(df)
    save_diagnostic(totals, 'amphibian_species_totals')
    save_diagnostic(matrix, 'amphibian_site_species', index=True)
    save_diagnostic(richness, 'amphibian_richness')

    plot_species_totals(totals, figures_dir / 'fig_amphibian_species.png')
    plot_site_heatmap(matrix, figures_dir / 'fig_amphibian_heatmap.png')

    tables = {'species_totals': totals, 'site_species': matrix, 'richness': richness}
    if 'year' in df.columns:
        yearly = yearly_counts(df, top_species(df, top_n))
        save_diagnostic(yearly, 'amphibian_yearly_counts', index=True)
        plot_yearly_trends(yearly, figures_dir / 'fig_amphibian_trends.png')
        tables['yearly_counts'] = yearly
    else:
        print("  WARNING: No year column; skipping yearly trends")

    print("\n" + "-" * 60)
    print("SUMMARY")
    print("-" * 60)
    print(f"  Individuals counted: {int(df['count'].sum()):,}")
    print("  Most counted species:")
    for _, row in totals.head(top_n).iterrows():
        print(f"    - {row['species']}: {int(row['total']):,} ({row['n_sites']} sites)")
    print(f"  Richest site: {richness.loc[0, 'site']} ({richness.loc[0, 'richness']} species)")

    qa_for_stage('s06_amphibians', totals, additional_metrics={'n_sites': len(richness)})

    print("\n" + "=" * 60)
    print("Stage 06 complete.")
    print("=" * 60)

    return tables


if __name__ == '__main__':
    main()
