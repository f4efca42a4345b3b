#!/usr/bin/env python3
"""
Stage 02: Stream-Chemistry Clustering

Purpose: Group stream sites by their major-ion chemistry with hierarchical clustering.

Site samples are averaged per site, z-scored, and clustered with scipy's
agglomerative linkage (complete and single by default). Each tree is cut at
a fixed number of clusters; the cuts are compared with the adjusted Rand
index and summarised as per-cluster chemistry profiles.

Input Files
-----------
- data_work/stream_chemistry_clean.parquet

Output Files
------------
- data_work/diagnostics/cluster_membership.csv
- data_work/diagnostics/cluster_profiles_{method}.csv
- data_work/diagnostics/linkage_comparison.csv
- figures/fig_dendrogram_{method}.png

Usage
-----
    python src/pipeline.py cluster_sites
    python src/pipeline.py cluster_sites --method complete --method average --clusters 3
"""
from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
from pathlib import Path
from typing import Optional
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from scipy.cluster.hierarchy import cophenet, dendrogram, fcluster, linkage
from scipy.spatial.distance import pdist
from sklearn.metrics import adjusted_rand_score
from sklearn.preprocessing import StandardScaler

from config import (
    CLUSTER_FEATURES,
    CLUSTER_LINKAGES,
    CLUSTER_METRIC,
    CLUSTER_N_CLUSTERS,
    CLUSTER_SITE_COL,
)
from utils.helpers import get_data_dir, get_figures_dir, load_data, save_diagnostic
from utils.figure_style import apply_style, get_color_palette, save_figure
from utils.validation import DataValidator, numeric_columns, required_columns, row_count
from stages._qa_utils import qa_for_stage


# ============================================================
# CONFIGURATION
# ============================================================

INPUT_FILE = 'stream_chemistry_clean.parquet'

LINKAGE_METHODS = ('complete', 'single', 'average', 'ward')


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass
class ClusteringResult:
    """One linkage tree and its flat cut."""
    method: str
    linkage: np.ndarray
    labels: pd.Series
    cophenetic_corr: float
    merge_heights: np.ndarray

    @property
    def n_clusters(self) -> int:
        return int(self.labels.nunique())

    @property
    def cut_height(self) -> float:
        return cut_height(self.linkage, self.n_clusters)

    def to_dict(self) -> dict:
        return {
            'method': self.method,
            'n_sites': len(self.labels),
            'n_clusters': self.n_clusters,
            'cophenetic_corr': self.cophenetic_corr,
            'max_merge_height': float(self.merge_heights.max()) if len(self.merge_heights) else np.nan,
        }


# ============================================================
# PREPARATION
# ============================================================

def aggregate_sites(
    df: pd.DataFrame,
    site_col: str = CLUSTER_SITE_COL,
    features: Optional[list[str]] = None,
) -> pd.DataFrame:
    """
    Average repeated samples to one chemistry profile per site.

    Parameters
    ----------
    df : pd.DataFrame
        Sample-level chemistry
    site_col : str
        Site identifier column
    features : list[str], optional
        Numeric columns to average (default: CLUSTER_FEATURES present in df)

    Returns
    -------
    pd.DataFrame
        Site means indexed by site; sites with an incomplete profile are dropped
    """
    if site_col not in df.columns:
        raise ValueError(f"Site column not found: {site_col}")

    if features is None:
        features = [c for c in CLUSTER_FEATURES if c in df.columns]
    missing = [c for c in features if c not in df.columns]
    if missing:
        raise ValueError(f"Feature columns not found: {missing}")
    non_numeric = [c for c in features if not pd.api.types.is_numeric_dtype(df[c])]
    if non_numeric:
        raise ValueError(f"Feature columns must be numeric: {non_numeric}")

    return df.groupby(site_col)[features].mean().dropna()


def scale_features(site_means: pd.DataFrame) -> pd.DataFrame:
    """
    Z-score each feature; constant columns carry no distance and are dropped.

    Raises
    ------
    ValueError
        If there are fewer than two sites or no feature varies between them
    """
    if len(site_means) < 2:
        raise ValueError(
            f"Hierarchical clustering needs at least 2 sites, got {len(site_means)}")
    varying = [c for c in site_means.columns if site_means[c].nunique() > 1]
    if not varying:
        raise ValueError("No feature varies between sites; nothing to cluster on")
    scaled = StandardScaler().fit_transform(site_means[varying])
    return pd.DataFrame(scaled, index=site_means.index, columns=varying)


# ============================================================
# CLUSTERING
# ============================================================

def compute_linkage(X, method: str, metric: str = CLUSTER_METRIC) -> np.ndarray:
    """
    Build the agglomerative merge tree.

    Raises
    ------
    ValueError
        If the method is unknown or fewer than two sites are given
    """
    if method not in LINKAGE_METHODS:
        raise ValueError(f"Unknown linkage method '{method}'. Use one of {LINKAGE_METHODS}")
    values = np.asarray(X, dtype=float)
    if values.ndim != 2 or values.shape[0] < 2:
        raise ValueError("Hierarchical clustering needs at least 2 sites")
    return linkage(values, method=method, metric=metric)


def cut_tree(Z: np.ndarray, n_clusters: int) -> np.ndarray:
    """Flat cluster labels 1..k from cutting the tree into n_clusters groups."""
    if n_clusters < 1:
        raise ValueError(f"n_clusters must be >= 1: {n_clusters}")
    return fcluster(Z, t=n_clusters, criterion='maxclust')


def cut_height(Z: np.ndarray, n_clusters: int) -> float:
    """Height midway between the merges that leave n_clusters groups."""
    heights = Z[:, 2]
    n_obs = len(heights) + 1
    k = min(max(n_clusters, 1), n_obs)
    if k == 1:
        return float(heights[-1] * 1.05)
    if k == n_obs:
        return float(heights[0] / 2)
    return float((heights[n_obs - k - 1] + heights[n_obs - k]) / 2)


def cluster_sites(
    scaled: pd.DataFrame,
    method: str,
    n_clusters: int = CLUSTER_N_CLUSTERS,
) -> ClusteringResult:
    """
    Cluster site profiles with one linkage rule.

    n_clusters is clipped to the number of sites.
    """
    Z = compute_linkage(scaled.values, method)
    k = min(n_clusters, len(scaled))
    labels = pd.Series(cut_tree(Z, k), index=scaled.index, name='cluster')

    if len(scaled) > 2:
        corr, _ = cophenet(Z, pdist(scaled.values, metric=CLUSTER_METRIC))
    else:
        corr = np.nan

    return ClusteringResult(
        method=method,
        linkage=Z,
        labels=labels,
        cophenetic_corr=float(corr),
        merge_heights=Z[:, 2].copy(),
    )


def cluster_profiles(site_means: pd.DataFrame, labels: pd.Series) -> pd.DataFrame:
    """Mean raw chemistry and site count for each cluster."""
    profiles = site_means.loc[labels.index].groupby(labels.values).mean()
    profiles.index.name = 'cluster'
    profiles.insert(0, 'n_sites', labels.value_counts().sort_index().values)
    return profiles.reset_index()


def compare_linkages(results: list[ClusteringResult]) -> pd.DataFrame:
    """Pairwise adjusted Rand index between the flat cuts of each linkage."""
    rows = []
    for a, b in combinations(results, 2):
        common = a.labels.index.intersection(b.labels.index)
        rows.append({
            'method_a': a.method,
            'method_b': b.method,
            'n_clusters_a': a.n_clusters,
            'n_clusters_b': b.n_clusters,
            'adjusted_rand': adjusted_rand_score(a.labels.loc[common], b.labels.loc[common]),
        })
    return pd.DataFrame(rows, columns=['method_a', 'method_b', 'n_clusters_a', 'n_clusters_b', 'adjusted_rand'])


def membership_table(results: list[ClusteringResult]) -> pd.DataFrame:
    """One row per site with its cluster under each linkage."""
    table = pd.concat({f'cluster_{r.method}': r.labels for r in results}, axis=1)
    table.index.name = CLUSTER_SITE_COL
    return table.reset_index()


# ============================================================
# FIGURES
# ============================================================

def plot_dendrogram(result: ClusteringResult, output_path: Path) -> Path:
    """Dendrogram with the flat-cut height marked."""
    apply_style()
    n_sites = len(result.labels)
    fig, ax = plt.subplots(figsize=(max(7.0, 0.3 * n_sites), 4.5))

    threshold = result.cut_height
    dendrogram(
        result.linkage,
        labels=[str(s) for s in result.labels.index],
        color_threshold=threshold,
        above_threshold_color='#8D99AE',
        leaf_rotation=90,
        ax=ax,
    )
    ax.axhline(threshold, color=get_color_palette('clusters')[0], linestyle='--', linewidth=1)
    ax.set_title(f'{result.method.title()} linkage ({result.n_clusters} clusters)')
    ax.set_xlabel('Site')
    ax.set_ylabel('Merge height (standardized units)')
    ax.grid(False)

    path = save_figure(fig, output_path)
    plt.close(fig)
    return path


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(
    methods: Optional[list[str]] = None,
    n_clusters: Optional[int] = None,
) -> dict[str, ClusteringResult]:
    """Cluster stream sites under each requested linkage."""
    print("=" * 60)
    print("Stage 02: Stream-Chemistry Clustering")
    print("=" * 60)

    methods = methods or CLUSTER_LINKAGES
    n_clusters = n_clusters or CLUSTER_N_CLUSTERS
    input_path = get_data_dir('work') / INPUT_FILE
    figures_dir = get_figures_dir()

    if not input_path.exists():
        print(f"ERROR: Input file not found: {input_path}")
        print("Run: python src/pipeline.py run_analysis clustering")
        sys.exit(1)

    df = load_data(input_path)
    features = [c for c in CLUSTER_FEATURES if c in df.columns]

    report = (DataValidator()
        .add_rule(row_count(min_rows=2))
        .add_rule(required_columns([CLUSTER_SITE_COL]))
        .add_rule(numeric_columns(features))
    ).validate(df)
    if report.has_errors:
        print(report.format())
        print("\nERROR: Validation failed. Aborting.")
        sys.exit(1)

    site_means = aggregate_sites(df, features=features)
    try:
        scaled = scale_features(site_means)
    except ValueError as e:
        print(f"\nERROR: {e}. Aborting.")
        sys.exit(1)
    print(f"\n  Sites: {len(site_means)}  Features: {scaled.shape[1]}")

    results = []
    for method in methods:
        result = cluster_sites(scaled, method, n_clusters)
        results.append(result)
        print(f"  -> {method}: {result.n_clusters} clusters, "
              f"cophenetic r = {result.cophenetic_corr:.3f}")

        save_diagnostic(cluster_profiles(site_means, result.labels), f'cluster_profiles_{method}')
        plot_dendrogram(result, figures_dir / f'fig_dendrogram_{method}.png')

    membership = membership_table(results)
    save_diagnostic(membership, 'cluster_membership')
    comparison = compare_linkages(results)
    save_diagnostic(comparison, 'linkage_comparison')

    print("\n" + "-" * 60)
    print("SUMMARY")
    print("-" * 60)
    for result in results:
        sizes = result.labels.value_counts().sort_index()
        print(f"  {result.method}: sizes {sizes.to_dict()}")
    for _, row in comparison.iterrows():
        print(f"  ARI {row['method_a']} vs {row['method_b']}: {row['adjusted_rand']:.3f}")

    qa_for_stage(
        's02_clustering', membership,
        additional_metrics={'n_sites': len(site_means), 'n_features': scaled.shape[1]},
    )

    print("\n" + "=" * 60)
    print("Stage 02 complete.")
    print("=" * 60)

    return {r.method: r for r in results}


if __name__ == '__main__':
    main()
