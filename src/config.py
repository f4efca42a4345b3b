#!/usr/bin/env python3
"""
Configuration constants for the field & text EDA pipelines.

This module centralizes paths, dataset layouts, and per-analysis parameters.
Dataset-specific values (rename maps, dtypes) should be customized when a
new raw export arrives with different headers.

Usage
-----
    from config import PROJECT_ROOT, DATA_WORK_DIR, ENABLE_QA_REPORTS

    # Or import specific sections
    from config import (
        # Paths
        PROJECT_ROOT,
        DATA_RAW_DIR,
        DATA_WORK_DIR,
        FIGURES_DIR,
        REPORTS_DIR,

        # Datasets
        DATASETS,
        ANALYSES,

        # Methodological Parameters
        RANDOM_STATE,
        TUNING_RF_PARAMS,
    )
"""
from __future__ import annotations

from pathlib import Path


# =============================================================================
# PATHS
# =============================================================================

def _find_project_root() -> Path:
    """Find project root by looking for characteristic files."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'src').exists() and (parent / 'specifications.yml').exists():
            return parent
    # Fallback: use parent of src/
    return Path(__file__).resolve().parent.parent


PROJECT_ROOT = _find_project_root()

# Data directories
DATA_RAW_DIR = PROJECT_ROOT / 'data_raw'
DATA_WORK_DIR = PROJECT_ROOT / 'data_work'
DIAGNOSTICS_DIR = DATA_WORK_DIR / 'diagnostics'

# Output directories
FIGURES_DIR = PROJECT_ROOT / 'figures'
REPORTS_DIR = PROJECT_ROOT / 'reports'

# Candidate linear models for the oxygen analysis
SPECIFICATIONS_FILE = PROJECT_ROOT / 'specifications.yml'


# =============================================================================
# QUALITY ASSURANCE
# =============================================================================

# Enable per-stage QA report generation
ENABLE_QA_REPORTS = True

# Output directory for QA reports
QA_REPORTS_DIR = DATA_WORK_DIR / 'quality'

# QA thresholds
QA_THRESHOLDS = {
    'max_missing_pct': 5.0,       # Warn if >5% missing values
    'min_row_count': 10,          # Warn if fewer than 10 rows
    'max_duplicate_pct': 1.0,     # Warn if >1% duplicate rows
}


# =============================================================================
# CLEANING SETTINGS
# =============================================================================

# Columns with a larger share of missing values than this are dropped
MAX_MISSING_FRACTION = 0.5

# 'impute' (median / mode) or 'filter' (drop incomplete rows)
DEFAULT_MISSING_STRATEGY = 'impute'

MISSING_STRATEGIES = ('impute', 'filter')

# Random state for every stochastic step (splits, forests, demo data)
RANDOM_STATE = 42


# =============================================================================
# DATASETS
# =============================================================================

# Each dataset lists the raw file patterns it is read from, a rename map
# applied after header normalization, dtypes, and the columns that must be
# present (and non-missing) for the analysis to run.
DATASETS = {
    'stream_chemistry': {
        'description': 'Major-ion chemistry of stream sampling sites',
        'files': ['stream_chemistry*.csv', 'stream_chemistry*.xlsx'],
        'rename': {
            'site_id': 'site',
            'conductivity_us_cm': 'conductivity',
            'ca_mg_l': 'calcium',
            'mg_mg_l': 'magnesium',
            'na_mg_l': 'sodium',
            'k_mg_l': 'potassium',
            'cl_mg_l': 'chloride',
            'so4_mg_l': 'sulfate',
            'no3_mg_l': 'nitrate',
            'alkalinity_mg_l': 'alkalinity',
        },
        'types': {
            'site': 'str',
            'sample_date': 'datetime64[ns]',
            'ph': 'float64',
            'conductivity': 'float64',
            'calcium': 'float64',
            'magnesium': 'float64',
            'sodium': 'float64',
            'potassium': 'float64',
            'chloride': 'float64',
            'sulfate': 'float64',
            'nitrate': 'float64',
            'alkalinity': 'float64',
        },
        'required': ['site'],
        'missing_strategy': 'impute',
    },
    'news_articles': {
        'description': 'News article metadata and text snippets',
        'files': ['news_articles*.csv', 'news_articles*.json'],
        'rename': {
            'id': 'article_id',
            'headline_main': 'headline',
            'section_name': 'section',
        },
        'types': {
            'article_id': 'str',
            'headline': 'str',
            'abstract': 'str',
            'lead_paragraph': 'str',
            'pub_date': 'datetime64[ns]',
            'section': 'str',
            'web_url': 'str',
        },
        'required': ['article_id', 'headline'],
        'missing_strategy': 'filter',
    },
    'forest_fires': {
        'description': 'Montesinho park forest fires with weather indices',
        'files': ['forestfires*.csv', 'forest_fires*.csv', 'forest_fires*.xlsx'],
        'rename': {},
        'types': {
            'x': 'int64',
            'y': 'int64',
            'month': 'str',
            'day': 'str',
            'ffmc': 'float64',
            'dmc': 'float64',
            'dc': 'float64',
            'isi': 'float64',
            'temp': 'float64',
            'rh': 'float64',
            'wind': 'float64',
            'rain': 'float64',
            'area': 'float64',
        },
        'required': ['area'],
        'missing_strategy': 'impute',
    },
    'oxygen': {
        'description': 'Dissolved oxygen saturation with water-quality covariates',
        'files': ['oxygen*.csv', 'water_quality*.csv', 'oxygen*.xlsx'],
        'rename': {
            'do_sat': 'do_saturation',
            'do_pct_sat': 'do_saturation',
            'water_temp_c': 'temperature',
            'specific_conductance': 'conductivity',
            'turbidity_ntu': 'turbidity',
            'discharge_cfs': 'flow',
            'nitrate_mg_l': 'nitrate',
        },
        'types': {
            'site': 'str',
            'season': 'str',
            'do_saturation': 'float64',
            'temperature': 'float64',
            'conductivity': 'float64',
            'ph': 'float64',
            'turbidity': 'float64',
            'flow': 'float64',
            'nitrate': 'float64',
        },
        'required': ['do_saturation'],
        'missing_strategy': 'impute',
    },
    'amphibian_surveys': {
        'description': 'Visual encounter survey counts of amphibians',
        'files': ['amphibian*.csv', 'amphibian*.xlsx'],
        'rename': {
            'site_code': 'site',
            'common_name': 'species',
            'number_observed': 'count',
        },
        'types': {
            'survey_date': 'datetime64[ns]',
            'site': 'str',
            'species': 'str',
            'life_stage': 'str',
            'count': 'int64',
        },
        'required': ['site', 'species', 'count'],
        'missing_strategy': 'filter',
    },
}

# Analysis key -> dataset it consumes
ANALYSES = {
    'clustering': 'stream_chemistry',
    'sentiment': 'news_articles',
    'forest': 'forest_fires',
    'oxygen': 'oxygen',
    'amphibians': 'amphibian_surveys',
}


# =============================================================================
# CLUSTERING SETTINGS
# =============================================================================

CLUSTER_SITE_COL = 'site'

# Chemistry variables used for the site distance matrix
CLUSTER_FEATURES = [
    'ph', 'conductivity', 'calcium', 'magnesium', 'sodium',
    'potassium', 'chloride', 'sulfate', 'nitrate', 'alkalinity',
]

# Linkage rules compared side by side
CLUSTER_LINKAGES = ['complete', 'single']
CLUSTER_METRIC = 'euclidean'
CLUSTER_N_CLUSTERS = 4


# =============================================================================
# NEWS API & SENTIMENT SETTINGS
# =============================================================================

NEWS_API_URL = 'https://api.nytimes.com/svc/search/v2/articlesearch.json'

# API key is read from the environment, never stored here
NEWS_API_KEY_ENV = 'NYT_API_KEY'

NEWS_DEFAULT_QUERY = 'climate'
NEWS_MAX_PAGES = 5
NEWS_PAGE_SIZE = 10  # Fixed by the API

# Fixed pause between page requests (API allows ~5 requests/minute)
NEWS_RATE_LIMIT_SECONDS = 12.0
NEWS_TIMEOUT_SECONDS = 30

SENTIMENT_TEXT_FIELDS = ['headline', 'abstract', 'lead_paragraph']
SENTIMENT_LEXICON = 'vader'
SENTIMENT_TOP_N_WORDS = 15


# =============================================================================
# RANDOM FOREST SETTINGS
# =============================================================================

FOREST_TARGET = 'area'

# Burned area is heavily right-skewed; model log1p(area)
FOREST_LOG_TARGET = True

FOREST_CATEGORICAL = ['month', 'day']
FOREST_TEST_SIZE = 0.25
FOREST_CV_FOLDS = 5

# Tuning grid (max_features ~ mtry, min_samples_leaf ~ min_n)
TUNING_RF_PARAMS = {
    'max_features': [2, 4, 6, 8, 12],
    'min_samples_leaf': [2, 5, 10, 20],
    'n_estimators': [300],
}

# Reduced grid for --quick runs
TUNING_RF_PARAMS_QUICK = {
    'max_features': [2, 6],
    'min_samples_leaf': [5, 20],
    'n_estimators': [100],
}

# Permutation importance repeats
FOREST_IMPORTANCE_REPEATS = 10


# =============================================================================
# LINEAR MODEL SELECTION SETTINGS
# =============================================================================

# Default engine for fitting linear models ('statsmodels' or 'numpy')
ANALYSIS_ENGINE = 'statsmodels'

OXYGEN_OUTCOME = 'do_saturation'

# Predictors offered to stepwise selection
OXYGEN_CANDIDATES = ['temperature', 'conductivity', 'ph', 'turbidity', 'flow', 'nitrate', 'season']
OXYGEN_CATEGORICAL = ['season']

# 'aic' or 'bic'
SELECTION_CRITERION = 'aic'
SELECTION_CRITERIA = ('aic', 'bic')

SIGNIFICANCE_LEVEL = 0.05
CONFIDENCE_LEVEL = 0.95


# =============================================================================
# AMPHIBIAN SURVEY SETTINGS
# =============================================================================

AMPHIBIAN_TOP_N_SPECIES = 6


# =============================================================================
# REPORT SETTINGS
# =============================================================================

REPORT_TITLE = 'Exploratory Data Analysis'

# Maximum rows rendered per table in HTML reports
REPORT_MAX_TABLE_ROWS = 25

# Figure file prefixes belonging to each analysis
REPORT_FIGURE_PREFIXES = {
    'clustering': ['fig_dendrogram'],
    'sentiment': ['fig_sentiment'],
    'forest': ['fig_forest'],
    'oxygen': ['fig_oxygen'],
    'amphibians': ['fig_amphibian'],
}

# Diagnostic tables rendered in each report, in order
REPORT_TABLES = {
    'clustering': ['cluster_membership', 'linkage_comparison', 'cluster_profiles_complete', 'cluster_profiles_single'],
    'sentiment': ['word_contributions', 'sentiment_by_section', 'sentiment_by_month'],
    'forest': ['forest_metrics', 'forest_tuning', 'forest_importance'],
    'oxygen': ['oxygen_model_comparison', 'oxygen_best_coefficients', 'oxygen_stepwise_path'],
    'amphibians': ['amphibian_species_totals', 'amphibian_richness', 'amphibian_yearly_counts'],
}


# =============================================================================
# VALIDATION
# =============================================================================

def validate_config() -> bool:
    """
    Validate configuration settings.

    Returns
    -------
    bool
        True if all validations pass

    Raises
    ------
    ValueError
        If any configuration is invalid
    """
    errors = []

    if not PROJECT_ROOT.exists():
        errors.append(f"PROJECT_ROOT does not exist: {PROJECT_ROOT}")

    if MAX_MISSING_FRACTION <= 0 or MAX_MISSING_FRACTION > 1:
        errors.append(f"MAX_MISSING_FRACTION must be in (0, 1]: {MAX_MISSING_FRACTION}")

    if DEFAULT_MISSING_STRATEGY not in MISSING_STRATEGIES:
        errors.append(f"DEFAULT_MISSING_STRATEGY must be one of {MISSING_STRATEGIES}")

    for name, ds in DATASETS.items():
        strategy = ds.get('missing_strategy', DEFAULT_MISSING_STRATEGY)
        if strategy not in MISSING_STRATEGIES:
            errors.append(f"Dataset '{name}' has unknown missing_strategy: {strategy}")

    for analysis, dataset in ANALYSES.items():
        if dataset not in DATASETS:
            errors.append(f"Analysis '{analysis}' refers to unknown dataset: {dataset}")

    if not all(TUNING_RF_PARAMS.values()):
        errors.append("TUNING_RF_PARAMS must not contain empty value lists")

    if NEWS_RATE_LIMIT_SECONDS < 0:
        errors.append(f"NEWS_RATE_LIMIT_SECONDS must be non-negative: {NEWS_RATE_LIMIT_SECONDS}")

    if SELECTION_CRITERION not in SELECTION_CRITERIA:
        errors.append(f"SELECTION_CRITERION must be one of {SELECTION_CRITERIA}")

    if errors:
        raise ValueError("Configuration errors:\n" + "\n".join(f"  - {e}" for e in errors))

    return True


def ensure_directories() -> None:
    """Create required directories if they don't exist."""
    for path in [DATA_RAW_DIR, DATA_WORK_DIR, DIAGNOSTICS_DIR, FIGURES_DIR, REPORTS_DIR, QA_REPORTS_DIR]:
        path.mkdir(parents=True, exist_ok=True)


def get_dataset_config(name: str) -> dict:
    """
    Get configuration for a dataset.

    Parameters
    ----------
    name : str
        Dataset name (key of DATASETS)

    Returns
    -------
    dict
        Dataset configuration

    Raises
    ------
    ValueError
        If dataset name is not found
    """
    if name not in DATASETS:
        available = ', '.join(DATASETS.keys())
        raise ValueError(f"Unknown dataset '{name}'. Available: {available}")

    return DATASETS[name]


def get_analysis_dataset(analysis: str) -> str:
    """Get the dataset name consumed by an analysis."""
    if analysis not in ANALYSES:
        available = ', '.join(ANALYSES.keys())
        raise ValueError(f"Unknown analysis '{analysis}'. Available: {available}")
    return ANALYSES[analysis]


# =============================================================================
# CONVENIENCE EXPORTS
# =============================================================================

# For backward compatibility with utils.helpers
def get_project_root() -> Path:
    """Get project root directory (compatibility wrapper)."""
    return PROJECT_ROOT


def get_data_dir(subdir: str = 'work') -> Path:
    """Get data directory (compatibility wrapper)."""
    if subdir == 'raw':
        return DATA_RAW_DIR
    elif subdir == 'work':
        return DATA_WORK_DIR
    elif subdir == 'diagnostics':
        return DIAGNOSTICS_DIR
    else:
        return PROJECT_ROOT / f'data_{subdir}'


# =============================================================================
# MODULE INITIALIZATION
# =============================================================================

if __name__ == '__main__':
    # Print configuration when run directly
    print("EDA Pipeline Configuration")
    print("=" * 50)
    print(f"PROJECT_ROOT:      {PROJECT_ROOT}")
    print(f"DATA_RAW_DIR:      {DATA_RAW_DIR}")
    print(f"DATA_WORK_DIR:     {DATA_WORK_DIR}")
    print(f"FIGURES_DIR:       {FIGURES_DIR}")
    print(f"REPORTS_DIR:       {REPORTS_DIR}")
    print()
    print(f"Datasets:          {', '.join(DATASETS)}")
    print(f"Analyses:          {', '.join(ANALYSES)}")
    print()
    print("Validating configuration...")
    try:
        validate_config()
        print("Configuration valid.")
    except ValueError as e:
        print(f"Configuration invalid:\n{e}")
