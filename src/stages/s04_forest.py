#!/usr/bin/env python3
"""
Stage 04: Forest-Fire Random Forest

Purpose: Predict burned area from weather indices with a tuned random forest.

Burned area is heavily skewed (about half the fires are recorded as 0 ha),
so the model is fit to log1p(area). month and day are one-hot encoded. The
forest's max_features and min_samples_leaf are tuned by grid search with
k-fold cross-validation on a training split; the refit model is scored on
the held-out split and its permutation importances are reported.

Input Files
-----------
- data_work/forest_fires_clean.parquet

Output Files
------------
- data_work/diagnostics/forest_tuning.csv
- data_work/diagnostics/forest_metrics.csv
- data_work/diagnostics/forest_importance.csv
- figures/fig_forest_tuning.png
- figures/fig_forest_predictions.png
- figures/fig_forest_importance.png

Usage
-----
    python src/pipeline.py fit_forest
    python src/pipeline.py fit_forest --quick
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from sklearn.dummy import DummyRegressor
from sklearn.ensemble import RandomForestRegressor
from sklearn.inspection import permutation_importance
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score
from sklearn.model_selection import GridSearchCV, KFold, train_test_split

from config import (
    FOREST_CATEGORICAL,
    FOREST_CV_FOLDS,
    FOREST_IMPORTANCE_REPEATS,
    FOREST_LOG_TARGET,
    FOREST_TARGET,
    FOREST_TEST_SIZE,
    RANDOM_STATE,
    TUNING_RF_PARAMS,
    TUNING_RF_PARAMS_QUICK,
)
from utils.helpers import get_data_dir, get_figures_dir, load_data, save_diagnostic
from utils.figure_style import apply_style, get_color_palette, get_figure_double, save_figure
from utils.validation import DataValidator, positive_values, required_columns, row_count
from stages._qa_utils import qa_for_stage


# ============================================================
# CONFIGURATION
# ============================================================

INPUT_FILE = 'forest_fires_clean.parquet'

IMPORTANCE_METHODS = ('permutation', 'impurity')

# Features shown in the importance figure
MAX_IMPORTANCE_BARS = 15


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass
class TuningResult:
    """Grid-search outcome for the random forest."""
    cv_results: pd.DataFrame
    best_params: dict[str, Any]
    best_score_rmse: float
    best_estimator: RandomForestRegressor

    def to_dict(self) -> dict:
        return {
            'best_params': self.best_params,
            'best_score_rmse': self.best_score_rmse,
            'n_candidates': len(self.cv_results),
        }


# ============================================================
# FEATURES
# ============================================================

def prepare_features(
    df: pd.DataFrame,
    target: str = FOREST_TARGET,
    log_target: bool = FOREST_LOG_TARGET,
    categorical: Optional[list[str]] = None,
) -> tuple[pd.DataFrame, pd.Series]:
    """
    Build the design matrix and target.

    Parameters
    ----------
    df : pd.DataFrame
        Cleaned fire records
    target : str
        Target column (burned area in ha)
    log_target : bool
        Model log1p(target) instead of the raw value
    categorical : list[str], optional
        Columns one-hot encoded with every level kept (default: month, day)

    Returns
    -------
    tuple
        (X, y) with rows lacking the target removed
    """
    if target not in df.columns:
        raise ValueError(f"Target column not found: {target}")

    categorical = [c for c in (FOREST_CATEGORICAL if categorical is None else categorical) if c in df.columns]
    data = df.dropna(subset=[target]).reset_index(drop=True)

    y = data[target].astype(float)
    if log_target:
        y = np.log1p(y)
    y = y.rename(f'log1p_{target}' if log_target else target)

    numeric = [
        c for c in data.columns
        if c != target and c not in categorical and pd.api.types.is_numeric_dtype(data[c])
    ]
    X = data[numeric].astype(float)
    if categorical:
        dummies = pd.get_dummies(data[categorical].astype(str), prefix=categorical, dtype=float)
        X = pd.concat([X, dummies], axis=1)

    return X, y


def split_data(
    X: pd.DataFrame,
    y: pd.Series,
    test_size: float = FOREST_TEST_SIZE,
    random_state: int = RANDOM_STATE,
):
    """Random train/test split: (X_train, X_test, y_train, y_test)."""
    return train_test_split(X, y, test_size=test_size, random_state=random_state)


# ============================================================
# TUNING AND EVALUATION
# ============================================================

def _clip_grid(param_grid: dict, n_features: int) -> dict:
    """Limit integer max_features values to the number of available columns."""
    grid = {k: list(v) for k, v in param_grid.items()}
    if 'max_features' in grid:
        clipped = []
        for value in grid['max_features']:
            if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
                value = min(int(value), n_features)
            if value not in clipped:
                clipped.append(value)
        grid['max_features'] = clipped
    return grid


def tune_forest(
    X_train: pd.DataFrame,
    y_train: pd.Series,
    param_grid: Optional[dict] = None,
    cv_folds: Optional[int] = None,
    random_state: int = RANDOM_STATE,
) -> TuningResult:
    """
    Grid-search a RandomForestRegressor by cross-validated RMSE.

    Parameters
    ----------
    X_train, y_train
        Training split
    param_grid : dict, optional
        Grid over RandomForestRegressor parameters (default: TUNING_RF_PARAMS)
    cv_folds : int, optional
        Number of shuffled K folds (default: FOREST_CV_FOLDS)

    Returns
    -------
    TuningResult
        cv_results has one row per candidate with the grid parameters,
        mean_rmse, std_rmse, mean_r2 and rank (1 = lowest RMSE)
    """
    param_grid = _clip_grid(param_grid or TUNING_RF_PARAMS, X_train.shape[1])
    cv = KFold(n_splits=cv_folds or FOREST_CV_FOLDS, shuffle=True, random_state=random_state)

    search = GridSearchCV(
        RandomForestRegressor(random_state=random_state),
        param_grid,
        scoring={'rmse': 'neg_root_mean_squared_error', 'r2': 'r2'},
        refit='rmse',
        cv=cv,
        n_jobs=-1,
    )
    search.fit(X_train, y_train)

    raw = search.cv_results_
    cv_results = pd.DataFrame(list(raw['params']))
    cv_results['mean_rmse'] = -raw['mean_test_rmse']
    cv_results['std_rmse'] = raw['std_test_rmse']
    cv_results['mean_r2'] = raw['mean_test_r2']
    cv_results['rank'] = raw['rank_test_rmse']
    cv_results = cv_results.sort_values(['rank', 'mean_rmse']).reset_index(drop=True)

    return TuningResult(
        cv_results=cv_results,
        best_params=dict(search.best_params_),
        best_score_rmse=float(-search.best_score_),
        best_estimator=search.best_estimator_,
    )


def evaluate_model(
    model,
    X_test: pd.DataFrame,
    y_test: pd.Series,
    log_target: bool = FOREST_LOG_TARGET,
) -> dict:
    """
    Held-out error of a fitted model.

    rmse/mae/r2 are on the modelled scale; rmse_area back-transforms both
    observations and predictions with expm1 when the target was logged.
    """
    pred = model.predict(X_test)
    y_true = np.asarray(y_test, dtype=float)

    if log_target:
        rmse_area = float(np.sqrt(mean_squared_error(np.expm1(y_true), np.expm1(pred))))
    else:
        rmse_area = float(np.sqrt(mean_squared_error(y_true, pred)))

    return {
        'n': len(y_true),
        'rmse': float(np.sqrt(mean_squared_error(y_true, pred))),
        'mae': float(mean_absolute_error(y_true, pred)),
        'r2': float(r2_score(y_true, pred)),
        'rmse_area': rmse_area,
    }


def baseline_metrics(X_train, y_train, X_test, y_test, log_target: bool = FOREST_LOG_TARGET) -> dict:
    """Errors of predicting the training mean for every test fire."""
    dummy = DummyRegressor(strategy='mean').fit(X_train, y_train)
    return evaluate_model(dummy, X_test, y_test, log_target)


def feature_importance(
    model,
    X: pd.DataFrame,
    y: pd.Series,
    method: str = 'permutation',
    n_repeats: int = FOREST_IMPORTANCE_REPEATS,
    random_state: int = RANDOM_STATE,
) -> pd.DataFrame:
    """
    Feature importances, largest first.

    'permutation' measures the RMSE increase when a column is shuffled
    (on the data given); 'impurity' reads the forest's own
    feature_importances_ with the spread across trees as std.

    Raises
    ------
    ValueError
        If the method is unknown
    """
    if method == 'permutation':
        result = permutation_importance(
            model, X, y,
            n_repeats=n_repeats,
            random_state=random_state,
            scoring='neg_root_mean_squared_error',
        )
        importance, std = result.importances_mean, result.importances_std
    elif method == 'impurity':
        importance = model.feature_importances_
        std = np.std([tree.feature_importances_ for tree in model.estimators_], axis=0)
    else:
        raise ValueError(f"Unknown importance method '{method}'. Use one of {IMPORTANCE_METHODS}")

    table = pd.DataFrame({'feature': list(X.columns), 'importance': importance, 'std': std})
    return table.sort_values('importance', ascending=False).reset_index(drop=True)


# ============================================================
# FIGURES
# ============================================================

def _grid_sort_key(values: pd.Series) -> pd.Series:
    """Numbers in numeric order, then named options such as 'sqrt' or None."""
    def key(value):
        if isinstance(value, (int, float, np.number)) and not isinstance(value, bool):
            return (0, float(value), '')
        return (1, 0.0, str(value))
    return values.map(key)


def plot_tuning_curves(cv_results: pd.DataFrame, output_path: Path) -> Path:
    """CV RMSE against max_features, one line per min_samples_leaf."""
    apply_style()
    colors = get_color_palette('default')
    data = cv_results.copy()
    if 'n_estimators' in data.columns:
        best_n = data.loc[data['rank'].idxmin(), 'n_estimators']
        data = data[data['n_estimators'] == best_n]

    fig, ax = plt.subplots()
    if 'min_samples_leaf' in data.columns and 'max_features' in data.columns:
        for i, (leaf, group) in enumerate(data.groupby('min_samples_leaf')):
            group = group.sort_values('max_features', key=_grid_sort_key)
            ax.errorbar(
                group['max_features'].astype(str), group['mean_rmse'], yerr=group['std_rmse'],
                marker='o', capsize=3, color=colors[i % len(colors)], label=f'min_samples_leaf={leaf}',
            )
        ax.set_xlabel('max_features')
        ax.legend()
    else:
        ax.bar(range(len(data)), data['mean_rmse'], yerr=data['std_rmse'], color=colors[0])
        ax.set_xlabel('Candidate')
    ax.set_ylabel('CV RMSE (log1p ha)')
    ax.set_title('Random forest tuning')
    path = save_figure(fig, output_path)
    plt.close(fig)
    return path


def plot_predictions(y_test: pd.Series, pred: np.ndarray, output_path: Path) -> Path:
    """Observed against predicted on the held-out split."""
    apply_style()
    colors = get_color_palette('default')
    fig, ax = plt.subplots(figsize=(5.5, 5.0))
    ax.scatter(y_test, pred, alpha=0.6, s=18, color=colors[1])
    lims = [min(np.min(y_test), np.min(pred)), max(np.max(y_test), np.max(pred))]
    ax.plot(lims, lims, color='grey', linestyle='--', linewidth=1)
    ax.set_xlabel('Observed log1p(area)')
    ax.set_ylabel('Predicted log1p(area)')
    ax.set_title('Held-out predictions')
    path = save_figure(fig, output_path)
    plt.close(fig)
    return path


def plot_importance(importance: pd.DataFrame, output_path: Path) -> Path:
    apply_style()
    data = importance.head(MAX_IMPORTANCE_BARS).iloc[::-1]
    fig = get_figure_double()
    ax = fig.add_subplot(111)
    ax.barh(data['feature'], data['importance'], xerr=data['std'], color=get_color_palette('default')[0])
    ax.set_xlabel('Importance')
    ax.set_title('Random forest feature importance')
    path = save_figure(fig, output_path)
    plt.close(fig)
    return path


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(param_grid: Optional[dict] = None, quick: bool = False) -> dict:
    """Tune, evaluate and explain the burned-area random forest."""
    print("=" * 60)
    print("Stage 04: Forest-Fire Random Forest")
    print("=" * 60)

    input_path = get_data_dir('work') / INPUT_FILE
    figures_dir = get_figures_dir()

    if not input_path.exists():
        print(f"ERROR: Input file not found: {input_path}")
        print("Run: python src/pipeline.py run_analysis forest")
        sys.exit(1)

    df = load_data(input_path)
    report = (DataValidator()
        .add_rule(row_count(min_rows=FOREST_CV_FOLDS * 2))
        .add_rule(required_columns([FOREST_TARGET]))
        .add_rule(positive_values(FOREST_TARGET, allow_zero=True))
    ).validate(df)
    if report.has_errors:
        print(report.format())
        print("\nERROR: Validation failed. Aborting.")
        sys.exit(1)

    X, y = prepare_features(df)
    X_train, X_test, y_train, y_test = split_data(X, y)
    print(f"\n  Fires: {len(X):,}  Features: {X.shape[1]}")
    print(f"  Train/test: {len(X_train):,}/{len(X_test):,}")
    print(f"  Zero-area fires: {(df[FOREST_TARGET] == 0).mean():.1%}")

    grid = param_grid or (TUNING_RF_PARAMS_QUICK if quick else TUNING_RF_PARAMS)
    print(f"\n  Tuning over {grid}")
    tuning = tune_forest(X_train, y_train, grid)
    print(f"  -> Best: {tuning.best_params} (CV RMSE {tuning.best_score_rmse:.3f})")
    save_diagnostic(tuning.cv_results, 'forest_tuning')

    model = tuning.best_estimator
    test_metrics = evaluate_model(model, X_test, y_test)
    train_metrics = evaluate_model(model, X_train, y_train)
    base = baseline_metrics(X_train, y_train, X_test, y_test)
    best_row = tuning.cv_results.iloc[0]
    metrics = pd.DataFrame([
        {'split': 'train', **train_metrics},
        {'split': 'cv', 'n': len(X_train), 'rmse': tuning.best_score_rmse, 'mae': np.nan,
         'r2': float(best_row['mean_r2']), 'rmse_area': np.nan},
        {'split': 'test', **test_metrics},
        {'split': 'test_baseline_mean', **base},
    ])
    save_diagnostic(metrics, 'forest_metrics')

    importance = feature_importance(model, X_test, y_test)
    save_diagnostic(importance, 'forest_importance')

    plot_tuning_curves(tuning.cv_results, figures_dir / 'fig_forest_tuning.png')
    plot_predictions(y_test, model.predict(X_test), figures_dir / 'fig_forest_predictions.png')
    plot_importance(importance, figures_dir / 'fig_forest_importance.png')

    print("\n" + "-" * 60)
    print("SUMMARY")
    print("-" * 60)
    print(f"  Test RMSE (log1p ha): {test_metrics['rmse']:.3f}  "
          f"(mean baseline {base['rmse']:.3f})")
    print(f"  Test R2: {test_metrics['r2']:.3f}")
    print(f"  Test RMSE (ha): {test_metrics['rmse_area']:.2f}")
    print("  Top features:")
    for _, row in importance.head(5).iterrows():
        print(f"    - {row['feature']}: {row['importance']:.4f}")

    qa_for_stage(
        's04_forest', tuning.cv_results,
        additional_metrics={'n_features': X.shape[1], 'test_rmse': round(test_metrics['rmse'], 4)},
    )

    print("\n" + "=" * 60)
    print("Stage 04 complete.")
    print("=" * 60)

    return {'tuning': tuning, 'metrics': metrics, 'importance': importance}


if __name__ == '__main__':
    main(quick='--quick' in sys.argv)
