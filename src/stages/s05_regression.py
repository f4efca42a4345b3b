#!/usr/bin/env python3
"""
Stage 05: Oxygen Linear-Model Selection

Purpose: Compare candidate linear models of dissolved-oxygen saturation by AIC/BIC.

The candidate models in specifications.yml are fitted on a common set of
rows (complete cases over every variable any candidate uses) so their
information criteria are comparable. A greedy stepwise search over the
candidate predictors is run alongside. The best model's coefficients and
residual diagnostics are written for the report.

Input Files
-----------
- data_work/oxygen_clean.parquet
- specifications.yml

Output Files
------------
- data_work/diagnostics/oxygen_model_comparison.csv
- data_work/diagnostics/oxygen_best_coefficients.csv
- data_work/diagnostics/oxygen_stepwise_path.csv
- figures/fig_oxygen_criteria.png
- figures/fig_oxygen_residuals.png

Usage
-----
    python src/pipeline.py select_models
    python src/pipeline.py select_models --engine numpy --criterion bic --no-stepwise
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Union
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from scipy import stats

from config import (
    CONFIDENCE_LEVEL,
    OXYGEN_CANDIDATES,
    OXYGEN_CATEGORICAL,
    OXYGEN_OUTCOME,
    SELECTION_CRITERIA,
    SELECTION_CRITERION,
)
from analysis import (
    LinearEngine,
    ModelFit,
    create_specification,
    get_engine,
    load_specifications,
    validate_specification,
)
from utils.helpers import (
    add_significance_stars,
    get_data_dir,
    get_figures_dir,
    load_data,
    save_diagnostic,
)
from utils.figure_style import apply_style, get_color_palette, get_figure_double, save_figure
from stages._qa_utils import qa_for_stage


# ============================================================
# CONFIGURATION
# ============================================================

INPUT_FILE = 'oxygen_clean.parquet'

DIRECTIONS = ('forward', 'backward', 'both')


# ============================================================
# FITTING AND COMPARISON
# ============================================================

def _check_criterion(criterion: str) -> None:
    if criterion not in SELECTION_CRITERIA:
        raise ValueError(f"Unknown criterion '{criterion}'. Use one of {SELECTION_CRITERIA}")


def common_rows(df: pd.DataFrame, specs: Iterable[dict]) -> pd.DataFrame:
    """Complete cases over every column used by any specification."""
    columns = []
    for spec in specs:
        for col in [spec['outcome']] + list(spec.get('predictors') or []):
            if col in df.columns and col not in columns:
                columns.append(col)
    return df[columns].dropna().reset_index(drop=True)


def fit_candidates(
    df: pd.DataFrame,
    specs: Union[list[dict], dict[str, dict]],
    engine: Optional[LinearEngine] = None,
) -> list[ModelFit]:
    """
    Fit every candidate on the same rows.

    Parameters
    ----------
    df : pd.DataFrame
        Cleaned observations
    specs : list[dict] or dict
        Specifications (a name -> spec mapping is accepted too)
    engine : LinearEngine, optional
        Engine to use (default: ANALYSIS_ENGINE)

    Returns
    -------
    list[ModelFit]
        One fit per candidate that could be fitted
    """
    if isinstance(specs, dict):
        specs = [dict(spec, name=name) for name, spec in specs.items()]
    engine = engine or get_engine(confidence_level=CONFIDENCE_LEVEL)
    return engine.fit_batch(common_rows(df, specs), specs)


def matching_fit(fits: Iterable[ModelFit], outcome: str, predictors: Iterable[str]) -> Optional[ModelFit]:
    """The fit with the same outcome and predictor set, if any (order ignored)."""
    wanted = set(predictors)
    for fit in fits:
        if fit.outcome == outcome and set(fit.predictors) == wanted:
            return fit
    return None


def compare_models(fits: list[ModelFit], criterion: str = SELECTION_CRITERION) -> pd.DataFrame:
    """
    Rank fitted models by an information criterion (lower is better).

    Adds delta (difference from the best) and weight
    (exp(-delta/2) normalised to sum to 1).

    Raises
    ------
    ValueError
        If the criterion is not 'aic' or 'bic', or there are no fits
    """
    _check_criterion(criterion)
    if not fits:
        raise ValueError("No fitted models to compare")

    table = pd.DataFrame([f.summary_row() for f in fits])
    table = table.sort_values([criterion, 'n_params']).reset_index(drop=True)
    table['delta'] = table[criterion] - table[criterion].min()
    rel = np.exp(-0.5 * table['delta'])
    table['weight'] = rel / rel.sum()
    table.insert(0, 'rank', np.arange(1, len(table) + 1))
    return table


def stepwise_selection(
    df: pd.DataFrame,
    outcome: str,
    candidates: list[str],
    criterion: str = SELECTION_CRITERION,
    direction: str = 'both',
    engine: Optional[LinearEngine] = None,
    categorical: Iterable[str] = (),
) -> tuple[list[str], pd.DataFrame]:
    """
    Greedy stepwise search by information criterion.

    Forward and both start from the intercept-only model, backward from the
    full model. Each step takes the single add (or drop) that lowers the
    criterion most, and the search stops when no move lowers it.

    Returns
    -------
    tuple
        (selected predictors, path with one row per step)

    Raises
    ------
    ValueError
        If the criterion or direction is unknown
    """
    _check_criterion(criterion)
    if direction not in DIRECTIONS:
        raise ValueError(f"Unknown direction '{direction}'. Use one of {DIRECTIONS}")

    engine = engine or get_engine(confidence_level=CONFIDENCE_LEVEL)
    candidates = [c for c in candidates if c in df.columns and c != outcome]
    categorical = list(categorical)
    data = df[[outcome] + candidates].dropna().reset_index(drop=True)

    def score(predictors: list[str]) -> float:
        spec = create_specification('stepwise', outcome, predictors, categorical)
        return getattr(engine.fit(data, spec), criterion)

    current = [] if direction in ('forward', 'both') else list(candidates)
    current_score = score(current)
    path = [{
        'step': 0, 'action': 'start', 'variable': '',
        'n_predictors': len(current), criterion: current_score,
        'predictors': ' + '.join(current) or '1',
    }]

    while True:
        moves = []
        if direction in ('forward', 'both'):
            moves += [('add', v, current + [v]) for v in candidates if v not in current]
        if direction in ('backward', 'both'):
            moves += [('drop', v, [p for p in current if p != v]) for v in current]
        if not moves:
            break

        scored = [(score(preds), action, var, preds) for action, var, preds in moves]
        best_score, action, var, preds = min(scored, key=lambda m: m[0])
        if best_score >= current_score:
            break

        current, current_score = preds, best_score
        path.append({
            'step': len(path), 'action': action, 'variable': var,
            'n_predictors': len(current), criterion: current_score,
            'predictors': ' + '.join(current) or '1',
        })

    return current, pd.DataFrame(path)


def coefficient_table(fit: ModelFit) -> pd.DataFrame:
    """Estimates, standard errors, tests and intervals per term."""
    rows = []
    for term, coef in fit.coefficients.items():
        p = fit.p_values.get(term, np.nan)
        rows.append({
            'term': term,
            'estimate': coef,
            'std_error': fit.std_errors.get(term, np.nan),
            't_stat': fit.t_stats.get(term, np.nan),
            'p_value': p,
            'ci_lower': fit.ci_lower.get(term, np.nan),
            'ci_upper': fit.ci_upper.get(term, np.nan),
            'signif': add_significance_stars(p) if pd.notna(p) else '',
        })
    return pd.DataFrame(rows)


# ============================================================
# FIGURES
# ============================================================

def plot_criteria(comparison: pd.DataFrame, output_path: Path) -> Path:
    """Delta-AIC and delta-BIC per candidate, best first."""
    apply_style()
    colors = get_color_palette('default')
    data = comparison.copy()
    data['delta_aic'] = data['aic'] - data['aic'].min()
    data['delta_bic'] = data['bic'] - data['bic'].min()

    y = np.arange(len(data))
    fig, ax = plt.subplots(figsize=(7, max(3.0, 0.45 * len(data))))
    ax.barh(y - 0.2, data['delta_aic'], height=0.4, color=colors[1], label='AIC')
    ax.barh(y + 0.2, data['delta_bic'], height=0.4, color=colors[3], label='BIC')
    ax.set_yticks(y)
    ax.set_yticklabels(data['specification'])
    ax.invert_yaxis()
    ax.set_xlabel('Difference from best model')
    ax.set_title('Information criteria by candidate model')
    ax.legend()
    path = save_figure(fig, output_path)
    plt.close(fig)
    return path


def plot_residuals(fit: ModelFit, output_path: Path) -> Path:
    """Residuals against fitted values and a normal Q-Q plot."""
    apply_style()
    colors = get_color_palette('default')
    fitted = np.asarray(fit.fitted_values)
    resid = np.asarray(fit.residuals)

    fig = get_figure_double()
    ax1, ax2 = fig.subplots(1, 2)
    ax1.scatter(fitted, resid, s=14, alpha=0.6, color=colors[1])
    ax1.axhline(0, color='grey', linestyle='--', linewidth=1)
    ax1.set_xlabel('Fitted DO saturation (%)')
    ax1.set_ylabel('Residual')
    ax1.set_title('Residuals vs fitted')

    (osm, osr), (slope, intercept, _) = stats.probplot(resid, dist='norm')
    ax2.scatter(osm, osr, s=14, alpha=0.6, color=colors[0])
    ax2.plot(osm, slope * osm + intercept, color=colors[4], linewidth=1)
    ax2.set_xlabel('Theoretical quantiles')
    ax2.set_ylabel('Ordered residuals')
    ax2.set_title('Normal Q-Q')

    fig.suptitle(f'Diagnostics: {fit.specification}')
    path = save_figure(fig, output_path)
    plt.close(fig)
    return path


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def load_candidate_specs(path: Optional[Path] = None) -> list[dict]:
    """Named, valid specifications; invalid ones are reported and skipped."""
    specs = []
    for name, spec in load_specifications(path).items():
        spec = dict(spec, name=name)
        spec['predictors'] = list(spec.get('predictors') or [])
        errors = validate_specification(spec)
        if errors:
            print(f"  WARNING: Skipping specification '{name}': {'; '.join(errors)}")
            continue
        specs.append(spec)
    return specs


def main(
    engine: Optional[str] = None,
    criterion: Optional[str] = None,
    stepwise: bool = True,
) -> pd.DataFrame:
    """Fit, rank and diagnose the oxygen candidate models."""
    print("=" * 60)
    print("Stage 05: Oxygen Linear-Model Selection")
    print("=" * 60)

    criterion = criterion or SELECTION_CRITERION
    _check_criterion(criterion)
    input_path = get_data_dir('work') / INPUT_FILE
    figures_dir = get_figures_dir()

    if not input_path.exists():
        print(f"ERROR: Input file not found: {input_path}")
        print("Run: python src/pipeline.py run_analysis oxygen")
        sys.exit(1)

    df = load_data(input_path)
    model_engine = get_engine(engine, confidence_level=CONFIDENCE_LEVEL)
    print(f"\n  Engine: {model_engine.name} ({model_engine.version})")
    print(f"  Criterion: {criterion.upper()}")

    specs = load_candidate_specs()
    data = common_rows(df, specs)
    print(f"  Candidates: {len(specs)}  Common rows: {len(data):,}")

    fits = fit_candidates(data, specs, model_engine)

    path = pd.DataFrame()
    if stepwise:
        selected, path = stepwise_selection(
            data, OXYGEN_OUTCOME, OXYGEN_CANDIDATES,
            criterion=criterion, engine=model_engine, categorical=OXYGEN_CATEGORICAL,
        )
        print(f"  -> Stepwise ({criterion.upper()}) selected: {' + '.join(selected) or 'intercept only'}")
        # A model already among the candidates is ranked once
        same = matching_fit(fits, OXYGEN_OUTCOME, selected)
        if same is not None:
            print(f"  -> Same model as candidate '{same.specification}'; not added again")
        else:
            stepwise_spec = create_specification(
                f'stepwise_{criterion}', OXYGEN_OUTCOME, selected, OXYGEN_CATEGORICAL,
            )
            fits += model_engine.fit_batch(data, [stepwise_spec])
        save_diagnostic(path, 'oxygen_stepwise_path')

    if not fits:
        print("\nERROR: No candidate model could be fitted. Aborting.")
        sys.exit(1)

    comparison = compare_models(fits, criterion)
    save_diagnostic(comparison, 'oxygen_model_comparison')

    best_name = comparison.loc[0, 'specification']
    best = next(f for f in fits if f.specification == best_name)
    coefficients = coefficient_table(best)
    save_diagnostic(coefficients, 'oxygen_best_coefficients')

    plot_criteria(comparison, figures_dir / 'fig_oxygen_criteria.png')
    plot_residuals(best, figures_dir / 'fig_oxygen_residuals.png')

    print("\n" + "-" * 60)
    print("SUMMARY")
    print("-" * 60)
    for _, row in comparison.iterrows():
        print(f"  {row['rank']}. {row['specification']:<18} {criterion.upper()}={row[criterion]:9.2f}  "
              f"delta={row['delta']:6.2f}  weight={row['weight']:.3f}")
    print(f"\n  Best model: {best.formula}")
    print(f"  R2 = {best.r_squared:.3f}, adj. R2 = {best.adj_r_squared:.3f}")
    for term in best.coefficients:
        print(f"    {term:<24} {best.format_coefficient(term)}")
    for note in best.warnings:
        print(f"  WARNING: {note}")

    qa_for_stage(
        's05_regression', comparison,
        additional_metrics={'engine': model_engine.name, 'criterion': criterion, 'n_obs': best.n_obs},
    )

    print("\n" + "=" * 60)
    print("Stage 05 complete.")
    print("=" * 60)

    return comparison


if __name__ == '__main__':
    main()
