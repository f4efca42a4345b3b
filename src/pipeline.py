#!/usr/bin/env python3
"""
Module: pipeline.py
Purpose: Main orchestration CLI for the exploratory data analysis pipelines.

Each analysis reads one dataset, cleans it, runs its model or summary and
renders an HTML report. Stages can be run one at a time or chained with
run_analysis.

Commands
--------
# Data Acquisition
fetch_news : Download article search results from the news API
    Options: --query, --pages, --begin, --end
    Output: data_raw/news_articles.csv
ingest_data : Load and standardize a raw dataset
    Options: --dataset, --demo
    Output: data_work/{dataset}_raw.parquet
clean_data : Drop sparse columns and impute or filter missing values
    Options: --dataset, --strategy
    Output: data_work/{dataset}_clean.parquet

# Analyses
cluster_sites : Hierarchical clustering of stream chemistry
    Options: --method (repeatable), --clusters
score_sentiment : Lexicon sentiment of news articles
    Options: --lexicon, --top-n
fit_forest : Tune a random forest for burned area
    Options: --quick
select_models : Rank oxygen linear models by AIC / BIC
    Options: --engine, --criterion, --no-stepwise
plot_amphibians : Amphibian count summaries and plots
    Options: --top-n

# Reports
render_report : Render HTML reports
    Options: --analysis (repeatable)
    Output: reports/*.html

# Chained runs
run_analysis : Ingest, clean, analyse and report one analysis
    Options: <analysis>, --demo

# Stage Discovery
run_stage : Run a specific stage by name
    Options: <stage_name>, --dataset
list_stages : List available stages
    Options: --prefix

Usage
-----
    python src/pipeline.py run_analysis forest --demo
    python src/pipeline.py select_models --engine numpy --criterion bic

Notes
-----
Requires activation of project virtual environment before running.
"""
from __future__ import annotations

import os
import re
import sys
import argparse
import importlib
from pathlib import Path
from typing import Optional

from config import (
    ANALYSES,
    ANALYSIS_ENGINE,
    CLUSTER_LINKAGES,
    DATASETS,
    MISSING_STRATEGIES,
    NEWS_DEFAULT_QUERY,
    NEWS_MAX_PAGES,
    SELECTION_CRITERIA,
    SENTIMENT_LEXICON,
)

# Analysis key -> stage module run by run_analysis
ANALYSIS_STAGES = {
    'clustering': 's02_clustering',
    'sentiment': 's03_sentiment',
    'forest': 's04_forest',
    'oxygen': 's05_regression',
    'amphibians': 's06_amphibians',
}


def ensure_env():
    """Verify virtual environment is activated."""
    venv = os.getenv('VIRTUAL_ENV')
    if not venv or not venv.endswith('/.venv'):
        print(
            'ERROR: Please activate project .venv (source .venv/bin/activate) before running.',
            file=sys.stderr
        )
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    p = argparse.ArgumentParser(
        description='Exploratory Data Analysis Pipelines',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    sub = p.add_subparsers(dest='cmd', required=True)

    # Data Acquisition Commands
    p_fetch = sub.add_parser('fetch_news', help='Download articles from the news API')
    p_fetch.add_argument(
        '--query', '-q',
        default=NEWS_DEFAULT_QUERY,
        help=f'Search query (default: {NEWS_DEFAULT_QUERY})'
    )
    p_fetch.add_argument(
        '--pages',
        type=int,
        default=NEWS_MAX_PAGES,
        help=f'Maximum result pages to request (default: {NEWS_MAX_PAGES})'
    )
    p_fetch.add_argument('--begin', default=None, help='First publication date (YYYY-MM-DD)')
    p_fetch.add_argument('--end', default=None, help='Last publication date (YYYY-MM-DD)')

    p_ingest = sub.add_parser('ingest_data', help='Load and standardize a raw dataset')
    p_ingest.add_argument(
        '--dataset', '-d',
        required=True,
        choices=list(DATASETS),
        help='Dataset to ingest'
    )
    p_ingest.add_argument(
        '--demo',
        action='store_true',
        help='Use synthetic demo data instead of real data'
    )

    p_clean = sub.add_parser('clean_data', help='Handle missing values')
    p_clean.add_argument(
        '--dataset', '-d',
        required=True,
        choices=list(DATASETS),
        help='Dataset to clean'
    )
    p_clean.add_argument(
        '--strategy', '-s',
        default=None,
        choices=list(MISSING_STRATEGIES),
        help='Override the dataset missing-value strategy'
    )

    # Analysis Commands
    p_cluster = sub.add_parser('cluster_sites', help='Cluster stream sites by chemistry')
    p_cluster.add_argument(
        '--method', '-m',
        action='append',
        default=None,
        help=f'Linkage method, repeatable (default: {", ".join(CLUSTER_LINKAGES)})'
    )
    p_cluster.add_argument(
        '--clusters', '-k',
        type=int,
        default=None,
        help='Number of clusters to cut each tree into'
    )

    p_sent = sub.add_parser('score_sentiment', help='Score article sentiment')
    p_sent.add_argument(
        '--lexicon', '-l',
        default=SENTIMENT_LEXICON,
        choices=['vader', 'binary'],
        help=f'Word lexicon (default: {SENTIMENT_LEXICON})'
    )
    p_sent.add_argument('--top-n', type=int, default=None, help='Words shown in contribution plot')

    p_forest = sub.add_parser('fit_forest', help='Tune the burned-area random forest')
    p_forest.add_argument(
        '--quick',
        action='store_true',
        help='Use the reduced tuning grid'
    )

    p_select = sub.add_parser('select_models', help='Rank oxygen linear models')
    p_select.add_argument(
        '--engine', '-e',
        default=None,
        help=f'Linear-model engine (default: {ANALYSIS_ENGINE})'
    )
    p_select.add_argument(
        '--criterion', '-c',
        default=None,
        choices=list(SELECTION_CRITERIA),
        help='Information criterion used for ranking'
    )
    p_select.add_argument(
        '--no-stepwise',
        action='store_true',
        help='Skip stepwise selection'
    )

    p_amph = sub.add_parser('plot_amphibians', help='Summarise amphibian counts')
    p_amph.add_argument('--top-n', type=int, default=None, help='Species shown in trend plot')

    # Report Commands
    p_report = sub.add_parser('render_report', help='Render HTML reports')
    p_report.add_argument(
        '--analysis', '-a',
        action='append',
        choices=list(ANALYSES),
        default=None,
        help='Analysis to render, repeatable (default: all)'
    )

    # Chained Runs
    p_run = sub.add_parser('run_analysis', help='Ingest, clean, analyse and report')
    p_run.add_argument('analysis', choices=list(ANALYSES), help='Analysis to run')
    p_run.add_argument(
        '--demo',
        action='store_true',
        help='Use synthetic demo data instead of real data'
    )

    # Stage Discovery Commands
    p_run_stage = sub.add_parser('run_stage', help='Run a specific stage by name')
    p_run_stage.add_argument(
        'stage_name',
        help='Stage name (e.g., s00_ingest, s04_forest)'
    )
    p_run_stage.add_argument(
        '--dataset', '-d',
        default=None,
        help='Dataset for the ingest and clean stages'
    )

    p_list_stages = sub.add_parser('list_stages', help='List available stages')
    p_list_stages.add_argument(
        '--prefix', '-p',
        default=None,
        help='Filter by stage prefix (e.g., s00, s01)'
    )

    return p


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)


def run_analysis(analysis: str, use_demo: bool = False) -> None:
    """
    Run one analysis end to end: ingest, clean, model, report.

    Parameters
    ----------
    analysis : str
        Key of config.ANALYSES
    use_demo : bool
        Use synthetic demo data instead of files in data_raw/
    """
    from config import get_analysis_dataset
    from stages import s00_ingest, s01_clean, s07_report

    dataset = get_analysis_dataset(analysis)
    s00_ingest.main(dataset, use_demo=use_demo, verbose=False)
    s01_clean.main(dataset)

    stage = importlib.import_module(f'stages.{ANALYSIS_STAGES[analysis]}')
    stage.main()

    s07_report.main([analysis])


def main(argv: Optional[list[str]] = None):
    """Main entry point."""
    ensure_env()
    args = parse_args(argv)

    # Data Acquisition Commands
    if args.cmd == 'fetch_news':
        from utils.news_api import fetch_news
        fetch_news(
            query=args.query,
            max_pages=args.pages,
            begin_date=args.begin,
            end_date=args.end
        )

    elif args.cmd == 'ingest_data':
        from stages import s00_ingest
        s00_ingest.main(args.dataset, use_demo=args.demo)

    elif args.cmd == 'clean_data':
        from stages import s01_clean
        s01_clean.main(args.dataset, strategy=args.strategy)

    # Analysis Commands
    elif args.cmd == 'cluster_sites':
        from stages import s02_clustering
        s02_clustering.main(methods=args.method, n_clusters=args.clusters)

    elif args.cmd == 'score_sentiment':
        from stages import s03_sentiment
        s03_sentiment.main(lexicon=args.lexicon, top_n=args.top_n)

    elif args.cmd == 'fit_forest':
        from stages import s04_forest
        s04_forest.main(quick=args.quick)

    elif args.cmd == 'select_models':
        from stages import s05_regression
        s05_regression.main(
            engine=args.engine,
            criterion=args.criterion,
            stepwise=not args.no_stepwise
        )

    elif args.cmd == 'plot_amphibians':
        from stages import s06_amphibians
        s06_amphibians.main(top_n=args.top_n)

    # Report Commands
    elif args.cmd == 'render_report':
        from stages import s07_report
        s07_report.main(args.analysis)

    elif args.cmd == 'run_analysis':
        run_analysis(args.analysis, use_demo=args.demo)

    # Stage Discovery Commands
    elif args.cmd == 'run_stage':
        kwargs = {'dataset': args.dataset} if args.dataset else {}
        run_stage_by_name(args.stage_name, **kwargs)

    elif args.cmd == 'list_stages':
        list_available_stages(args.prefix)


def discover_stages(prefix: str = None) -> list[tuple[str, str]]:
    """
    Discover available stage modules.

    Parameters
    ----------
    prefix : str, optional
        Filter by stage prefix (e.g., 's00', 's01')

    Returns
    -------
    list[tuple[str, str]]
        List of (stage_name, description) tuples
    """
    stages_dir = Path(__file__).parent / 'stages'
    stages = []

    for f in sorted(stages_dir.glob('s*.py')):
        name = f.stem
        if prefix and not name.startswith(prefix):
            continue

        # Description from the Purpose: line of the docstring
        match = re.search(r'Purpose:\s*(.+?)(?:\n|$)', f.read_text(encoding='utf-8'))
        desc = match.group(1).strip() if match else ''

        stages.append((name, desc))

    return stages


def list_available_stages(prefix: str = None) -> None:
    """List available stage modules."""
    print("Available Pipeline Stages")
    print("=" * 60)

    stages = discover_stages(prefix)

    if not stages:
        if prefix:
            print(f"No stages found with prefix '{prefix}'")
        else:
            print("No stages found")
        return

    for name, desc in stages:
        print(f"  {name:<20} {desc}")

    print()
    print(f"Total: {len(stages)} stage(s)")
    print()
    print("Run a stage with: python src/pipeline.py run_stage <stage_name>")


def run_stage_by_name(stage_name: str, **kwargs) -> bool:
    """
    Run a stage by its module name.

    Parameters
    ----------
    stage_name : str
        Stage module name (e.g., 's00_ingest', 's04_forest')
    **kwargs
        Passed to the stage's main()

    Returns
    -------
    bool
        False if the stage does not exist
    """
    stages_dir = Path(__file__).parent / 'stages'
    stage_file = stages_dir / f'{stage_name}.py'

    if not stage_file.exists():
        print(f"ERROR: Stage '{stage_name}' not found")
        print(f"  Expected file: {stage_file}")
        print()
        print("Available stages:")
        for name, _ in discover_stages():
            print(f"  - {name}")
        return False

    module = importlib.import_module(f'stages.{stage_name}')
    if not hasattr(module, 'main'):
        print(f"ERROR: Stage '{stage_name}' has no main() function")
        return False

    module.main(**kwargs)
    return True


if __name__ == '__main__':
    main()
