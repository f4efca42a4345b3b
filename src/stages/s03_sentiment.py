#!/usr/bin/env python3
"""
Stage 03: News Sentiment

Purpose: Score news articles by joining their tokens against a sentiment lexicon.

Article text (headline, abstract and lead paragraph) is tokenized one word per
row, inner-joined with the lexicon, and the scored words are summed per
article. VADER's rule-based compound score on the full text is reported
alongside as a check on the plain word-sum.

Input Files
-----------
- data_work/news_articles_clean.parquet

Output Files
------------
- data_work/diagnostics/article_sentiment.csv
- data_work/diagnostics/word_contributions.csv
- data_work/diagnostics/sentiment_by_section.csv
- data_work/diagnostics/sentiment_by_month.csv
- figures/fig_sentiment_words.png
- figures/fig_sentiment_time.png
- figures/fig_sentiment_sections.png

Usage
-----
    python src/pipeline.py score_sentiment
    python src/pipeline.py score_sentiment --lexicon binary --top-n 10
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from vaderSentiment.vaderSentiment import SentimentIntensityAnalyzer

from config import SENTIMENT_LEXICON, SENTIMENT_TEXT_FIELDS, SENTIMENT_TOP_N_WORDS
from utils.helpers import get_data_dir, get_figures_dir, load_data, save_diagnostic
from utils.figure_style import apply_style, get_color_palette, save_figure
from utils.text import load_lexicon, unnest_tokens
from stages._qa_utils import qa_for_stage


# ============================================================
# CONFIGURATION
# ============================================================

INPUT_FILE = 'news_articles_clean.parquet'
ID_COL = 'article_id'


# ============================================================
# SCORING
# ============================================================

def build_text(df: pd.DataFrame, fields: Optional[list[str]] = None) -> pd.Series:
    """Concatenate the text fields of each article (missing fields count as '')."""
    fields = [f for f in (fields or SENTIMENT_TEXT_FIELDS) if f in df.columns]
    if not fields:
        return pd.Series('', index=df.index, dtype=object)
    parts = df[fields].fillna('').astype(str)
    return parts.apply(lambda row: ' '.join(p for p in row if p), axis=1)


def score_tokens(tokens: pd.DataFrame, lexicon: pd.DataFrame) -> pd.DataFrame:
    """Keep only tokens found in the lexicon, with their score and polarity."""
    return tokens.merge(lexicon[['word', 'score', 'polarity']], on='word', how='inner')


def article_sentiment(
    articles: pd.DataFrame,
    tokens: pd.DataFrame,
    scored: pd.DataFrame,
    id_col: str = ID_COL,
) -> pd.DataFrame:
    """
    Per-article sentiment from the scored tokens.

    Articles with no scored words get score_sum 0, score_mean 0 and the
    label 'neutral'.

    Returns
    -------
    pd.DataFrame
        id, section/pub_date (when present), n_words, n_scored, n_positive,
        n_negative, score_sum, score_mean, net_polarity, label, compound
    """
    ids = articles[id_col]
    n_words = tokens.groupby(id_col).size()
    grouped = scored.groupby(id_col)

    out = pd.DataFrame({id_col: ids.values})
    out['n_words'] = ids.map(n_words).fillna(0).astype(int).values
    out['n_scored'] = ids.map(grouped.size()).fillna(0).astype(int).values
    out['n_positive'] = ids.map(
        scored[scored['polarity'] == 'positive'].groupby(id_col).size()
    ).fillna(0).astype(int).values
    out['n_negative'] = ids.map(
        scored[scored['polarity'] == 'negative'].groupby(id_col).size()
    ).fillna(0).astype(int).values
    out['score_sum'] = ids.map(grouped['score'].sum()).fillna(0.0).values
    out['score_mean'] = np.where(out['n_scored'] > 0, out['score_sum'] / out['n_scored'].clip(lower=1), 0.0)
    out['net_polarity'] = out['n_positive'] - out['n_negative']
    out['label'] = np.select(
        [out['score_sum'] > 0, out['score_sum'] < 0], ['positive', 'negative'], default='neutral'
    )

    analyzer = SentimentIntensityAnalyzer()
    out['compound'] = [analyzer.polarity_scores(t)['compound'] for t in build_text(articles)]

    for col in ('section', 'pub_date'):
        if col in articles.columns:
            out.insert(1, col, articles[col].values)
    return out


def word_contributions(scored: pd.DataFrame, top_n: int = SENTIMENT_TOP_N_WORDS) -> pd.DataFrame:
    """
    Words that move the overall sentiment most (count x score).

    Returns the top_n positive and top_n negative words ordered by absolute
    contribution.
    """
    columns = ['word', 'n', 'score', 'contribution', 'polarity']
    if scored.empty:
        return pd.DataFrame(columns=columns)

    words = (scored.groupby('word')
        .agg(n=('word', 'size'), score=('score', 'first'), polarity=('polarity', 'first'))
        .reset_index())
    words['contribution'] = words['n'] * words['score']

    positive = words[words['contribution'] > 0].nlargest(top_n, 'contribution')
    negative = words[words['contribution'] < 0].nsmallest(top_n, 'contribution')
    top = pd.concat([positive, negative])
    top = top.reindex(top['contribution'].abs().sort_values(ascending=False).index)
    return top[columns].reset_index(drop=True)


def sentiment_by_group(sentiment: pd.DataFrame, by: str) -> pd.DataFrame:
    """
    Mean sentiment per group; by='month' groups on pub_date months.

    Raises
    ------
    ValueError
        If the grouping column is absent
    """
    if by == 'month':
        if 'pub_date' not in sentiment.columns:
            raise ValueError("Grouping by month needs a pub_date column")
        key = pd.to_datetime(sentiment['pub_date']).dt.to_period('M').astype(str).rename('month')
    elif by in sentiment.columns:
        key = sentiment[by]
    else:
        raise ValueError(f"Grouping column not found: {by}")

    grouped = sentiment.assign(is_positive=sentiment['label'].eq('positive')).groupby(key)
    table = grouped.agg(
        n_articles=('label', 'size'),
        mean_score=('score_sum', 'mean'),
        mean_compound=('compound', 'mean'),
        share_positive=('is_positive', 'mean'),
    )
    return table.reset_index()


# ============================================================
# FIGURES
# ============================================================

def plot_word_contributions(contrib: pd.DataFrame, output_path: Path) -> Path:
    apply_style()
    colors = get_color_palette('sentiment')
    data = contrib.sort_values('contribution')
    fig, ax = plt.subplots(figsize=(7, max(3.0, 0.25 * len(data))))
    ax.barh(
        data['word'], data['contribution'],
        color=[colors[0] if c > 0 else colors[1] for c in data['contribution']],
    )
    ax.axvline(0, color='black', linewidth=0.8)
    ax.set_xlabel('Contribution to sentiment (count x score)')
    ax.set_title('Words driving sentiment')
    path = save_figure(fig, output_path)
    plt.close(fig)
    return path


def plot_sentiment_over_time(by_month: pd.DataFrame, output_path: Path) -> Path:
    apply_style()
    colors = get_color_palette('default')
    fig, ax = plt.subplots()
    ax.plot(by_month['month'], by_month['mean_score'], marker='o', color=colors[0], label='Lexicon sum')
    ax2 = ax.twinx()
    ax2.plot(by_month['month'], by_month['mean_compound'], marker='s', color=colors[4], label='VADER compound')
    ax2.grid(False)
    ax.axhline(0, color='grey', linewidth=0.8)
    ax.set_xlabel('Month')
    ax.set_ylabel('Mean lexicon score per article')
    ax2.set_ylabel('Mean compound score')
    ax.tick_params(axis='x', rotation=45)
    ax.set_title('Sentiment over time')
    fig.legend(loc='upper right', bbox_to_anchor=(0.9, 0.9))
    path = save_figure(fig, output_path)
    plt.close(fig)
    return path


def plot_sentiment_by_section(sentiment: pd.DataFrame, output_path: Path) -> Path:
    apply_style()
    sections = sorted(sentiment['section'].dropna().unique())
    data = [sentiment.loc[sentiment['section'] == s, 'score_sum'] for s in sections]
    fig, ax = plt.subplots()
    ax.boxplot(data, showmeans=True)
    ax.set_xticks(range(1, len(sections) + 1))
    ax.set_xticklabels(sections)
    ax.axhline(0, color='grey', linewidth=0.8)
    ax.set_ylabel('Article sentiment (lexicon sum)')
    ax.set_title('Sentiment by section')
    ax.tick_params(axis='x', rotation=30)
    path = save_figure(fig, output_path)
    plt.close(fig)
    return path


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(lexicon: str = SENTIMENT_LEXICON, top_n: Optional[int] = None) -> pd.DataFrame:
    """Score every article and write the sentiment tables and figures."""
    print("=" * 60)
    print("Stage 03: News Sentiment")
    print("=" * 60)

    top_n = top_n or SENTIMENT_TOP_N_WORDS
    input_path = get_data_dir('work') / INPUT_FILE
    figures_dir = get_figures_dir()

    if not input_path.exists():
        print(f"ERROR: Input file not found: {input_path}")
        print("Run: python src/pipeline.py run_analysis sentiment")
        sys.exit(1)

    articles = load_data(input_path)
    print(f"\n  Articles: {len(articles):,}")

    lex = load_lexicon(lexicon)
    print(f"  Lexicon: {lexicon} ({len(lex):,} words)")

    text = build_text(articles).rename('text')
    docs = pd.concat([articles[[ID_COL]], text], axis=1)
    tokens = unnest_tokens(docs, 'text', ID_COL)
    scored = score_tokens(tokens, lex)
    print(f"  -> {len(tokens):,} tokens, {len(scored):,} matched the lexicon")

    sentiment = article_sentiment(articles, tokens, scored)
    save_diagnostic(sentiment, 'article_sentiment')

    contrib = word_contributions(scored, top_n)
    save_diagnostic(contrib, 'word_contributions')
    if not contrib.empty:
        plot_word_contributions(contrib, figures_dir / 'fig_sentiment_words.png')

    if 'section' in sentiment.columns:
        by_section = sentiment_by_group(sentiment, 'section')
        save_diagnostic(by_section, 'sentiment_by_section')
        plot_sentiment_by_section(sentiment, figures_dir / 'fig_sentiment_sections.png')

    if 'pub_date' in sentiment.columns:
        by_month = sentiment_by_group(sentiment, 'month')
        save_diagnostic(by_month, 'sentiment_by_month')
        plot_sentiment_over_time(by_month, figures_dir / 'fig_sentiment_time.png')

    counts = sentiment['label'].value_counts()
    print("\n" + "-" * 60)
    print("SUMMARY")
    print("-" * 60)
    for label in ('positive', 'negative', 'neutral'):
        print(f"  {label}: {int(counts.get(label, 0)):,}")
    print(f"  Mean score per article: {sentiment['score_sum'].mean():.3f}")
    print(f"  Corr(lexicon sum, VADER compound): "
          f"{sentiment['score_sum'].corr(sentiment['compound']):.3f}")

    qa_for_stage(
        's03_sentiment', sentiment,
        additional_metrics={'lexicon': lexicon, 'n_tokens': len(tokens), 'n_scored_tokens': len(scored)},
    )

    print("\n" + "=" * 60)
    print("Stage 03 complete.")
    print("=" * 60)

    return sentiment


if __name__ == '__main__':
    main()
