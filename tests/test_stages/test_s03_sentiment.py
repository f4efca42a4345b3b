#!/usr/bin/env python3
"""
Tests for src/stages/s03_sentiment.py
"""
from __future__ import annotations

import pytest
import pandas as pd
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent.parent / 'src'))

from stages.s03_sentiment import (
    article_sentiment,
    build_text,
    main,
    score_tokens,
    sentiment_by_group,
    word_contributions,
)
from utils.text import load_lexicon, unnest_tokens


@pytest.fixture
def lexicon():
    return load_lexicon('vader')


@pytest.fixture
def tokens(news_df):
    docs = pd.concat([news_df[['article_id']], build_text(news_df).rename('text')], axis=1)
    return unnest_tokens(docs, 'text', 'article_id')


@pytest.fixture
def scored(tokens, lexicon):
    return score_tokens(tokens, lexicon)


@pytest.fixture
def sentiment(news_df, tokens, scored):
    return article_sentiment(news_df, tokens, scored)


class TestBuildText:

    def test_joins_fields_skipping_missing(self, news_df):
        text = build_text(news_df)
        assert text[0] == 'Good news for the river A great and happy result.'
        assert text[3] == 'Happy happy day Good.'

    def test_custom_fields(self, news_df):
        assert build_text(news_df, ['headline'])[1] == 'Terrible flood'

    def test_no_fields_present(self, news_df):
        assert (build_text(news_df, ['body']) == '').all()


class TestScoreTokens:

    def test_inner_join(self, tokens, scored):
        assert len(scored) < len(tokens)
        assert set(scored.columns) >= {'article_id', 'word', 'score', 'polarity'}
        assert 'happy' in set(scored['word'])


class TestArticleSentiment:

    def test_labels(self, sentiment):
        labels = sentiment.set_index('article_id')['label']
        assert labels['a1'] == 'positive'
        assert labels['a2'] == 'negative'
        assert labels['a4'] == 'positive'

    def test_counts_consistent(self, sentiment):
        assert (sentiment['n_scored'] <= sentiment['n_words']).all()
        assert (sentiment['n_positive'] + sentiment['n_negative'] == sentiment['n_scored']).all()
        assert (sentiment['net_polarity'] == sentiment['n_positive'] - sentiment['n_negative']).all()

    def test_repeated_word_counted_twice(self, sentiment, scored):
        a4_words = scored.loc[scored['article_id'] == 'a4', 'word'].tolist()
        assert a4_words.count('happy') == 2
        a4 = sentiment.set_index('article_id').loc['a4']
        assert a4['score_sum'] == pytest.approx(scored.loc[scored['article_id'] == 'a4', 'score'].sum())

    def test_article_without_scored_words_is_neutral(self, news_df, tokens, lexicon):
        scored = score_tokens(tokens, lexicon[lexicon['word'] == 'zzz'])
        out = article_sentiment(news_df, tokens, scored)
        assert (out['label'] == 'neutral').all()
        assert (out['score_mean'] == 0).all()

    def test_keeps_section_and_date(self, sentiment):
        assert {'section', 'pub_date', 'compound'} <= set(sentiment.columns)

    def test_vader_compound_agrees_in_sign(self, sentiment):
        compound = sentiment.set_index('article_id')['compound']
        assert compound['a1'] > 0
        assert compound['a2'] < 0


class TestWordContributions:

    def test_ordered_by_absolute_contribution(self, scored):
        contrib = word_contributions(scored, top_n=10)
        assert list(contrib.columns) == ['word', 'n', 'score', 'contribution', 'polarity']
        magnitudes = contrib['contribution'].abs().tolist()
        assert magnitudes == sorted(magnitudes, reverse=True)

    def test_top_n_per_polarity(self, scored):
        contrib = word_contributions(scored, top_n=1)
        assert len(contrib) == 2
        assert set(contrib['polarity']) == {'positive', 'negative'}

    def test_empty(self, scored):
        assert word_contributions(scored.iloc[0:0]).empty


class TestSentimentByGroup:

    def test_by_section(self, sentiment):
        table = sentiment_by_group(sentiment, 'section')
        assert set(table['section']) == {'Science', 'U.S.'}
        science = table.set_index('section').loc['Science']
        assert science['n_articles'] == 2
        assert science['share_positive'] == pytest.approx(1.0)

    def test_by_month(self, sentiment):
        table = sentiment_by_group(sentiment, 'month')
        assert table['month'].tolist() == ['2023-01', '2023-02']
        assert table['n_articles'].tolist() == [2, 2]

    def test_unknown_column(self, sentiment):
        with pytest.raises(ValueError, match='Grouping column not found'):
            sentiment_by_group(sentiment, 'desk')

    def test_month_needs_dates(self, sentiment):
        with pytest.raises(ValueError, match='pub_date'):
            sentiment_by_group(sentiment.drop(columns='pub_date'), 'month')


class TestMain:

    def test_writes_tables_and_figures(self, workspace, news_df):
        news_df.to_parquet(workspace['data_work'] / 'news_articles_clean.parquet')

        sentiment = main()

        assert len(sentiment) == 4
        for name in ('article_sentiment', 'word_contributions', 'sentiment_by_section', 'sentiment_by_month'):
            assert (workspace['diagnostics'] / f'{name}.csv').exists()
        assert (workspace['figures'] / 'fig_sentiment_words.png').exists()
        assert (workspace['figures'] / 'fig_sentiment_time.png').exists()

    def test_binary_lexicon(self, workspace, news_df):
        news_df.to_parquet(workspace['data_work'] / 'news_articles_clean.parquet')
        sentiment = main(lexicon='binary')
        assert (sentiment['score_sum'] == sentiment['net_polarity']).all()

    def test_missing_input(self, workspace):
        with pytest.raises(SystemExit):
            main()
