#!/usr/bin/env python3
"""
Tests for src/utils/text.py
"""
from __future__ import annotations

from pathlib import Path
import sys

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent / 'src'))

from utils.text import load_lexicon, tokenize, unnest_tokens


class TestTokenize:

    def test_lowercases_and_strips_punctuation(self):
        assert tokenize('Rivers, Floods!', remove_stopwords=False) == ['rivers', 'floods']

    def test_removes_stop_words(self):
        tokens = tokenize('The river and the lake')
        assert 'the' not in tokens
        assert 'and' not in tokens
        assert tokens == ['river', 'lake']

    def test_keeps_stop_words_when_asked(self):
        assert 'the' in tokenize('The river', remove_stopwords=False)

    def test_drops_numbers_and_single_letters(self):
        assert tokenize('2023 a b river', remove_stopwords=False) == ['river']

    def test_keeps_apostrophes(self):
        assert "world's" in tokenize("The world's oceans", remove_stopwords=False)

    @pytest.mark.parametrize('value', [None, np.nan, ''])
    def test_missing_text(self, value):
        assert tokenize(value) == []


class TestUnnestTokens:

    def test_one_row_per_token(self):
        docs = pd.DataFrame({'doc': ['d1', 'd2'], 'text': ['Good river', 'Bad flood damage']})
        tokens = unnest_tokens(docs, 'text', 'doc')
        assert list(tokens.columns) == ['doc', 'word', 'position']
        assert tokens.groupby('doc').size().to_dict() == {'d1': 2, 'd2': 3}
        assert tokens[tokens['doc'] == 'd2']['position'].tolist() == [0, 1, 2]

    def test_document_without_text_has_no_rows(self):
        docs = pd.DataFrame({'doc': ['d1', 'd2'], 'text': ['river', None]})
        tokens = unnest_tokens(docs, 'text', 'doc')
        assert set(tokens['doc']) == {'d1'}

    def test_missing_column_raises(self):
        with pytest.raises(ValueError, match='Column not found'):
            unnest_tokens(pd.DataFrame({'doc': [1]}), 'text', 'doc')


class TestLoadLexicon:

    def test_vader_columns_and_polarity(self):
        lex = load_lexicon('vader')
        assert list(lex.columns) == ['word', 'score', 'polarity']
        assert (lex['score'] != 0).all()
        assert (lex.loc[lex['score'] > 0, 'polarity'] == 'positive').all()
        assert (lex.loc[lex['score'] < 0, 'polarity'] == 'negative').all()

    def test_vader_known_words(self):
        lex = load_lexicon('vader').set_index('word')
        assert lex.loc['good', 'score'] > 0
        assert lex.loc['terrible', 'score'] < 0

    def test_binary_scores_are_unit(self):
        lex = load_lexicon('binary')
        assert set(lex['score'].unique()) == {1.0, -1.0}
        assert len(lex) == len(load_lexicon('vader'))

    def test_unknown_lexicon(self):
        with pytest.raises(ValueError, match='Unknown lexicon'):
            load_lexicon('nrc')
