#!/usr/bin/env python3
"""
Tokenization and sentiment lexicons.

Text is split into lower-case word tokens with scikit-learn's CountVectorizer
analyzer (English stop words removed). Lexicons come from the VADER package,
which ships its word list with the distribution, so nothing is downloaded at
run time.
"""
from __future__ import annotations

from functools import lru_cache

import pandas as pd
from sklearn.feature_extraction.text import CountVectorizer
from vaderSentiment.vaderSentiment import SentimentIntensityAnalyzer

# Words start with a letter and may contain apostrophes (don't, world's)
TOKEN_PATTERN = r"(?u)\b[a-z][a-z']+\b"

LEXICONS = ('vader', 'binary')


@lru_cache(maxsize=2)
def _analyzer(remove_stopwords: bool):
    vectorizer = CountVectorizer(
        lowercase=True,
        token_pattern=TOKEN_PATTERN,
        stop_words='english' if remove_stopwords else None,
    )
    return vectorizer.build_analyzer()


def tokenize(text, remove_stopwords: bool = True) -> list[str]:
    """Split text into lower-case word tokens; missing text gives []."""
    if text is None or (not isinstance(text, str) and pd.isna(text)):
        return []
    return _analyzer(remove_stopwords)(str(text))


def unnest_tokens(
    df: pd.DataFrame,
    text_col: str,
    id_col: str,
    remove_stopwords: bool = True,
) -> pd.DataFrame:
    """
    One row per token, keeping the document id and token position.

    Parameters
    ----------
    df : pd.DataFrame
        Documents
    text_col : str
        Column holding the text
    id_col : str
        Document identifier column

    Returns
    -------
    pd.DataFrame
        Columns: <id_col>, word, position (0-based within the document)
    """
    for col in (text_col, id_col):
        if col not in df.columns:
            raise ValueError(f"Column not found: {col}")

    rows = [
        (doc_id, word, position)
        for doc_id, text in zip(df[id_col], df[text_col])
        for position, word in enumerate(tokenize(text, remove_stopwords))
    ]
    return pd.DataFrame(rows, columns=[id_col, 'word', 'position'])


@lru_cache(maxsize=1)
def _vader_lexicon() -> dict:
    return dict(SentimentIntensityAnalyzer().lexicon)


def load_lexicon(name: str = 'vader') -> pd.DataFrame:
    """
    Load a word-level sentiment lexicon.

    'vader' keeps VADER's valence scores (roughly -4..4); 'binary' reduces
    each word to its polarity with a score of +1 or -1.

    Returns
    -------
    pd.DataFrame
        Columns: word, score, polarity ('positive' / 'negative')

    Raises
    ------
    ValueError
        If the lexicon name is unknown
    """
    if name not in LEXICONS:
        raise ValueError(f"Unknown lexicon '{name}'. Available: {', '.join(LEXICONS)}")

    lexicon = pd.DataFrame(
        sorted(_vader_lexicon().items()), columns=['word', 'score']
    )
    lexicon = lexicon[lexicon['score'] != 0].reset_index(drop=True)
    lexicon['polarity'] = lexicon['score'].gt(0).map({True: 'positive', False: 'negative'})

    if name == 'binary':
        lexicon['score'] = lexicon['polarity'].map({'positive': 1.0, 'negative': -1.0})

    return lexicon
