#!/usr/bin/env python3
"""
Client for the paginated article search API.

Pages are requested one after another with a fixed pause between requests to
stay under the API's rate limit. The API key is read from the environment
(NYT_API_KEY) unless passed explicitly; it is never stored in config.

Usage
-----
    from utils.news_api import NewsAPIClient, articles_to_frame

    client = NewsAPIClient()
    docs = client.fetch_articles('drought', max_pages=3, begin_date='2023-01-01')
    df = articles_to_frame(docs)
"""
from __future__ import annotations

import json
import os
import sys
import time
from datetime import date
from pathlib import Path
from typing import Callable, Iterator, Optional, Union
from urllib.parse import urlencode
from urllib.request import Request, urlopen

sys.path.insert(0, str(Path(__file__).parent.parent))

import pandas as pd

from config import (
    NEWS_API_KEY_ENV,
    NEWS_API_URL,
    NEWS_DEFAULT_QUERY,
    NEWS_MAX_PAGES,
    NEWS_PAGE_SIZE,
    NEWS_RATE_LIMIT_SECONDS,
    NEWS_TIMEOUT_SECONDS,
)
from utils.helpers import ensure_dir, get_data_dir


# The API refuses page numbers above this
MAX_API_PAGE = 100

# Raw layout written for the news_articles dataset
RAW_COLUMNS = ['_id', 'headline.main', 'abstract', 'lead_paragraph', 'pub_date', 'section_name', 'web_url']

USER_AGENT = 'eda-pipelines/0.1'

DateLike = Union[str, date, None]


def _format_date(value: DateLike) -> Optional[str]:
    """Render a date as YYYYMMDD (accepts '2023-01-31', '20230131' or date)."""
    if value is None or value == '':
        return None
    return pd.Timestamp(value).strftime('%Y%m%d')


class NewsAPIClient:
    """
    Sequential, rate-limited reader of article search results.

    Parameters
    ----------
    api_key : str, optional
        API key (default: value of the NYT_API_KEY environment variable)
    base_url : str
        Search endpoint
    page_size : int
        Documents per full page; a shorter page ends pagination
    rate_limit_seconds : float
        Pause between consecutive page requests
    timeout : float
        Socket timeout per request
    sleep : callable
        Function used to pause (replaceable in tests)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = NEWS_API_URL,
        page_size: int = NEWS_PAGE_SIZE,
        rate_limit_seconds: float = NEWS_RATE_LIMIT_SECONDS,
        timeout: float = NEWS_TIMEOUT_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_key = api_key or os.environ.get(NEWS_API_KEY_ENV)
        if not self.api_key:
            raise ValueError(
                f"No API key given. Pass api_key or set the {NEWS_API_KEY_ENV} environment variable."
            )
        if rate_limit_seconds < 0:
            raise ValueError(f"rate_limit_seconds must be non-negative: {rate_limit_seconds}")

        self.base_url = base_url
        self.page_size = page_size
        self.rate_limit_seconds = rate_limit_seconds
        self.timeout = timeout
        self.sleep = sleep

    def build_url(
        self,
        query: str,
        page: int,
        begin_date: DateLike = None,
        end_date: DateLike = None,
    ) -> str:
        """Full request URL for one page of results."""
        if page < 0 or page > MAX_API_PAGE:
            raise ValueError(f"page must be in [0, {MAX_API_PAGE}]: {page}")

        params = {'q': query, 'page': page}
        if _format_date(begin_date):
            params['begin_date'] = _format_date(begin_date)
        if _format_date(end_date):
            params['end_date'] = _format_date(end_date)
        params['api-key'] = self.api_key
        return f"{self.base_url}?{urlencode(params)}"

    def fetch_page(
        self,
        query: str,
        page: int,
        begin_date: DateLike = None,
        end_date: DateLike = None,
    ) -> dict:
        """
        Request one page and decode the JSON body.

        HTTP and network errors (urllib.error.HTTPError / URLError) propagate.
        """
        url = self.build_url(query, page, begin_date, end_date)
        req = Request(url, headers={'User-Agent': USER_AGENT, 'Accept': 'application/json'})
        with urlopen(req, timeout=self.timeout) as response:
            return json.loads(response.read().decode('utf-8'))

    def iter_articles(
        self,
        query: str,
        max_pages: int = NEWS_MAX_PAGES,
        begin_date: DateLike = None,
        end_date: DateLike = None,
    ) -> Iterator[dict]:
        """
        Yield article documents page by page, starting at page 0.

        Sleeps rate_limit_seconds between requests (never before the first
        or after the last). Stops early on a short page or once the reported
        hit count has been reached.
        """
        n_seen = 0
        for page in range(min(max_pages, MAX_API_PAGE + 1)):
            if page > 0:
                self.sleep(self.rate_limit_seconds)

            payload = self.fetch_page(query, page, begin_date, end_date)
            response = payload.get('response') or {}
            docs = response.get('docs') or []
            hits = (response.get('meta') or {}).get('hits')

            yield from docs
            n_seen += len(docs)

            if len(docs) < self.page_size:
                break
            if hits is not None and n_seen >= hits:
                break

    def fetch_articles(
        self,
        query: str,
        max_pages: int = NEWS_MAX_PAGES,
        begin_date: DateLike = None,
        end_date: DateLike = None,
    ) -> list[dict]:
        """All documents from iter_articles as a list."""
        return list(self.iter_articles(query, max_pages, begin_date, end_date))


def articles_to_frame(docs: list[dict]) -> pd.DataFrame:
    """
    Flatten article documents into the raw news_articles layout.

    Nested fields become dotted columns ('headline.main'); fields absent from
    every document are added as empty columns.
    """
    if not docs:
        return pd.DataFrame(columns=RAW_COLUMNS)
    flat = pd.json_normalize(docs)
    return flat.reindex(columns=RAW_COLUMNS)


def fetch_news(
    query: str = NEWS_DEFAULT_QUERY,
    max_pages: int = NEWS_MAX_PAGES,
    begin_date: DateLike = None,
    end_date: DateLike = None,
    client: Optional[NewsAPIClient] = None,
    output_path: Optional[Path] = None,
) -> Path:
    """Download search results and write them to data_raw/news_articles.csv."""
    print("=" * 60)
    print("Fetching news articles")
    print("=" * 60)

    client = client or NewsAPIClient()
    output_path = Path(output_path or ensure_dir(get_data_dir('raw')) / 'news_articles.csv')

    print(f"  Query: {query!r}  Pages: up to {max_pages}")
    print(f"  Pause between requests: {client.rate_limit_seconds:g}s")
    docs = client.fetch_articles(query, max_pages, begin_date, end_date)
    df = articles_to_frame(docs)

    ensure_dir(output_path.parent)
    df.to_csv(output_path, index=False)
    print(f"  -> {len(df):,} articles saved to {output_path}")
    return output_path
