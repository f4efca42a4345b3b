"""
Utilities package.

Provides shared utilities for the analysis pipelines:
- figure_style: Matplotlib styling for report figures
- helpers: File I/O, paths and formatting helpers
- validation: Rule-based DataFrame validation
- synthetic_data: Demo datasets for every analysis
- news_api: Paginated client for the article search API
- text: Tokenization and sentiment lexicons
"""
from .figure_style import apply_style, get_figure_double, save_figure
