#!/usr/bin/env python3
"""
Figure styling configuration for analysis reports.

This module sets matplotlib defaults so every stage produces figures with the
same look. Import this module at the start of any stage that generates
figures.

Usage
-----
from utils.figure_style import apply_style, save_figure
apply_style()
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

# Style parameters
FONT_FAMILY = 'sans-serif'
FONT_SIZE = 10
TITLE_SIZE = 11
LABEL_SIZE = 10
TICK_SIZE = 9
LEGEND_SIZE = 9

# Figure dimensions (inches) for single-panel layout
FIG_WIDTH_SINGLE = 7.0
FIG_HEIGHT_SINGLE = 4.5

# For two-panel figures
FIG_WIDTH_DOUBLE = 11.0
FIG_HEIGHT_DOUBLE = 4.5

# DPI for saved figures
DPI = 150

PALETTES = {
    'default': ['#264653', '#2A9D8F', '#E9C46A', '#F4A261', '#E76F51', '#7209B7', '#8D99AE', '#3A86FF'],
    'sentiment': ['#2A9D8F', '#E76F51', '#8D99AE'],  # positive, negative, neutral
    'clusters': ['#E63946', '#2A9D8F', '#F4A261', '#264653', '#7209B7', '#FB8500', '#3A86FF', '#8D99AE'],
    'sequential': ['#f7fbff', '#c6dbef', '#6baed6', '#2171b5', '#08306b'],
}


def apply_style(style: str = 'publication'):
    """
    Apply consistent figure styling.

    Parameters
    ----------
    style : str
        'publication' (light grid, no top/right spines) or 'report'
        (same, with a slightly larger base font for screen viewing)
    """
    base_size = FONT_SIZE + (1 if style == 'report' else 0)
    plt.rcParams.update({
        # Font settings
        'font.family': FONT_FAMILY,
        'font.size': base_size,

        # Title and labels
        'axes.titlesize': TITLE_SIZE,
        'axes.labelsize': LABEL_SIZE,

        # Ticks
        'xtick.labelsize': TICK_SIZE,
        'ytick.labelsize': TICK_SIZE,

        # Legend
        'legend.fontsize': LEGEND_SIZE,
        'legend.framealpha': 0.9,

        # Figure size (default)
        'figure.figsize': (FIG_WIDTH_SINGLE, FIG_HEIGHT_SINGLE),
        'figure.dpi': 100,
        'savefig.dpi': DPI,

        # Grid
        'axes.grid': True,
        'grid.alpha': 0.3,

        # Spines
        'axes.spines.top': False,
        'axes.spines.right': False,
    })


def get_color_palette(name: str = 'default') -> list[str]:
    """Return a named list of hex colors (falls back to 'default')."""
    return list(PALETTES.get(name, PALETTES['default']))


def save_figure(
    fig,
    output_path: Union[str, Path],
    formats: Optional[list[str]] = None,
) -> Path:
    """
    Save a figure in one or more formats.

    Parameters
    ----------
    fig : matplotlib.figure.Figure
        Figure to save
    output_path : str or Path
        Path without (or with) extension; the extension is replaced per format
    formats : list[str], optional
        File formats to write (default: ['png'])

    Returns
    -------
    Path
        Path of the first file written
    """
    formats = formats or ['png']
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    written = []
    for fmt in formats:
        path = output_path.with_suffix(f'.{fmt}')
        fig.savefig(path, bbox_inches='tight')
        written.append(path)
    return written[0]


def get_figure_double():
    """Create a two-panel figure with standard dimensions."""
    apply_style()
    return plt.figure(figsize=(FIG_WIDTH_DOUBLE, FIG_HEIGHT_DOUBLE))
