#!/usr/bin/env python3
"""
Tests for src/stages/s07_report.py
"""
from __future__ import annotations

import base64

import pytest
import pandas as pd
import matplotlib.pyplot as plt
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent.parent / 'src'))

from stages.s07_report import (
    ReportSection,
    build_report,
    collect_sections,
    figure_to_data_uri,
    main,
    render_report,
    table_to_html,
)


def _write_png(path: Path) -> Path:
    fig, ax = plt.subplots(figsize=(2, 2))
    ax.plot([0, 1], [0, 1])
    fig.savefig(path)
    plt.close(fig)
    return path


class TestFigureToDataUri:

    def test_png_uri(self, temp_dir):
        path = _write_png(temp_dir / 'fig.png')
        uri = figure_to_data_uri(path)
        assert uri.startswith('data:image/png;base64,')
        assert base64.b64decode(uri.split(',', 1)[1]) == path.read_bytes()


class TestTableToHtml:

    def test_short_table(self):
        html = table_to_html(pd.DataFrame({'site': ['A'], 'ph': [7.1]}))
        assert '<table' in html
        assert 'Showing' not in html

    def test_truncated_with_note(self):
        html = table_to_html(pd.DataFrame({'x': range(40)}), max_rows=10)
        assert 'Showing 10 of 40 rows.' in html
        assert html.count('<tr') == 11  # header + 10 rows

    def test_cell_text_escaped(self):
        html = table_to_html(pd.DataFrame({'word': ['<b>bold</b>']}))
        assert '<b>bold</b>' not in html
        assert '&lt;b&gt;' in html


class TestBuildReport:

    def test_title_and_prose_escaped(self):
        html = build_report(
            'Sites & <Streams>',
            [ReportSection(title='A <b> section', prose='First para.\n\nSecond <i>para</i>.')],
            generated_at='2024-01-01 00:00',
        )
        assert 'Sites &amp; &lt;Streams&gt;' in html
        assert 'A &lt;b&gt; section' in html
        assert '<p>First para.</p>' in html
        assert 'Second &lt;i&gt;para&lt;/i&gt;.' in html
        assert 'Generated 2024-01-01 00:00' in html

    def test_embeds_existing_figure(self, temp_dir):
        path = _write_png(temp_dir / 'fig_forest_tuning.png')
        html = build_report('Forest', [ReportSection(title='Tuning', figures=[path])])
        assert 'src="data:image/png;base64,' in html
        assert '<figcaption>fig_forest_tuning</figcaption>' in html

    def test_missing_figure_note(self, temp_dir):
        html = build_report('Forest', [ReportSection(title='Tuning', figures=[temp_dir / 'fig_gone.png'])])
        assert 'Figure not available: fig_gone' in html
        assert '<img' not in html

    def test_tables_rendered_as_html(self):
        section = ReportSection(title='Metrics', tables={'forest_metrics': pd.DataFrame({'rmse': [1.25]})})
        html = build_report('Forest', [section])
        assert '<h3>forest_metrics</h3>' in html
        assert '<table' in html
        assert '&lt;table' not in html


class TestCollectSections:

    def test_unknown_analysis(self, workspace):
        with pytest.raises(ValueError, match='Unknown analysis'):
            collect_sections('weather')

    def test_empty_when_nothing_produced(self, workspace):
        sections = collect_sections('forest')
        assert len(sections) == 1
        assert sections[0].figures == []
        assert sections[0].tables == {}
        assert 'log(1 + area)' in sections[0].prose

    def test_picks_up_outputs(self, workspace):
        _write_png(workspace['figures'] / 'fig_oxygen_criteria.png')
        _write_png(workspace['figures'] / 'fig_forest_tuning.png')
        pd.DataFrame({'specification': ['full'], 'aic': [10.0]}).to_csv(
            workspace['diagnostics'] / 'oxygen_model_comparison.csv', index=False)
        pd.DataFrame({'column': ['flow'], 'n_missing': [3]}).to_csv(
            workspace['diagnostics'] / 'oxygen_missingness.csv', index=False)

        sections = collect_sections('oxygen')

        assert [p.name for p in sections[0].figures] == ['fig_oxygen_criteria.png']
        assert list(sections[0].tables) == ['oxygen_model_comparison']
        assert sections[1].title == 'Data preparation'
        assert 'missingness' in sections[1].tables


class TestRender:

    def test_render_report(self, workspace):
        _write_png(workspace['figures'] / 'fig_amphibian_species.png')
        path = render_report('amphibians')
        assert path == workspace['reports'] / 'amphibians.html'
        html = path.read_text(encoding='utf-8')
        assert 'Amphibian survey counts' in html
        assert 'data:image/png;base64,' in html

    def test_main_writes_index(self, workspace, capsys):
        paths = main(['clustering', 'oxygen'])

        assert set(paths) == {'clustering', 'oxygen'}
        index = (workspace['reports'] / 'index.html').read_text(encoding='utf-8')
        assert 'href="clustering.html"' in index
        assert 'href="oxygen.html"' in index
        assert 'No outputs found for clustering' in capsys.readouterr().out

    def test_main_writes_qa_report(self, workspace):
        main(['clustering', 'oxygen'])

        reports = list(workspace['quality'].glob('s07_report_quality_*.csv'))
        assert len(reports) == 1
        qa = pd.read_csv(reports[0])
        metrics = dict(zip(qa['metric'], qa['value'].astype(str)))
        assert metrics['n_reports'] == '2'
        assert metrics['n_rows'] == '2'
        assert metrics['output_file'].endswith('index.html')
