#!/usr/bin/env python3
"""
Tests for src/stages/s06_amphibians.py
"""
from __future__ import annotations

import pytest
import pandas as pd
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent.parent / 'src'))

from stages.s06_amphibians import (
    main,
    site_species_matrix,
    species_richness,
    species_totals,
    top_species,
    yearly_counts,
)

CHORUS = 'Pacific Chorus Frog'
TOAD = 'Western Toad'
NEWT = 'Rough-skinned Newt'


class TestSpeciesTotals:

    def test_sorted_totals(self, amphibian_df):
        totals = species_totals(amphibian_df)
        assert totals['species'].tolist() == [CHORUS, TOAD, NEWT]
        assert totals['total'].tolist() == [27, 11, 2]

    def test_surveys_and_sites(self, amphibian_df):
        totals = species_totals(amphibian_df).set_index('species')
        assert totals.loc[TOAD, 'n_surveys'] == 3
        assert totals.loc[NEWT, 'n_sites'] == 2

    def test_survey_key_falls_back_to_year(self, amphibian_df):
        totals = species_totals(amphibian_df.drop(columns='survey_date')).set_index('species')
        assert totals.loc[CHORUS, 'n_surveys'] == 3

    def test_top_species(self, amphibian_df):
        assert top_species(amphibian_df, 2) == [CHORUS, TOAD]


class TestYearlyCounts:

    def test_selected_species(self, amphibian_df):
        table = yearly_counts(amphibian_df, [CHORUS, TOAD])
        assert list(table.columns) == [CHORUS, TOAD]
        assert table.index.tolist() == [2019, 2020, 2021]
        assert table.loc[2020, CHORUS] == 10
        assert table.loc[2021, TOAD] == 6

    def test_unseen_species_zero(self, amphibian_df):
        table = yearly_counts(amphibian_df, [NEWT])
        assert table.loc[2020, NEWT] == 0

    def test_gap_years_filled(self):
        df = pd.DataFrame({
            'site': ['P1', 'P1'], 'species': [TOAD, TOAD], 'year': [2018, 2020], 'count': [3, 4],
        })
        table = yearly_counts(df)
        assert table.index.tolist() == [2018, 2019, 2020]
        assert table[TOAD].tolist() == [3, 0, 4]

    def test_needs_year(self, amphibian_df):
        with pytest.raises(ValueError, match="'year'"):
            yearly_counts(amphibian_df.drop(columns='year'))


class TestSiteSummaries:

    def test_matrix(self, amphibian_df):
        matrix = site_species_matrix(amphibian_df)
        assert matrix.loc['P1', TOAD] == 10
        assert matrix.loc['P1', CHORUS] == 0
        assert matrix.loc['P2', CHORUS] == 22

    def test_richness_ignores_zero_counts(self, amphibian_df):
        richness = species_richness(amphibian_df)
        assert richness['site'].tolist() == ['P2', 'P1', 'P3']
        assert richness.set_index('site').loc['P3', 'richness'] == 1
        assert richness.set_index('site').loc['P2', 'total'] == 23


class TestMain:

    def test_writes_tables_and_figures(self, workspace, amphibian_df):
        amphibian_df.to_parquet(workspace['data_work'] / 'amphibian_surveys_clean.parquet')

        tables = main(top_n=2)

        assert list(tables['yearly_counts'].columns) == [CHORUS, TOAD]
        for name in ('species_totals', 'yearly_counts', 'site_species', 'richness'):
            assert (workspace['diagnostics'] / f'amphibian_{name}.csv').exists()
        for name in ('species', 'trends', 'heatmap'):
            assert (workspace['figures'] / f'fig_amphibian_{name}.png').exists()

    def test_without_year_skips_trends(self, workspace, amphibian_df, capsys):
        amphibian_df.drop(columns='year').to_parquet(
            workspace['data_work'] / 'amphibian_surveys_clean.parquet')

        tables = main()

        assert 'yearly_counts' not in tables
        assert 'skipping yearly trends' in capsys.readouterr().out

    def test_negative_count_fails(self, workspace, amphibian_df):
        amphibian_df.assign(count=-1).to_parquet(workspace['data_work'] / 'amphibian_surveys_clean.parquet')
        with pytest.raises(SystemExit):
            main()
