#!/usr/bin/env python3
"""
Tests for src/config.py

Tests cover:
- Configuration imports
- Path validation
- validate_config() function
- Directory creation
- Dataset and analysis lookups
"""
from __future__ import annotations

import pytest
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))


class TestConfigImports:
    """Tests for configuration module imports."""

    def test_import_paths(self):
        """All path constants can be imported."""
        from config import (
            PROJECT_ROOT,
            DATA_RAW_DIR,
            DATA_WORK_DIR,
            DIAGNOSTICS_DIR,
            FIGURES_DIR,
            REPORTS_DIR,
            SPECIFICATIONS_FILE,
        )
        assert isinstance(PROJECT_ROOT, Path)
        assert isinstance(DATA_RAW_DIR, Path)
        assert DIAGNOSTICS_DIR.parent == DATA_WORK_DIR
        assert SPECIFICATIONS_FILE.name == 'specifications.yml'
        assert isinstance(FIGURES_DIR, Path)
        assert isinstance(REPORTS_DIR, Path)

    def test_import_qa_settings(self):
        """QA settings can be imported."""
        from config import (
            ENABLE_QA_REPORTS,
            QA_REPORTS_DIR,
            QA_THRESHOLDS,
        )
        assert isinstance(ENABLE_QA_REPORTS, bool)
        assert isinstance(QA_REPORTS_DIR, Path)
        assert isinstance(QA_THRESHOLDS, dict)

    def test_import_methodological_params(self):
        """Methodological parameters can be imported."""
        from config import (
            SIGNIFICANCE_LEVEL,
            CONFIDENCE_LEVEL,
            RANDOM_STATE,
            MAX_MISSING_FRACTION,
        )
        assert 0 < SIGNIFICANCE_LEVEL < 1
        assert 0 < CONFIDENCE_LEVEL < 1
        assert 0 < MAX_MISSING_FRACTION <= 1
        assert isinstance(RANDOM_STATE, int)

    def test_news_settings(self):
        from config import NEWS_PAGE_SIZE, NEWS_RATE_LIMIT_SECONDS, NEWS_API_KEY_ENV
        assert NEWS_PAGE_SIZE == 10
        assert NEWS_RATE_LIMIT_SECONDS >= 0
        assert NEWS_API_KEY_ENV


class TestPathValidation:
    """Tests for path configuration validation."""

    def test_project_root_exists(self):
        """PROJECT_ROOT should exist."""
        from config import PROJECT_ROOT
        assert PROJECT_ROOT.exists()
        assert PROJECT_ROOT.is_dir()

    def test_project_root_has_expected_structure(self):
        """PROJECT_ROOT should contain src/ and specifications.yml."""
        from config import PROJECT_ROOT
        assert (PROJECT_ROOT / 'src').exists()
        assert (PROJECT_ROOT / 'specifications.yml').exists()

    def test_output_dirs_under_project_root(self):
        from config import PROJECT_ROOT, DATA_RAW_DIR, DATA_WORK_DIR, FIGURES_DIR, REPORTS_DIR
        for path in (DATA_RAW_DIR, DATA_WORK_DIR, FIGURES_DIR, REPORTS_DIR):
            assert path.is_relative_to(PROJECT_ROOT)


class TestValidateConfig:
    """Tests for validate_config() function."""

    def test_validate_config_passes(self):
        """validate_config() should pass with current settings."""
        from config import validate_config
        assert validate_config() is True

    def test_bad_missing_fraction(self, monkeypatch):
        import config
        monkeypatch.setattr(config, 'MAX_MISSING_FRACTION', 1.5)
        with pytest.raises(ValueError, match='MAX_MISSING_FRACTION'):
            config.validate_config()

    def test_bad_criterion(self, monkeypatch):
        import config
        monkeypatch.setattr(config, 'SELECTION_CRITERION', 'r2')
        with pytest.raises(ValueError, match='SELECTION_CRITERION'):
            config.validate_config()

    def test_analysis_with_unknown_dataset(self, monkeypatch):
        import config
        monkeypatch.setattr(config, 'ANALYSES', {**config.ANALYSES, 'rain': 'rainfall'})
        with pytest.raises(ValueError, match="unknown dataset: rainfall"):
            config.validate_config()

    def test_errors_reported_together(self, monkeypatch):
        import config
        monkeypatch.setattr(config, 'NEWS_RATE_LIMIT_SECONDS', -1)
        monkeypatch.setattr(config, 'DEFAULT_MISSING_STRATEGY', 'drop')
        with pytest.raises(ValueError) as exc_info:
            config.validate_config()
        message = str(exc_info.value)
        assert 'NEWS_RATE_LIMIT_SECONDS' in message
        assert 'DEFAULT_MISSING_STRATEGY' in message


class TestEnsureDirectories:
    """Tests for ensure_directories() function."""

    def test_creates_missing(self, workspace):
        import shutil
        import config

        shutil.rmtree(workspace['figures'])
        shutil.rmtree(workspace['reports'])
        config.ensure_directories()
        assert workspace['figures'].is_dir()
        assert workspace['reports'].is_dir()


class TestDatasets:
    """Tests for dataset and analysis configuration."""

    def test_every_dataset_complete(self):
        from config import DATASETS, MISSING_STRATEGIES
        for name, ds in DATASETS.items():
            assert {'files', 'rename', 'types', 'required'} <= set(ds), name
            assert ds.get('missing_strategy', 'impute') in MISSING_STRATEGIES
            # Required columns must have a declared type
            assert set(ds['required']) <= set(ds['types']), name

    def test_get_dataset_config(self):
        from config import get_dataset_config
        assert get_dataset_config('oxygen')['required'] == ['do_saturation']

    def test_get_dataset_config_unknown_raises(self):
        from config import get_dataset_config
        with pytest.raises(ValueError) as exc_info:
            get_dataset_config('rainfall')
        assert 'Unknown dataset' in str(exc_info.value)

    def test_analysis_dataset(self):
        from config import get_analysis_dataset
        assert get_analysis_dataset('clustering') == 'stream_chemistry'
        assert get_analysis_dataset('amphibians') == 'amphibian_surveys'
        with pytest.raises(ValueError, match='Unknown analysis'):
            get_analysis_dataset('weather')

    def test_report_settings_cover_analyses(self):
        from config import ANALYSES, REPORT_FIGURE_PREFIXES, REPORT_TABLES
        assert set(REPORT_FIGURE_PREFIXES) == set(ANALYSES)
        assert set(REPORT_TABLES) == set(ANALYSES)


class TestQAThresholds:
    """Tests for QA threshold configuration."""

    def test_qa_thresholds_has_expected_keys(self):
        """QA_THRESHOLDS has expected threshold keys."""
        from config import QA_THRESHOLDS
        assert 'max_missing_pct' in QA_THRESHOLDS
        assert 'min_row_count' in QA_THRESHOLDS
        assert 'max_duplicate_pct' in QA_THRESHOLDS

    def test_qa_thresholds_values_are_numeric(self):
        """QA threshold values should be numeric."""
        from config import QA_THRESHOLDS
        for key, value in QA_THRESHOLDS.items():
            assert isinstance(value, (int, float)), f"{key} should be numeric"


class TestCompatibilityWrappers:
    """Tests for backward compatibility functions."""

    def test_get_project_root(self):
        from config import get_project_root, PROJECT_ROOT
        assert get_project_root() == PROJECT_ROOT

    def test_get_data_dir(self):
        from config import get_data_dir, DATA_WORK_DIR, DATA_RAW_DIR, DIAGNOSTICS_DIR
        assert get_data_dir('work') == DATA_WORK_DIR
        assert get_data_dir('raw') == DATA_RAW_DIR
        assert get_data_dir('diagnostics') == DIAGNOSTICS_DIR
