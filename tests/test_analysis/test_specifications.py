"""Tests for analysis.specifications module."""
from __future__ import annotations

import tempfile
from pathlib import Path

import pytest
import yaml


SPECS_YAML = """
intercept_only:
  outcome: do_saturation
  predictors: []

seasonal:
  outcome: do_saturation
  predictors: [temperature, season]
  categorical: [season]
  description: Temperature and season
"""


@pytest.fixture
def spec_path():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / 'specs.yml'
        path.write_text(SPECS_YAML)
        yield path


class TestSpecificationLoading:
    """Tests for specification loading."""

    def test_load_specifications_from_file(self, spec_path):
        """Test loading specifications from YAML file."""
        from analysis.specifications import load_specifications

        specs = load_specifications(spec_path)

        assert set(specs) == {'intercept_only', 'seasonal'}
        assert specs['seasonal']['categorical'] == ['season']

    def test_project_file_loads(self):
        """The shipped specifications.yml parses and every entry validates."""
        from analysis.specifications import load_specifications, validate_specification

        specs = load_specifications()

        assert 'intercept_only' in specs
        for spec in specs.values():
            assert validate_specification(spec) == []

    def test_missing_file(self, temp_dir):
        from analysis.specifications import load_specifications

        with pytest.raises(FileNotFoundError):
            load_specifications(temp_dir / 'absent.yml')

    def test_empty_file(self, temp_dir):
        from analysis.specifications import load_specifications

        path = temp_dir / 'empty.yml'
        path.write_text('')
        assert load_specifications(path) == {}

    def test_malformed_yaml(self, temp_dir):
        from analysis.specifications import load_specifications

        path = temp_dir / 'bad.yml'
        path.write_text('seasonal: [unclosed')
        with pytest.raises(yaml.YAMLError):
            load_specifications(path)

    def test_get_specification(self, spec_path):
        """Test getting a single specification."""
        from analysis.specifications import get_specification

        spec = get_specification('intercept_only', path=spec_path)

        assert spec['name'] == 'intercept_only'
        assert spec['predictors'] == []

    def test_get_unknown_specification_raises(self, spec_path):
        """Test that unknown specification raises KeyError."""
        from analysis.specifications import get_specification

        with pytest.raises(KeyError, match="Unknown specification"):
            get_specification('nonexistent', path=spec_path)

    def test_list_specifications(self, spec_path):
        from analysis.specifications import list_specifications

        assert list_specifications(spec_path) == ['intercept_only', 'seasonal']


class TestSpecificationValidation:
    """Tests for specification validation."""

    def test_valid_specification(self):
        from analysis.specifications import validate_specification

        spec = {'outcome': 'y', 'predictors': ['x', 'g'], 'categorical': ['g']}
        assert validate_specification(spec) == []

    def test_null_predictors_allowed(self):
        from analysis.specifications import validate_specification

        assert validate_specification({'outcome': 'y', 'predictors': None}) == []

    def test_missing_required_fields(self):
        """Test that missing required fields are reported."""
        from analysis.specifications import validate_specification

        errors = validate_specification({'description': 'nothing'})
        assert len(errors) == 2
        assert any('outcome' in e for e in errors)
        assert any('predictors' in e for e in errors)

    def test_invalid_field_types(self):
        """Test that invalid field types are reported."""
        from analysis.specifications import validate_specification

        errors = validate_specification({'outcome': 123, 'predictors': 'temperature'})
        assert len(errors) == 2

    def test_outcome_as_predictor(self):
        from analysis.specifications import validate_specification

        errors = validate_specification({'outcome': 'y', 'predictors': ['y', 'x']})
        assert errors == ["The outcome cannot also be a predictor"]

    def test_categorical_must_be_predictor(self):
        from analysis.specifications import validate_specification

        errors = validate_specification({'outcome': 'y', 'predictors': ['x'], 'categorical': ['season']})
        assert any('must also be predictors' in e for e in errors)


class TestSpecificationCreation:
    """Tests for programmatic specification creation."""

    def test_create_specification(self):
        """Test creating specification programmatically."""
        from analysis.specifications import create_specification

        spec = create_specification(
            name='my_spec',
            outcome='y',
            predictors=['x', 'season'],
            categorical=['season'],
            description='Test specification',
        )

        assert spec['name'] == 'my_spec'
        assert spec['predictors'] == ['x', 'season']
        assert spec['categorical'] == ['season']
        assert spec['description'] == 'Test specification'

    def test_categorical_filtered_to_predictors(self):
        from analysis.specifications import create_specification

        spec = create_specification('stepwise', 'y', ['x'], categorical=['season'])
        assert spec['categorical'] == []

    def test_create_minimal_specification(self):
        """Test creating minimal specification."""
        from analysis.specifications import create_specification

        spec = create_specification(name='minimal', outcome='y')

        assert spec['predictors'] == []
        assert spec['categorical'] == []
        assert 'description' not in spec


class TestFormula:

    def test_intercept_only(self):
        from analysis.specifications import spec_to_formula

        assert spec_to_formula({'outcome': 'y', 'predictors': []}) == 'y ~ 1'

    def test_categorical_wrapped(self):
        from analysis.specifications import spec_to_formula

        spec = {'outcome': 'y', 'predictors': ['t', 'season'], 'categorical': ['season']}
        assert spec_to_formula(spec) == 'y ~ t + C(season)'
