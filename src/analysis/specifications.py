"""
Candidate-Model Specifications.

Specifications describe which linear models to compare, independent of the
engine that fits them. They live in specifications.yml at the project root:

    temperature:
      description: Temperature only
      outcome: do_saturation
      predictors: [temperature]

    seasonal:
      outcome: do_saturation
      predictors: [temperature, flow, season]
      categorical: [season]

Usage
-----
    from analysis.specifications import load_specifications, get_specification

    specs = load_specifications()
    spec = get_specification('seasonal')
    formula = spec_to_formula(spec)   # 'do_saturation ~ temperature + flow + C(season)'
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import yaml

sys.path.insert(0, str(Path(__file__).parent.parent))


def load_specifications(path: Optional[Path] = None) -> dict[str, dict]:
    """
    Load specifications from a YAML file.

    Parameters
    ----------
    path : Path, optional
        Specifications file (default: SPECIFICATIONS_FILE from config)

    Returns
    -------
    dict[str, dict]
        specification name -> specification dict

    Raises
    ------
    FileNotFoundError
        If the file does not exist
    yaml.YAMLError
        If YAML parsing fails
    """
    if path is None:
        from config import SPECIFICATIONS_FILE
        path = SPECIFICATIONS_FILE
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Specifications file not found: {path}")

    with open(path) as f:
        specs = yaml.safe_load(f)

    return specs or {}


def get_specification(name: str, path: Optional[Path] = None) -> dict:
    """
    Get a single specification by name, with its 'name' key filled in.

    Raises
    ------
    KeyError
        If the specification is not defined
    """
    specs = load_specifications(path)

    if name not in specs:
        available = ', '.join(sorted(specs.keys()))
        raise KeyError(f"Unknown specification: '{name}'. Available: {available}")

    spec = dict(specs[name])
    spec['name'] = name
    spec['predictors'] = list(spec.get('predictors') or [])
    return spec


def validate_specification(spec: dict) -> list[str]:
    """
    Validate a specification dictionary.

    Returns
    -------
    list[str]
        Error messages (empty if valid)
    """
    errors = []

    if 'outcome' not in spec:
        errors.append("Missing required field: 'outcome'")
    elif not isinstance(spec['outcome'], str):
        errors.append("Field 'outcome' must be a string")

    if 'predictors' not in spec:
        errors.append("Missing required field: 'predictors'")
    else:
        predictors = spec['predictors']
        if predictors is None:
            predictors = []
        if not isinstance(predictors, list):
            errors.append("Field 'predictors' must be a list")
            predictors = []
        elif not all(isinstance(p, str) for p in predictors):
            errors.append("All items in 'predictors' must be strings")

        if isinstance(spec.get('outcome'), str) and spec['outcome'] in predictors:
            errors.append("The outcome cannot also be a predictor")

        if 'categorical' in spec:
            categorical = spec['categorical'] or []
            if not isinstance(categorical, list):
                errors.append("Field 'categorical' must be a list")
            else:
                extra = [c for c in categorical if c not in predictors]
                if extra:
                    errors.append(f"Categorical variables must also be predictors: {extra}")

    return errors


def list_specifications(path: Optional[Path] = None) -> list[str]:
    """Sorted names of all specifications."""
    return sorted(load_specifications(path).keys())


def create_specification(
    name: str,
    outcome: str,
    predictors: Optional[list[str]] = None,
    categorical: Optional[list[str]] = None,
    description: Optional[str] = None,
) -> dict:
    """
    Create a specification dictionary programmatically.

    Parameters
    ----------
    name : str
        Specification name
    outcome : str
        Outcome variable
    predictors : list[str], optional
        Predictor variables (empty -> intercept-only model)
    categorical : list[str], optional
        Predictors treated as categorical
    description : str, optional
        Human-readable description
    """
    spec = {
        'name': name,
        'outcome': outcome,
        'predictors': list(predictors or []),
        'categorical': [c for c in (categorical or []) if c in (predictors or [])],
    }
    if description:
        spec['description'] = description
    return spec


def spec_to_formula(spec: dict) -> str:
    """
    Patsy formula for a specification.

    Categorical predictors are wrapped in C(); a specification with no
    predictors gives the intercept-only formula 'y ~ 1'.
    """
    predictors = list(spec.get('predictors') or [])
    categorical = set(spec.get('categorical') or [])
    if not predictors:
        return f"{spec['outcome']} ~ 1"
    terms = [f"C({p})" if p in categorical else p for p in predictors]
    return f"{spec['outcome']} ~ {' + '.join(terms)}"
