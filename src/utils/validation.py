#!/usr/bin/env python3
"""
Rule-based validation for pipeline DataFrames.

Usage
-----
    from utils.validation import DataValidator, no_missing_values, row_count

    validator = (DataValidator()
        .add_rule(row_count(min_rows=1))
        .add_rule(no_missing_values(['site']))
    )
    report = validator.validate(df)
    if report.has_errors:
        print(report.format())
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

import numpy as np
import pandas as pd


# ============================================================
# RULES AND RESULTS
# ============================================================

@dataclass
class ValidationRule:
    """A named check returning (passed, message) for a DataFrame."""
    name: str
    check: Callable[[pd.DataFrame], tuple[bool, str]]
    severity: str = 'error'  # 'error' or 'warning'
    description: str = ''


@dataclass
class ValidationResult:
    """Outcome of running one rule."""
    rule_name: str
    passed: bool
    message: str
    severity: str = 'error'

    def to_dict(self) -> dict:
        return {
            'rule': self.rule_name,
            'passed': self.passed,
            'message': self.message,
            'severity': self.severity,
        }


@dataclass
class ValidationReport:
    """Collection of validation results."""
    results: list = field(default_factory=list)

    @property
    def passed(self) -> int:
        """Number of rules that passed."""
        return sum(1 for r in self.results if r.passed)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.passed)

    @property
    def error_count(self) -> int:
        return sum(1 for r in self.results if not r.passed and r.severity == 'error')

    @property
    def warning_count(self) -> int:
        return sum(1 for r in self.results if not r.passed and r.severity == 'warning')

    @property
    def has_errors(self) -> bool:
        return self.error_count > 0

    @property
    def has_warnings(self) -> bool:
        return self.warning_count > 0

    def format(self) -> str:
        """Format the report for console output."""
        lines = [
            "=" * 60,
            "VALIDATION REPORT",
            "=" * 60,
            f"  Passed: {self.passed}/{len(self.results)}",
            f"  Errors: {self.error_count}",
            f"  Warnings: {self.warning_count}",
        ]
        failures = [r for r in self.results if not r.passed]
        if failures:
            lines.append("")
            for r in failures:
                lines.append(f"  [{r.severity.upper()}] {r.rule_name}: {r.message}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            'passed': self.passed,
            'failed': self.failed,
            'has_errors': self.has_errors,
            'error_count': self.error_count,
            'warning_count': self.warning_count,
            'results': [r.to_dict() for r in self.results],
        }


class DataValidator:
    """Runs a list of ValidationRules against a DataFrame."""

    def __init__(self, rules: Optional[list[ValidationRule]] = None):
        self.rules: list[ValidationRule] = list(rules or [])

    def add_rule(self, rule: ValidationRule) -> 'DataValidator':
        """Add a rule (returns self for chaining)."""
        self.rules.append(rule)
        return self

    def validate(self, df: pd.DataFrame) -> ValidationReport:
        """Run every rule and collect the results."""
        results = []
        for rule in self.rules:
            passed, message = rule.check(df)
            results.append(ValidationResult(
                rule_name=rule.name,
                passed=bool(passed),
                message=message,
                severity=rule.severity,
            ))
        return ValidationReport(results=results)

    def validate_or_raise(self, df: pd.DataFrame) -> ValidationReport:
        """
        Validate and raise if any error-severity rule fails.

        Raises
        ------
        ValueError
            If the report contains errors
        """
        report = self.validate(df)
        if report.has_errors:
            raise ValueError(f"Validation failed:\n{report.format()}")
        return report

    def validate_schema(self, df: pd.DataFrame, schema: dict[str, Any]) -> ValidationReport:
        """
        Check that columns exist and have the expected numpy dtype family.

        Missing columns are errors; dtype mismatches are warnings.

        Parameters
        ----------
        df : pd.DataFrame
            Data to check
        schema : dict
            Mapping of column name to numpy type (e.g. np.floating)
        """
        results = []
        for col, expected in schema.items():
            if col not in df.columns:
                results.append(ValidationResult(
                    rule_name=f'schema_{col}',
                    passed=False,
                    message=f"Missing column: {col}",
                    severity='error',
                ))
                continue

            matches = np.issubdtype(df[col].dtype, expected)
            results.append(ValidationResult(
                rule_name=f'schema_{col}',
                passed=bool(matches),
                message=(
                    f"{col} has dtype {df[col].dtype}" if matches
                    else f"{col} has dtype {df[col].dtype}, expected {getattr(expected, '__name__', expected)}"
                ),
                severity='warning',
            ))
        return ValidationReport(results=results)


# ============================================================
# BUILT-IN RULES
# ============================================================

def _missing_columns(df: pd.DataFrame, columns: Iterable[str]) -> list[str]:
    return [c for c in columns if c not in df.columns]


def required_columns(columns: list[str]) -> ValidationRule:
    """All listed columns must be present."""
    def check(df):
        missing = _missing_columns(df, columns)
        if missing:
            return False, f"Missing columns: {missing}"
        return True, "All required columns present"
    return ValidationRule('required_columns', check, 'error', f"Columns present: {columns}")


def no_missing_values(columns: list[str]) -> ValidationRule:
    """Listed columns must exist and contain no missing values."""
    def check(df):
        missing_cols = _missing_columns(df, columns)
        if missing_cols:
            return False, f"Missing columns: {missing_cols}"
        counts = df[list(columns)].isna().sum()
        bad = counts[counts > 0]
        if len(bad):
            return False, f"Missing values: {bad.to_dict()}"
        return True, "No missing values"
    return ValidationRule('no_missing_values', check, 'error', f"No missing values in {columns}")


def unique_values(column: str) -> ValidationRule:
    """Column values must be unique."""
    def check(df):
        if column not in df.columns:
            return False, f"Missing column: {column}"
        n_dup = int(df[column].duplicated().sum())
        if n_dup:
            return False, f"{n_dup} duplicate values in {column}"
        return True, f"{column} is unique"
    return ValidationRule(f'unique_{column}', check, 'error', f"Unique values in {column}")


def value_range(
    column: str,
    min_val: Optional[float] = None,
    max_val: Optional[float] = None,
    severity: str = 'warning',
) -> ValidationRule:
    """Non-missing values must lie within [min_val, max_val]."""
    def check(df):
        if column not in df.columns:
            return False, f"Missing column: {column}"
        values = df[column].dropna()
        n_out = 0
        if min_val is not None:
            n_out += int((values < min_val).sum())
        if max_val is not None:
            n_out += int((values > max_val).sum())
        if n_out:
            return False, f"{n_out} values of {column} outside [{min_val}, {max_val}]"
        return True, f"{column} within range"
    return ValidationRule(f'range_{column}', check, severity, f"{column} in [{min_val}, {max_val}]")


def categorical_values(column: str, valid: set) -> ValidationRule:
    """Non-missing values must belong to the valid set."""
    def check(df):
        if column not in df.columns:
            return False, f"Missing column: {column}"
        invalid = set(df[column].dropna().unique()) - set(valid)
        if invalid:
            return False, f"Invalid values in {column}: {sorted(map(str, invalid))}"
        return True, f"{column} values valid"
    return ValidationRule(f'categories_{column}', check, 'error', f"{column} in {sorted(map(str, valid))}")


def date_range(column: str, min_date=None, max_date=None) -> ValidationRule:
    """Dates must lie within [min_date, max_date]."""
    def check(df):
        if column not in df.columns:
            return False, f"Missing column: {column}"
        dates = pd.to_datetime(df[column], errors='coerce').dropna()
        n_out = 0
        if min_date is not None:
            n_out += int((dates < pd.Timestamp(min_date)).sum())
        if max_date is not None:
            n_out += int((dates > pd.Timestamp(max_date)).sum())
        if n_out:
            return False, f"{n_out} dates in {column} outside range"
        return True, f"{column} dates within range"
    return ValidationRule(f'dates_{column}', check, 'warning', f"{column} between {min_date} and {max_date}")


def row_count(min_rows: int = 1, max_rows: Optional[int] = None) -> ValidationRule:
    """Row count must be within bounds."""
    def check(df):
        n = len(df)
        if n < min_rows:
            return False, f"Only {n} rows (minimum {min_rows})"
        if max_rows is not None and n > max_rows:
            return False, f"{n} rows (maximum {max_rows})"
        return True, f"{n} rows"
    return ValidationRule('row_count', check, 'error', f"At least {min_rows} rows")


def no_duplicate_rows(subset: Optional[list[str]] = None) -> ValidationRule:
    """No duplicated rows (optionally on a subset of columns)."""
    def check(df):
        n_dup = int(df.duplicated(subset=subset).sum())
        if n_dup:
            return False, f"{n_dup} duplicate rows"
        return True, "No duplicate rows"
    return ValidationRule('no_duplicate_rows', check, 'error', f"No duplicates on {subset or 'all columns'}")


def positive_values(column: str, allow_zero: bool = False) -> ValidationRule:
    """Values must be positive (or non-negative with allow_zero)."""
    def check(df):
        if column not in df.columns:
            return False, f"Missing column: {column}"
        values = df[column].dropna()
        bad = values < 0 if allow_zero else values <= 0
        n_bad = int(bad.sum())
        if n_bad:
            return False, f"{n_bad} non-positive values in {column}"
        return True, f"{column} positive"
    return ValidationRule(f'positive_{column}', check, 'error', f"{column} > 0")


def numeric_columns(columns: list[str]) -> ValidationRule:
    """Listed columns must be numeric (needed for distance computations)."""
    def check(df):
        missing = _missing_columns(df, columns)
        if missing:
            return False, f"Missing columns: {missing}"
        non_numeric = [c for c in columns if not pd.api.types.is_numeric_dtype(df[c])]
        if non_numeric:
            return False, f"Non-numeric columns: {non_numeric}"
        return True, "All columns numeric"
    return ValidationRule('numeric_columns', check, 'error', f"Numeric columns: {columns}")
