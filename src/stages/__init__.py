"""
Pipeline stages package.

Each stage module follows a consistent pattern:
- Docstring with a Purpose: line and Input/Output files documented
- Path constants for all file locations
- main() function as the entry point, returning its results

s00 and s01 take a dataset name; s02 to s06 each run one analysis on its
cleaned dataset; s07 renders the HTML reports.
"""
