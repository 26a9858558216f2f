"""
Tabular data loading and the small set of column transforms the analyses use.

Assumptions:
- Input is a delimited text file (comma by default, tab for .tsv/.tab).
- Only the presence of required columns is validated; types are whatever
  pandas infers.
- Transforms return new frames and never mutate their input.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

import pandas as pd


def load_table(
    path: str,
    required_columns: Optional[Iterable[str]] = None,
    sep: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
) -> pd.DataFrame:
    """
    Load a delimited data file.

    Parameters
    ----------
    path : str
        Path to a CSV or TSV file.
    required_columns : iterable, optional
        Columns that must be present.
    sep : str, optional
        Field separator; inferred from the extension when omitted.

    Returns
    -------
    pd.DataFrame
        The file contents.
    """

    log = logger or logging.getLogger(__name__)
    if sep is None:
        sep = "\t" if str(path).lower().endswith((".tsv", ".tab")) else ","
    df = pd.read_csv(path, sep=sep)

    req = list(required_columns) if required_columns is not None else []
    missing: List[str] = [c for c in req if c not in df.columns]
    if missing:
        raise ValueError(f"{path} missing required columns: {missing}")

    log.info("Loaded %s: %d rows x %d columns", path, len(df), len(df.columns))
    return df


def filter_rows(
    df: pd.DataFrame,
    column: str,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
) -> pd.DataFrame:
    """Keep rows with ``min_value <= df[column] <= max_value`` (either bound optional)."""

    if column not in df.columns:
        raise KeyError(f"Column not found: {column}")
    mask = pd.Series(True, index=df.index)
    if min_value is not None:
        mask &= df[column] >= min_value
    if max_value is not None:
        mask &= df[column] <= max_value
    return df.loc[mask].copy()


def center(df: pd.DataFrame, column: str) -> pd.DataFrame:
    """Add ``<column>.c``: the column minus its mean."""

    if column not in df.columns:
        raise KeyError(f"Column not found: {column}")
    values = df[column].astype(float)
    return df.assign(**{f"{column}.c": values - values.mean()})


def standardize(df: pd.DataFrame, column: str) -> pd.DataFrame:
    """Add ``<column>.s``: the centred column divided by its sample standard deviation."""

    if column not in df.columns:
        raise KeyError(f"Column not found: {column}")
    values = df[column].astype(float)
    sd = values.std(ddof=1)
    if not sd > 0.0:
        raise ValueError(f"Column {column} has zero or undefined standard deviation")
    return df.assign(**{f"{column}.s": (values - values.mean()) / sd})


def aggregate_binomial(df: pd.DataFrame, by: Sequence[str], outcome: str) -> pd.DataFrame:
    """Collapse 0/1 outcomes into successes and trials per group."""

    by = list(by)
    missing = [c for c in [*by, outcome] if c not in df.columns]
    if missing:
        raise KeyError(f"Columns not found: {missing}")
    if not df[outcome].isin([0, 1]).all():
        raise ValueError(f"{outcome} must contain only 0/1 values")
    return (
        df.groupby(by, sort=True)
        .agg(successes=(outcome, "sum"), trials=(outcome, "size"))
        .reset_index()
    )
