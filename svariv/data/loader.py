"""Load and validate the endogenous panel and the external instrument."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from svariv.errors import InvalidInputError


def validate_panel_and_instrument(panel: pd.DataFrame, instrument: pd.Series) -> None:
    """Reject missing values, non-numeric columns and misaligned series."""
    if panel.empty:
        raise InvalidInputError("Panel has no observations.")
    if len(panel) != len(instrument):
        raise InvalidInputError(
            f"Panel has {len(panel)} rows but the instrument has {len(instrument)}."
        )
    non_numeric = [c for c in panel.columns if not pd.api.types.is_numeric_dtype(panel[c])]
    if non_numeric or not pd.api.types.is_numeric_dtype(instrument):
        raise InvalidInputError(f"Non-numeric columns: {non_numeric or [instrument.name]}")
    if missing := [c for c in panel.columns if panel[c].isna().any()]:
        raise InvalidInputError(f"Panel columns with missing values: {missing}")
    if instrument.isna().any():
        raise InvalidInputError(f"Instrument '{instrument.name}' has missing values.")
    if not np.all(np.isfinite(panel.to_numpy(dtype=float))) or not np.all(np.isfinite(instrument.to_numpy(dtype=float))):
        raise InvalidInputError("Panel or instrument contains non-finite values.")


def load_svariv_data(
    path: Path,
    instrument: str,
    variables: Optional[Sequence[str]] = None,
    date_col: Optional[str] = None,
) -> Tuple[pd.DataFrame, pd.Series]:
    """
    Read a CSV with one column per endogenous variable plus the instrument.

    Variables default to every column other than the instrument and the
    date column, in file order; the VAR ordering follows ``variables``.
    """
    path = Path(path)
    if not path.exists():
        raise InvalidInputError(f"Data file not found: {path}")
    df = pd.read_csv(path)

    if date_col is not None:
        if date_col not in df.columns:
            raise InvalidInputError(f"Date column '{date_col}' not found in {path.name}")
        df[date_col] = pd.to_datetime(df[date_col])
        df = df.set_index(date_col).sort_index()

    if instrument not in df.columns:
        raise InvalidInputError(f"Instrument column '{instrument}' not found in {path.name}")
    if variables is None:
        variables = [c for c in df.columns if c != instrument]
    variables = list(variables)
    if not variables:
        raise InvalidInputError("At least one endogenous variable is required.")
    if unknown := [v for v in variables if v not in df.columns]:
        raise KeyError(f"Unknown variable column(s): {unknown}")
    if instrument in variables:
        raise InvalidInputError(f"Instrument '{instrument}' cannot also be an endogenous variable.")

    panel = df[variables].copy()
    z = df[instrument].copy()
    validate_panel_and_instrument(panel, z)
    return panel, z


__all__ = ["validate_panel_and_instrument", "load_svariv_data"]
