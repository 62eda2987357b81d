# loader.py
"""
Isolate table loading and validation
====================================

Reads the surveillance export, harmonises column names, checks that every
interpretation column the classifier needs is present, and normalises the
interpretation codes to {S, I, R, NA}.

Schema problems are raised here, before a single row is classified.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from ..config.settings import ClassificationConfig
from ..errors import InterpretationCodeError, MissingColumnError

logger = logging.getLogger(__name__)

_UNNAMED_RE = re.compile(r"^Unnamed(?::\s*\d+)?$")
_OUTCOME_ALLOWED = {"S", "I", "R"}

# Common "missing" tokens seen in exports
_MISSING_TOKENS = {
    "", " ", "NA", "N/A", "NULL", "NONE", "NAN", "-", "--", "?", "ND", "NOT DONE", "NOTDONE"
}

_WORD_CODES = {"SUSCEPTIBLE": "S", "INTERMEDIATE": "I", "RESISTANT": "R"}


def _drop_unnamed(df: pd.DataFrame) -> pd.DataFrame:
    cols = [c for c in df.columns if _UNNAMED_RE.match(str(c))]
    return df.drop(columns=cols) if cols else df


def read_any(path: Union[str, Path]) -> pd.DataFrame:
    """
    Auto-detect reader:
      - .xlsx/.xls         -> pd.read_excel(file, engine="openpyxl")
      - .parquet           -> pd.read_parquet(file, engine="pyarrow")
      - .feather/.ft       -> pd.read_feather(file)
      - otherwise          -> pd.read_csv(file)
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Input file not found: {p}")
    suf = p.suffix.lower()
    if suf in (".xlsx", ".xls"):
        return _drop_unnamed(pd.read_excel(p, engine="openpyxl"))
    if suf == ".parquet":
        return _drop_unnamed(pd.read_parquet(p, engine="pyarrow"))
    if suf in (".feather", ".ft"):
        return _drop_unnamed(pd.read_feather(p))
    return _drop_unnamed(pd.read_csv(p, low_memory=False))


def standardize_column_names(df: pd.DataFrame) -> pd.DataFrame:
    """Strip column names and replace inner spaces with underscores."""
    rename_map = {c: re.sub(r"\s+", "_", str(c).strip()) for c in df.columns}
    rename_map = {k: v for k, v in rename_map.items() if k != v}
    if rename_map:
        logger.debug(f"Renamed {len(rename_map)} columns: {rename_map}")
        df = df.rename(columns=rename_map)
    return df


@dataclass(frozen=True)
class ColumnAudit:
    missing: List[str]
    unexpected: List[str]
    order_matches: bool

    @property
    def ok(self) -> bool:
        return not self.missing and not self.unexpected and self.order_matches


def audit_columns(df: pd.DataFrame, expected: Sequence[str]) -> ColumnAudit:
    """
    Compare the table's columns with an expected layout. Only reports; use
    validate_schema() for columns the analysis cannot run without.
    """
    actual = [str(c) for c in df.columns]
    missing = [c for c in expected if c not in actual]
    unexpected = [c for c in actual if c not in expected]
    audit = ColumnAudit(missing=missing, unexpected=unexpected, order_matches=list(expected) == actual)

    if audit.ok:
        logger.info("Data loaded and all expected columns are present.")
    else:
        logger.warning("Data loaded but column names are missing or misordered.")
        if missing:
            logger.warning(f"Missing columns: {', '.join(missing)}")
        if unexpected:
            logger.warning(f"Unexpected columns: {', '.join(unexpected)}")
    return audit


def validate_schema(df: pd.DataFrame, required: Iterable[str]) -> None:
    """Raise MissingColumnError naming every required column that is absent."""
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise MissingColumnError(missing)


def _normalize_code(value: Any) -> Any:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return pd.NA
    s = str(value).strip().upper()
    if s in _MISSING_TOKENS:
        return pd.NA
    return _WORD_CODES.get(s, s)


def normalize_interpretations(
    df: pd.DataFrame,
    columns: Iterable[str],
    policy: str = "reject",
) -> pd.DataFrame:
    """
    Normalise interpretation columns to {"S", "I", "R", <NA>}.

    policy:
      - "reject":  raise InterpretationCodeError on any other code
      - "missing": log a warning and treat other codes as missing
    """
    if policy not in ("reject", "missing"):
        raise ValueError(f"Unknown policy: {policy}")

    out = df.copy()
    for col in columns:
        codes = out[col].map(_normalize_code).astype("object")
        bad_mask = codes.notna() & ~codes.isin(_OUTCOME_ALLOWED)
        if bad_mask.any():
            bad_values = sorted({str(v) for v in out.loc[bad_mask, col]})
            if policy == "reject":
                raise InterpretationCodeError(col, bad_values)
            logger.warning(
                f"Column '{col}': {int(bad_mask.sum())} value(s) outside S/I/R treated as missing: {bad_values}"
            )
            codes = codes.where(~bad_mask, pd.NA)
        out[col] = codes.astype("string")
    return out


@dataclass(frozen=True)
class IsolateRecord:
    """One isolate: identifier plus drug -> interpretation code."""
    isolate_id: Optional[str]
    calls: Mapping[str, Optional[str]]

    @classmethod
    def from_row(cls, row: Mapping[str, Any], drugs: Iterable[str], id_column: Optional[str] = None) -> "IsolateRecord":
        missing = [d for d in drugs if d not in row]
        if missing:
            raise MissingColumnError(missing)
        calls: Dict[str, Optional[str]] = {}
        for d in drugs:
            v = _normalize_code(row[d])
            calls[d] = None if v is pd.NA else v
        iid = row.get(id_column) if id_column else None
        return cls(isolate_id=None if iid is None or pd.isna(iid) else str(iid), calls=calls)


def load_isolates(
    path: Union[str, Path],
    config: Optional[ClassificationConfig] = None,
    *,
    expected_columns: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    Read, standardise, validate and normalise an isolate table.

    expected_columns, if given, is audited (warnings only); the columns the
    classifier needs are always enforced.
    """
    config = config or ClassificationConfig()
    df = standardize_column_names(read_any(path))
    logger.info(f"Loaded {len(df):,} isolates x {df.shape[1]} columns from {path}")

    if expected_columns is not None:
        audit_columns(df, expected_columns)

    validate_schema(df, config.required_columns)
    return normalize_interpretations(df, config.required_columns, policy=config.unknown_code_policy)
