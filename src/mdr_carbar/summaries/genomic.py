"""
Genomic and AST summary tables.

Sequence-type counts, carbapenemase gene combinations, the ST x gene pivot and
per-drug interpretation proportions (optionally split by acquired
carbapenemase). Each returns a plain DataFrame ready for CSV export or
plotting.
"""

from __future__ import annotations

import logging
from typing import Sequence

import pandas as pd

from ..errors import SchemaError

logger = logging.getLogger(__name__)

NO_CARBAPENEMASE = "No carbapenemase"
CARBA_R = "CARBA-R"
CARBA_S = "CARBA-S"
CARBA_GROUP_COL = "carba_resistance"


def _require(df: pd.DataFrame, cols: Sequence[str]) -> None:
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise SchemaError(missing)


def top_st_counts(df: pd.DataFrame, top_n: int = 10, st_col: str = "ST") -> pd.DataFrame:
    """Most frequent sequence types with their share of all isolates (%)."""
    _require(df, [st_col])
    counts = (
        df[st_col].astype("string").value_counts(dropna=True)
        .rename_axis(st_col).rename("Number").reset_index()
    )
    # ties keep first-seen order from value_counts; re-sort for a stable result
    counts = counts.sort_values(["Number", st_col], ascending=[False, True], kind="mergesort")
    counts = counts.head(top_n).reset_index(drop=True)
    counts["Percentage"] = (counts["Number"] / len(df) * 100).round(2) if len(df) else 0.0
    return counts


def _gene_labels(df: pd.DataFrame, gene_col: str) -> pd.Series:
    genes = df[gene_col].astype("string").str.strip()
    return genes.mask(genes.isna() | genes.isin(["", "-"]), NO_CARBAPENEMASE)


def carbapenem_gene_combinations(df: pd.DataFrame, gene_col: str = "Bla_Carb_acquired") -> pd.DataFrame:
    """
    Count each carbapenemase gene combination as written (combinations are not
    split). Empty, "-" and missing entries become "No carbapenemase".
    """
    _require(df, [gene_col])
    genes = _gene_labels(df, gene_col)
    out = (
        genes.value_counts().rename_axis("Gene_Combination").rename("Count").reset_index()
        .sort_values(["Count", "Gene_Combination"], ascending=[False, True], kind="mergesort")
        .reset_index(drop=True)
    )
    out["Percentage"] = (out["Count"] / len(df) * 100).round(2) if len(df) else 0.0
    return out


def st_carb_gene_pivot(
    df: pd.DataFrame,
    st_col: str = "ST",
    gene_col: str = "Bla_Carb_acquired",
) -> pd.DataFrame:
    """ST rows x gene-combination columns with a Total column and a Total row."""
    _require(df, [st_col, gene_col])
    work = pd.DataFrame({st_col: df[st_col].astype("string"), "gene": _gene_labels(df, gene_col)})
    pivot = pd.crosstab(work[st_col], work["gene"])
    pivot.columns.name = None
    pivot["Total"] = pivot.sum(axis=1)
    pivot = pivot.reset_index()

    totals = pivot.drop(columns=[st_col]).sum(axis=0).to_frame().T
    totals.insert(0, st_col, "Total")
    return pd.concat([pivot, totals], ignore_index=True)


def ast_interpretation_proportions(
    df: pd.DataFrame,
    drugs: Sequence[str],
    group_col: str = "Isolate_type",
) -> pd.DataFrame:
    """
    Long table of S/I/R proportions per drug within each group. Missing calls
    are left out of the denominators.
    """
    _require(df, [group_col, *drugs])
    long = df[[group_col, *drugs]].melt(
        id_vars=[group_col], var_name="Antimicrobial", value_name="Interpretation"
    ).dropna(subset=["Interpretation"])

    counts = (
        long.groupby([group_col, "Antimicrobial", "Interpretation"], observed=True)
        .size().rename("count").reset_index()
    )
    counts["proportion"] = counts["count"] / counts.groupby([group_col, "Antimicrobial"])["count"].transform("sum")
    return counts.sort_values([group_col, "Antimicrobial", "Interpretation"]).reset_index(drop=True)


def carbapenemase_group(df: pd.DataFrame, gene_col: str = "Bla_Carb_acquired") -> pd.Series:
    """CARBA-R when a carbapenemase gene was acquired, CARBA-S otherwise."""
    _require(df, [gene_col])
    carrier = (_gene_labels(df, gene_col) != NO_CARBAPENEMASE).astype(bool)
    return carrier.map({True: CARBA_R, False: CARBA_S}).rename(CARBA_GROUP_COL)


def ast_proportions_by_carbapenemase(
    df: pd.DataFrame,
    drugs: Sequence[str],
    gene_col: str = "Bla_Carb_acquired",
) -> pd.DataFrame:
    """S/I/R proportions per drug, split by gene-derived carbapenemase group."""
    _require(df, [gene_col, *drugs])
    work = df[list(drugs)].copy()
    work[CARBA_GROUP_COL] = carbapenemase_group(df, gene_col)
    return ast_interpretation_proportions(work, drugs, group_col=CARBA_GROUP_COL)
