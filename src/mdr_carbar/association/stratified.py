"""
Stratified MDR x carbapenem association
=======================================

Runs the association analysis separately within each level of a grouping
column (species, isolate type, specimen type, ...) and corrects the
per-stratum p-values for multiple testing (Bonferroni, Holm, Benjamini-Hochberg
FDR via statsmodels).

Strata that are too small, or whose table has an empty row or column, are kept
as rows with an `Error` message and no numbers.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from statsmodels.stats.multitest import multipletests

from ..config.settings import AnalysisConfig
from ..errors import DegenerateTableError, SchemaError
from .analyzer import AssociationAnalyzer

logger = logging.getLogger(__name__)

STRATUM_COLUMNS = [
    "stratum", "level", "n", "a", "b", "c", "d",
    "odds_ratio", "ci_lower", "ci_upper", "p_value",
    "significance", "method", "Error",
]


def apply_multiple_comparison_correction(
    results: pd.DataFrame,
    *,
    alpha: float = 0.05,
    pvalue_col: str = "p_value",
) -> pd.DataFrame:
    """
    Adds corrected p-values + boolean significance flags with stable dtypes.
    Rows with a missing p-value keep NaN / False.
    """
    out = results.copy()

    out["p_value_bonferroni"] = np.nan
    out["p_value_holm"] = np.nan
    out["p_value_fdr"] = np.nan
    out["significant_bonferroni"] = False
    out["significant_holm"] = False
    out["significant_fdr"] = False

    if out.empty or pvalue_col not in out.columns:
        return out

    pv = pd.to_numeric(out[pvalue_col], errors="coerce")
    mask = pv.notna() & np.isfinite(pv.to_numpy(dtype=float, na_value=np.nan))
    pvals = pv[mask].to_numpy(dtype=float)
    if len(pvals) == 0:
        return out

    for method, suffix in (("bonferroni", "bonferroni"), ("holm", "holm"), ("fdr_bh", "fdr")):
        reject, corrected, _, _ = multipletests(pvals, alpha=alpha, method=method)
        out.loc[mask, f"p_value_{suffix}"] = corrected
        out.loc[mask, f"significant_{suffix}"] = np.asarray(reject, dtype=bool)

    for suffix in ("bonferroni", "holm", "fdr"):
        out[f"significant_{suffix}"] = out[f"significant_{suffix}"].astype(bool)

    out.attrs["alpha"] = alpha
    return out


def analyze_by_stratum(
    classified: pd.DataFrame,
    stratum_col: str,
    config: Optional[AnalysisConfig] = None,
    *,
    alpha: float = 0.05,
    min_isolates: int = 10,
) -> pd.DataFrame:
    """
    One row per stratum level with n, the 2x2 cells, OR/CI, p-value,
    significance tag, method, corrected p-values, and an Error column.
    """
    if stratum_col not in classified.columns:
        raise SchemaError([stratum_col], context="classified isolate table")

    analyzer = AssociationAnalyzer(config)
    rows: List[Dict[str, object]] = []

    levels = classified[stratum_col].astype("string").fillna("<missing>")
    for level in sorted(levels.unique()):
        sub = classified[levels == level]
        base: Dict[str, object] = {"stratum": stratum_col, "level": level, "n": int(len(sub))}

        if len(sub) < min_isolates:
            logger.warning(f"{stratum_col}={level}: only {len(sub)} isolates (< {min_isolates}), skipped")
            rows.append({**base, "Error": f"Fewer than {min_isolates} isolates"})
            continue

        try:
            res = analyzer.run(sub)
        except DegenerateTableError as e:
            logger.warning(f"{stratum_col}={level}: {e}")
            rows.append({
                **base,
                "a": e.table.a, "b": e.table.b, "c": e.table.c, "d": e.table.d,
                "Error": str(e),
            })
            continue

        t = res.table
        o = res.odds_ratio
        rows.append({
            **base,
            "a": t.a, "b": t.b, "c": t.c, "d": t.d,
            "odds_ratio": o.odds_ratio,
            "ci_lower": o.ci_lower,
            "ci_upper": o.ci_upper,
            "p_value": o.p_value,
            "significance": o.significance,
            "method": o.method,
            "Error": "",
        })

    out = pd.DataFrame(rows, columns=STRATUM_COLUMNS)
    out["Error"] = out["Error"].fillna("")

    out = apply_multiple_comparison_correction(out, alpha=alpha)
    logger.info(
        f"Stratified by {stratum_col}: {int((out['Error'] == '').sum())}/{len(out)} strata analysed"
    )
    return out
