"""
MDR x Carbapenem Association Analysis
=====================================

Confirmatory statistics on the classified isolate collection.

What this module does
---------------------
1) Contingency table:
   Cross-tabulates mdr_phenotype (rows: MDR, Non-MDR) against
   carbapenem_status (columns: Resistant, Susceptible) with a fixed order.

2) Fisher's exact test (two-sided) via scipy.

3) Odds ratio with 95% CI:
   - no zero cell: conditional maximum-likelihood estimate with the exact
     conditional interval (same estimator as R's fisher.test)
   - a zero cell: Haldane-Anscombe correction (+0.5 to every cell) with a
     Wald interval on log(OR), which keeps the estimate finite

4) Significance tag ("p < 0.01" / "p > 0.01") and a per-group proportion
   table for the bar chart.

A table with an empty row or column raises DegenerateTableError; no numeric
placeholder is ever returned for it.

Table layout
------------
                 Carb R   Carb S
      MDR          a        b
      Non-MDR      c        d
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import stats
from scipy.stats.contingency import odds_ratio as conditional_odds_ratio

from ..classification.resistance_classifier import (
    CARBAPENEM_COL,
    CARBAPENEM_LABELS,
    MDR_COL,
    MDR_LABELS,
)
from ..config.settings import AnalysisConfig
from ..errors import DegenerateTableError, SchemaError

logger = logging.getLogger(__name__)

METHOD_CONDITIONAL = "conditional_mle"
METHOD_HALDANE = "haldane"


# -----------------------------------------------------------------------------
# Result containers
# -----------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class ContingencyTable:
    counts: np.ndarray
    row_labels: Tuple[str, ...] = MDR_LABELS
    col_labels: Tuple[str, ...] = CARBAPENEM_LABELS

    def __post_init__(self):
        arr = np.asarray(self.counts, dtype=int)
        if arr.shape != (2, 2):
            raise ValueError(f"Expected a 2x2 table, got shape {arr.shape}")
        if (arr < 0).any():
            raise ValueError("Contingency counts must be non-negative")
        arr.setflags(write=False)
        object.__setattr__(self, "counts", arr)

    def __eq__(self, other):
        if not isinstance(other, ContingencyTable):
            return NotImplemented
        return (
            np.array_equal(self.counts, other.counts)
            and self.row_labels == other.row_labels
            and self.col_labels == other.col_labels
        )

    def __hash__(self):
        return hash((tuple(self.counts.ravel().tolist()), self.row_labels, self.col_labels))

    @property
    def a(self) -> int:
        return int(self.counts[0, 0])

    @property
    def b(self) -> int:
        return int(self.counts[0, 1])

    @property
    def c(self) -> int:
        return int(self.counts[1, 0])

    @property
    def d(self) -> int:
        return int(self.counts[1, 1])

    @property
    def total(self) -> int:
        return int(self.counts.sum())

    @property
    def row_totals(self) -> Tuple[int, int]:
        return tuple(int(x) for x in self.counts.sum(axis=1))

    @property
    def col_totals(self) -> Tuple[int, int]:
        return tuple(int(x) for x in self.counts.sum(axis=0))

    @property
    def empty_rows(self) -> List[str]:
        return [lbl for lbl, n in zip(self.row_labels, self.row_totals) if n == 0]

    @property
    def empty_cols(self) -> List[str]:
        return [lbl for lbl, n in zip(self.col_labels, self.col_totals) if n == 0]

    @property
    def is_degenerate(self) -> bool:
        return bool(self.empty_rows or self.empty_cols)

    @property
    def has_zero_cell(self) -> bool:
        return bool((self.counts == 0).any())

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            self.counts,
            index=pd.Index(self.row_labels, name=MDR_COL),
            columns=pd.Index(self.col_labels, name=CARBAPENEM_COL),
        )


@dataclass(frozen=True)
class ExactTestResult:
    """Raw Fisher exact test output."""
    statistic: float  # sample odds ratio a*d / (b*c), may be 0 or inf
    p_value: float
    alternative: str
    table: ContingencyTable

    def to_dict(self) -> dict:
        """Plain dict; a non-finite sample odds ratio (zero cell) becomes None."""
        return {
            "statistic": self.statistic if np.isfinite(self.statistic) else None,
            "p_value": self.p_value,
            "alternative": self.alternative,
            "a": self.table.a,
            "b": self.table.b,
            "c": self.table.c,
            "d": self.table.d,
        }


@dataclass(frozen=True)
class OddsRatioRecord:
    odds_ratio: float
    ci_lower: float
    ci_upper: float
    p_value: float
    significance: str
    method: str
    ci_level: float = 0.95
    variable: str = "MDR_phenotype"

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([{
            "Variable": self.variable,
            "OddsRatio": self.odds_ratio,
            "CI_Lower": self.ci_lower,
            "CI_Upper": self.ci_upper,
            "p_value": self.p_value,
            "Significance": self.significance,
            "Method": self.method,
        }])


@dataclass(frozen=True)
class AssociationResult:
    table: ContingencyTable
    exact_test: ExactTestResult
    odds_ratio: OddsRatioRecord
    proportions: pd.DataFrame = field(compare=False)


# -----------------------------------------------------------------------------
# Pure helpers
# -----------------------------------------------------------------------------

def _require_labels(df: pd.DataFrame) -> None:
    missing = [c for c in (MDR_COL, CARBAPENEM_COL) if c not in df.columns]
    if missing:
        raise SchemaError(missing, context="classified isolate table")


def build_contingency_table(df: pd.DataFrame) -> ContingencyTable:
    """Cross-tabulate MDR phenotype against carbapenem status in fixed label order."""
    _require_labels(df)

    for col, allowed in ((MDR_COL, MDR_LABELS), (CARBAPENEM_COL, CARBAPENEM_LABELS)):
        unknown = sorted(set(df[col].dropna().astype(str)) - set(allowed))
        if unknown or df[col].isna().any():
            raise ValueError(
                f"Column '{col}' must only contain {list(allowed)}; found {unknown or ['<missing>']}"
            )

    ct = pd.crosstab(df[MDR_COL], df[CARBAPENEM_COL])
    ct = ct.reindex(index=list(MDR_LABELS), columns=list(CARBAPENEM_LABELS), fill_value=0)
    return ContingencyTable(ct.to_numpy(dtype=int))


def run_exact_test(table: ContingencyTable, alternative: str = "two-sided") -> ExactTestResult:
    """Fisher's exact test; sums hypergeometric probabilities of tables at least as extreme."""
    statistic, p = stats.fisher_exact(table.counts.copy(), alternative=alternative)
    return ExactTestResult(
        statistic=float(statistic),
        p_value=float(p),
        alternative=alternative,
        table=table,
    )


def haldane_odds_ratio(
    a: int, b: int, c: int, d: int, add: float = 0.5, ci_level: float = 0.95
) -> Tuple[float, float, float]:
    """
    2x2 odds ratio with Haldane correction, plus Wald CI on log(OR).

    Returns:
        OR, ci_low, ci_high
    """
    a_adj = a + add
    b_adj = b + add
    c_adj = c + add
    d_adj = d + add

    OR = (a_adj * d_adj) / (b_adj * c_adj)
    se = np.sqrt(1 / a_adj + 1 / b_adj + 1 / c_adj + 1 / d_adj)
    z = stats.norm.ppf(0.5 + ci_level / 2)
    log_or = np.log(OR)
    ci_low = float(np.exp(log_or - z * se))
    ci_high = float(np.exp(log_or + z * se))
    return float(OR), ci_low, ci_high


def significance_tag(p_value: float, threshold: float = 0.01) -> str:
    """'p < t' when p is strictly below the threshold, 'p > t' otherwise (ties included)."""
    return f"p < {threshold:g}" if p_value < threshold else f"p > {threshold:g}"


def estimate_odds_ratio(
    table: ContingencyTable,
    p_value: float,
    *,
    ci_level: float = 0.95,
    haldane_add: float = 0.5,
    significance_threshold: float = 0.01,
) -> OddsRatioRecord:
    """Odds ratio of MDR given carbapenem resistance, with CI and significance tag."""
    if table.is_degenerate:
        raise DegenerateTableError(table, table.empty_rows, table.empty_cols)

    if table.has_zero_cell:
        est, lo, hi = haldane_odds_ratio(
            table.a, table.b, table.c, table.d, add=haldane_add, ci_level=ci_level
        )
        method = METHOD_HALDANE
        logger.info(f"Zero cell in {table.counts.tolist()}; using Haldane-corrected odds ratio")
    else:
        res = conditional_odds_ratio(table.counts.copy(), kind="conditional")
        ci = res.confidence_interval(confidence_level=ci_level)
        est, lo, hi = float(res.statistic), float(ci.low), float(ci.high)
        method = METHOD_CONDITIONAL

    return OddsRatioRecord(
        odds_ratio=est,
        ci_lower=lo,
        ci_upper=hi,
        p_value=float(p_value),
        significance=significance_tag(p_value, significance_threshold),
        method=method,
        ci_level=ci_level,
    )


def proportion_table(df: pd.DataFrame) -> pd.DataFrame:
    """
    Count and percentage of each MDR phenotype within each carbapenem-status
    group. Only observed combinations appear.
    """
    _require_labels(df)
    counts = (
        df.groupby([CARBAPENEM_COL, MDR_COL], observed=True)
        .size()
        .rename("count")
        .reset_index()
    )
    counts["percentage"] = counts["count"] / counts.groupby(CARBAPENEM_COL)["count"].transform("sum") * 100

    order_c = {lbl: i for i, lbl in enumerate(CARBAPENEM_LABELS)}
    order_m = {lbl: i for i, lbl in enumerate(MDR_LABELS)}
    counts = counts.sort_values(
        [CARBAPENEM_COL, MDR_COL],
        key=lambda s: s.map(order_c if s.name == CARBAPENEM_COL else order_m),
    ).reset_index(drop=True)
    counts["count"] = counts["count"].astype(int)
    return counts


# -----------------------------------------------------------------------------
# Analyzer
# -----------------------------------------------------------------------------

class AssociationAnalyzer:
    """
    Run the MDR x carbapenem association analysis on a classified collection.

    Deterministic: the same input always gives the same table, p-value,
    odds ratio and interval.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or AnalysisConfig()

    def run(self, df: pd.DataFrame) -> AssociationResult:
        table = build_contingency_table(df)
        logger.info(
            f"Contingency table (MDR/Non-MDR x CarbR/CarbS): {table.counts.tolist()} (n={table.total})"
        )

        if table.is_degenerate:
            err = DegenerateTableError(table, table.empty_rows, table.empty_cols)
            logger.error(f"{err}\n{table.to_frame()}")
            raise err

        exact = run_exact_test(table)
        odds = estimate_odds_ratio(
            table,
            exact.p_value,
            ci_level=self.config.ci_level,
            haldane_add=self.config.haldane_add,
            significance_threshold=self.config.significance_threshold,
        )
        logger.info(
            f"Fisher p={exact.p_value:.3g}; OR={odds.odds_ratio:.3g} "
            f"[{odds.ci_lower:.3g}, {odds.ci_upper:.3g}] ({odds.method}, {odds.significance})"
        )

        return AssociationResult(
            table=table,
            exact_test=exact,
            odds_ratio=odds,
            proportions=proportion_table(df),
        )
