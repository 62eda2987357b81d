"""
Resistance Classifier
=====================

Maps per-drug S/I/R calls onto antimicrobial-category resistance flags and
derives two isolate-level labels:

- mdr_phenotype:     "MDR" if at least `mdr_threshold` categories are resistant,
                     otherwise "Non-MDR"
- carbapenem_status: "Resistant" if any carbapenem drug is R, otherwise
                     "Susceptible"

A category is resistant when at least one of its drugs is R. Missing calls are
never resistant evidence, and they do not cancel an R from another drug of the
same category. Singleton categories follow the same rule, so a missing call
for e.g. colistin counts as "not resistant".

The carbapenem label is computed from the carbapenem columns themselves, not
from the beta-lactam category flag.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import pandas as pd

from ..config.settings import ClassificationConfig
from ..data.loader import IsolateRecord, normalize_interpretations, validate_schema
from ..errors import MissingColumnError

logger = logging.getLogger(__name__)

MDR = "MDR"
NON_MDR = "Non-MDR"
RESISTANT = "Resistant"
SUSCEPTIBLE = "Susceptible"

MDR_LABELS = (MDR, NON_MDR)
CARBAPENEM_LABELS = (RESISTANT, SUSCEPTIBLE)

MDR_COL = "mdr_phenotype"
CARBAPENEM_COL = "carbapenem_status"
N_CATEGORIES_COL = "n_resistant_categories"


def _is_r(df: pd.DataFrame) -> pd.DataFrame:
    """Boolean frame: True where the call is exactly R, False otherwise (incl. missing)."""
    return df.eq("R").fillna(False).astype(bool)


@dataclass(frozen=True)
class ClassifiedIsolate:
    isolate_id: Optional[str]
    category_flags: Dict[str, bool]
    n_resistant_categories: int
    mdr_phenotype: str
    carbapenem_status: str


class ResistanceClassifier:
    """
    Classify isolates into MDR phenotype and carbapenem status.

    Every method working on a frame expects interpretation columns already
    normalised to {S, I, R, NA}; classify() takes care of that itself.
    """

    def __init__(self, config: Optional[ClassificationConfig] = None):
        self.config = config or ClassificationConfig()

    @property
    def required_columns(self):
        return self.config.required_columns

    def category_flags(self, calls: pd.DataFrame) -> pd.DataFrame:
        """One boolean column per category, indexed like `calls`."""
        resistant = _is_r(calls[list(self.config.category_drugs)])
        flags = pd.DataFrame(index=calls.index)
        for cat in self.config.categories:
            flags[cat.name] = resistant[list(cat.drugs)].any(axis=1)
        return flags

    def resistant_category_count(self, calls: pd.DataFrame) -> pd.Series:
        return self.category_flags(calls).sum(axis=1).astype(int).rename(N_CATEGORIES_COL)

    def mdr_phenotype(self, calls: pd.DataFrame) -> pd.Series:
        n = self.resistant_category_count(calls)
        return n.ge(self.config.mdr_threshold).map({True: MDR, False: NON_MDR}).rename(MDR_COL)

    def carbapenem_status(self, calls: pd.DataFrame) -> pd.Series:
        any_r = _is_r(calls[list(self.config.carbapenem_drugs)]).any(axis=1)
        return any_r.map({True: RESISTANT, False: SUSCEPTIBLE}).rename(CARBAPENEM_COL)

    def classify(self, df: pd.DataFrame, *, include_flags: bool = False) -> pd.DataFrame:
        """
        Return a copy of `df` with `mdr_phenotype` and `carbapenem_status`
        appended (plus per-category flags and the count if include_flags).

        Raises MissingColumnError before any row is classified if a required
        drug column is absent, and InterpretationCodeError for unknown codes
        under the "reject" policy.
        """
        validate_schema(df, self.required_columns)
        calls = normalize_interpretations(
            df[list(self.required_columns)],
            self.required_columns,
            policy=self.config.unknown_code_policy,
        )

        flags = self.category_flags(calls)
        n_resistant = flags.sum(axis=1).astype(int)

        out = df.copy()
        if include_flags:
            for name in flags.columns:
                out[f"{name}_resistant"] = flags[name]
            out[N_CATEGORIES_COL] = n_resistant
        out[MDR_COL] = n_resistant.ge(self.config.mdr_threshold).map({True: MDR, False: NON_MDR})
        out[CARBAPENEM_COL] = self.carbapenem_status(calls)

        logger.info(
            f"Classified {len(out):,} isolates: "
            f"{int((out[MDR_COL] == MDR).sum()):,} MDR, "
            f"{int((out[CARBAPENEM_COL] == RESISTANT).sum()):,} carbapenem-resistant"
        )
        return out

    def classify_record(self, record: IsolateRecord) -> ClassifiedIsolate:
        """Classify a single isolate with the same rule as classify()."""
        missing = [c for c in self.required_columns if c not in record.calls]
        if missing:
            raise MissingColumnError(missing)

        row = pd.DataFrame([{c: record.calls[c] for c in self.required_columns}])
        calls = normalize_interpretations(row, self.required_columns, policy=self.config.unknown_code_policy)
        flags = self.category_flags(calls).iloc[0]
        n = int(flags.sum())
        return ClassifiedIsolate(
            isolate_id=record.isolate_id,
            category_flags={k: bool(v) for k, v in flags.items()},
            n_resistant_categories=n,
            mdr_phenotype=MDR if n >= self.config.mdr_threshold else NON_MDR,
            carbapenem_status=self.carbapenem_status(calls).iloc[0],
        )
