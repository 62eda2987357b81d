"""
Configuration Models using Pydantic
====================================

Centralized, validated configuration for the MDR / carbapenem analysis.
Category membership is static configuration: the classifier never infers it
from the data. All models are frozen so a run cannot alter them midway.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Minimum number of resistant categories for the MDR label.
MDR_CATEGORY_THRESHOLD = 3

AMINOGLYCOSIDES = ("Amikacin_int", "Gentamicin_int", "Tobramycin_int")
BETA_LACTAMS = (
    "Amoxicillin_clavulanic_acid_int", "Ampicillin_int", "Aztreonam_int",
    "Cefalexin_int", "Cefepime_int", "Cefixime_int", "Cefotaxime_int",
    "Cefoxitin_int", "Ceftazidime_int", "Ceftriaxone_int", "Cefuroxime_int",
    "Ertapenem_int", "Imipenem_int", "Mecillinam_int", "Meropenem_int",
    "Piperacillin_int", "Piperacillin_tazobactam_int", "Temocillin_int",
    "Ticarcillin_clavulanic_acid_int",
)
FLUOROQUINOLONES = ("Ciprofloxacin_int", "Levofloxacin_int", "Nalidixic_acid_int", "Norfloxacin_int")
FOLATE_PATHWAY_INHIBITORS = ("Trimethoprim_int", "Trimethoprim_sulfamethoxazole_int")
CARBAPENEMS = ("Ertapenem_int", "Imipenem_int", "Meropenem_int")


class DrugCategory(BaseModel):
    """A named antimicrobial category and its member drug columns."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    drugs: Tuple[str, ...] = Field(..., description="Interpretation columns belonging to the category.")

    @field_validator("drugs")
    @classmethod
    def drugs_not_empty(cls, v):
        if len(v) == 0:
            raise ValueError("a category needs at least one drug")
        if len(set(v)) != len(v):
            raise ValueError("duplicate drug inside category")
        return v

    @property
    def is_singleton(self) -> bool:
        return len(self.drugs) == 1


def default_categories() -> Tuple[DrugCategory, ...]:
    return (
        DrugCategory(name="aminoglycosides", drugs=AMINOGLYCOSIDES),
        DrugCategory(name="beta_lactams", drugs=BETA_LACTAMS),
        DrugCategory(name="fluoroquinolones", drugs=FLUOROQUINOLONES),
        DrugCategory(name="folate_pathway_inhibitors", drugs=FOLATE_PATHWAY_INHIBITORS),
        DrugCategory(name="colistin", drugs=("Colistin_int",)),
        DrugCategory(name="fosfomycin", drugs=("Fosfomycin_G6P_int",)),
        DrugCategory(name="nitrofurantoin", drugs=("Nitrofurantoin_int",)),
        DrugCategory(name="tigecycline", drugs=("Tigecycline_int",)),
    )


class ClassificationConfig(BaseModel):
    """Configuration for the per-isolate resistance classifier."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    categories: Tuple[DrugCategory, ...] = Field(default_factory=default_categories)
    carbapenem_drugs: Tuple[str, ...] = Field(CARBAPENEMS, description="Any R among these marks carbapenem resistance.")
    mdr_threshold: int = Field(MDR_CATEGORY_THRESHOLD, ge=1, description="Resistant categories needed for MDR.")
    unknown_code_policy: Literal["reject", "missing"] = Field(
        "reject", description="What to do with codes outside {S, I, R}: raise, or treat as missing."
    )
    id_column: str = Field("ghru_id", description="Isolate identifier column (optional in the data).")

    @field_validator("carbapenem_drugs")
    @classmethod
    def carbapenems_not_empty(cls, v):
        if len(v) == 0:
            raise ValueError("carbapenem_drugs cannot be empty")
        return v

    @model_validator(mode="after")
    def categories_are_consistent(self):
        if not self.categories:
            raise ValueError("at least one category is required")
        names = [c.name for c in self.categories]
        if len(set(names)) != len(names):
            raise ValueError(f"category names must be unique: {names}")
        seen = {}
        for cat in self.categories:
            for drug in cat.drugs:
                if drug in seen:
                    raise ValueError(
                        f"drug '{drug}' appears in both '{seen[drug]}' and '{cat.name}'"
                    )
                seen[drug] = cat.name
        if self.mdr_threshold > len(self.categories):
            raise ValueError(
                f"mdr_threshold={self.mdr_threshold} exceeds the number of categories ({len(self.categories)})"
            )
        return self

    @property
    def category_drugs(self) -> Tuple[str, ...]:
        return tuple(d for c in self.categories for d in c.drugs)

    @property
    def required_columns(self) -> Tuple[str, ...]:
        """Category drugs followed by carbapenems, first occurrence kept."""
        out = []
        for col in self.category_drugs + tuple(self.carbapenem_drugs):
            if col not in out:
                out.append(col)
        return tuple(out)


class AnalysisConfig(BaseModel):
    """Configuration for the MDR x carbapenem association analysis."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    ci_level: float = Field(0.95, gt=0.0, lt=1.0, description="Confidence level of the odds-ratio interval.")
    significance_threshold: float = Field(0.01, gt=0.0, lt=1.0, description="p-value cut for the significance tag.")
    haldane_add: float = Field(0.5, gt=0.0, description="Added to every cell when a cell is zero.")


class OutputConfig(BaseModel):
    """Where and how results are written."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    prefix: str = Field("GHRU_output", min_length=1)
    table_format: Literal["xlsx", "csv"] = "xlsx"
    figure_format: Literal["html", "png", "svg", "pdf"] = "html"


class RunConfig(BaseModel):
    """Top-level configuration for a full analysis run."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


def load_run_config(path: Union[str, Path]) -> RunConfig:
    """Read a RunConfig from a JSON file. Missing sections take their defaults."""
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    return RunConfig.model_validate(raw)
