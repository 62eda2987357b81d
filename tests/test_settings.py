import json

import pytest
from pydantic import ValidationError

from mdr_carbar.config.settings import (
    CARBAPENEMS,
    MDR_CATEGORY_THRESHOLD,
    ClassificationConfig,
    DrugCategory,
    RunConfig,
    load_run_config,
)


class TestClassificationConfig:
    def test_defaults(self):
        cfg = ClassificationConfig()
        assert len(cfg.categories) == 8
        assert sum(c.is_singleton for c in cfg.categories) == 4
        assert cfg.mdr_threshold == MDR_CATEGORY_THRESHOLD == 3
        assert cfg.carbapenem_drugs == CARBAPENEMS

    def test_carbapenems_are_subset_of_beta_lactams(self):
        cfg = ClassificationConfig()
        beta = next(c for c in cfg.categories if c.name == "beta_lactams")
        assert set(cfg.carbapenem_drugs) < set(beta.drugs)

    def test_required_columns_deduplicated(self):
        cfg = ClassificationConfig()
        assert len(cfg.required_columns) == len(set(cfg.required_columns))
        assert set(cfg.carbapenem_drugs) <= set(cfg.required_columns)

    def test_frozen(self):
        cfg = ClassificationConfig()
        with pytest.raises(ValidationError):
            cfg.mdr_threshold = 5

    def test_overlapping_categories_rejected(self):
        with pytest.raises(ValidationError, match="appears in both"):
            ClassificationConfig(categories=(
                DrugCategory(name="a", drugs=("X", "Y")),
                DrugCategory(name="b", drugs=("Y",)),
            ), mdr_threshold=1)

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValidationError, match="unique"):
            ClassificationConfig(categories=(
                DrugCategory(name="a", drugs=("X",)),
                DrugCategory(name="a", drugs=("Y",)),
            ), mdr_threshold=1)

    def test_empty_category_rejected(self):
        with pytest.raises(ValidationError):
            DrugCategory(name="a", drugs=())

    def test_threshold_above_category_count(self):
        with pytest.raises(ValidationError, match="exceeds"):
            ClassificationConfig(mdr_threshold=9)

    def test_unknown_policy_rejected(self):
        with pytest.raises(ValidationError):
            ClassificationConfig(unknown_code_policy="coerce")


class TestRunConfig:
    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            RunConfig(bogus=1)

    def test_load_from_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "analysis": {"significance_threshold": 0.05},
            "output": {"prefix": "site_A", "table_format": "csv"},
            "classification": {"unknown_code_policy": "missing"},
        }))
        cfg = load_run_config(path)
        assert cfg.analysis.significance_threshold == 0.05
        assert cfg.analysis.ci_level == 0.95
        assert cfg.output.prefix == "site_A"
        assert cfg.classification.unknown_code_policy == "missing"
        assert len(cfg.classification.categories) == 8

    def test_round_trip_dump(self):
        cfg = RunConfig()
        again = RunConfig.model_validate(cfg.model_dump(mode="json"))
        assert again == cfg
