import pandas as pd
import pytest

from mdr_carbar.config.settings import ClassificationConfig


@pytest.fixture
def config():
    return ClassificationConfig()


@pytest.fixture
def make_isolate(config):
    """Build one isolate row: every required drug S unless overridden."""
    def _make(isolate_id="G00001", **calls):
        row = {config.id_column: isolate_id}
        for drug in config.required_columns:
            row[drug] = "S"
        row.update(calls)
        return row
    return _make


@pytest.fixture
def make_frame(make_isolate):
    def _frame(rows):
        return pd.DataFrame([make_isolate(f"G{i:05d}", **r) for i, r in enumerate(rows)])
    return _frame


@pytest.fixture
def mdr_carbr_frame(make_frame):
    """
    23 isolates laid out as [[10, 2], [4, 7]]:
      MDR & carb R = 10, MDR & carb S = 2, Non-MDR & carb R = 4, Non-MDR & carb S = 7
    """
    mdr = {"Amikacin_int": "R", "Ciprofloxacin_int": "R", "Colistin_int": "R"}
    carb = {"Meropenem_int": "R"}
    rows = (
        [{**mdr, **carb}] * 10
        + [mdr] * 2
        + [carb] * 4
        + [{}] * 7
    )
    return make_frame(rows)


@pytest.fixture
def table_frame():
    """Classified frame with the given 2x2 cell counts."""
    def _frame(a, b, c, d):
        rows = (
            [("MDR", "Resistant")] * a
            + [("MDR", "Susceptible")] * b
            + [("Non-MDR", "Resistant")] * c
            + [("Non-MDR", "Susceptible")] * d
        )
        return pd.DataFrame(rows, columns=["mdr_phenotype", "carbapenem_status"])
    return _frame
