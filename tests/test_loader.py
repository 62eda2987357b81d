import logging

import pandas as pd
import pytest

from mdr_carbar.config.settings import ClassificationConfig
from mdr_carbar.data.loader import (
    IsolateRecord,
    audit_columns,
    load_isolates,
    normalize_interpretations,
    read_any,
    standardize_column_names,
    validate_schema,
)
from mdr_carbar.errors import InterpretationCodeError, MissingColumnError


class TestNormalizeInterpretations:
    def test_codes_and_missing_tokens(self):
        df = pd.DataFrame({"X": ["s", " R", "Intermediate", "-", "ND", None, float("nan"), "not done"]})
        out = normalize_interpretations(df, ["X"])
        assert out["X"].tolist()[:3] == ["S", "R", "I"]
        assert out["X"].isna().tolist() == [False, False, False, True, True, True, True, True]

    def test_reject_names_column_and_values(self):
        df = pd.DataFrame({"X": ["S", "R"], "Y": ["S", "SDD"]})
        with pytest.raises(InterpretationCodeError) as exc:
            normalize_interpretations(df, ["X", "Y"])
        assert exc.value.column == "Y"
        assert exc.value.values == ["SDD"]
        assert "'Y'" in str(exc.value)

    def test_missing_policy_logs_and_nulls(self, caplog):
        df = pd.DataFrame({"X": ["R", "??R", "S"]})
        with caplog.at_level(logging.WARNING):
            out = normalize_interpretations(df, ["X"], policy="missing")
        assert out["X"].isna().tolist() == [False, True, False]
        assert "outside S/I/R" in caplog.text

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            normalize_interpretations(pd.DataFrame({"X": ["S"]}), ["X"], policy="coerce")


class TestSchema:
    def test_validate_schema_lists_all_missing(self):
        with pytest.raises(MissingColumnError) as exc:
            validate_schema(pd.DataFrame({"A": [1]}), ["A", "B", "C"])
        assert exc.value.missing_columns == ["B", "C"]

    def test_audit_reports_without_raising(self, caplog):
        df = pd.DataFrame(columns=["a", "c", "extra"])
        with caplog.at_level(logging.WARNING):
            audit = audit_columns(df, ["a", "b", "c"])
        assert audit.missing == ["b"]
        assert audit.unexpected == ["extra"]
        assert not audit.ok
        assert "Missing columns: b" in caplog.text

    def test_audit_ok(self):
        assert audit_columns(pd.DataFrame(columns=["a", "b"]), ["a", "b"]).ok

    def test_standardize_column_names(self):
        df = pd.DataFrame(columns=["Sample collection date", " Isolate type ", "ST"])
        assert list(standardize_column_names(df).columns) == ["Sample_collection_date", "Isolate_type", "ST"]


class TestReadAndLoad:
    def test_csv_round_trip_drops_unnamed(self, tmp_path, make_frame):
        path = tmp_path / "isolates.csv"
        make_frame([{"Meropenem_int": "R"}, {}]).to_csv(path)  # index written as Unnamed: 0
        df = read_any(path)
        assert not any(str(c).startswith("Unnamed") for c in df.columns)
        assert len(df) == 2

    def test_xlsx(self, tmp_path, make_frame):
        path = tmp_path / "isolates.xlsx"
        make_frame([{"Meropenem_int": "R"}]).to_excel(path, index=False)
        df = load_isolates(path)
        assert df.loc[0, "Meropenem_int"] == "R"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_any(tmp_path / "nope.csv")

    def test_load_rejects_missing_drug_column(self, tmp_path, make_frame):
        path = tmp_path / "isolates.csv"
        make_frame([{}]).drop(columns=["Tigecycline_int"]).to_csv(path, index=False)
        with pytest.raises(MissingColumnError, match="Tigecycline_int"):
            load_isolates(path)

    def test_load_normalises_codes(self, tmp_path, make_frame):
        path = tmp_path / "isolates.csv"
        make_frame([{"Amikacin_int": "r", "Colistin_int": "NA"}]).to_csv(path, index=False)
        df = load_isolates(path, ClassificationConfig())
        assert df.loc[0, "Amikacin_int"] == "R"
        assert pd.isna(df.loc[0, "Colistin_int"])


class TestIsolateRecord:
    def test_from_row(self):
        rec = IsolateRecord.from_row({"id": "G1", "A": "r", "B": None}, ["A", "B"], "id")
        assert rec.isolate_id == "G1"
        assert rec.calls == {"A": "R", "B": None}

    def test_from_row_missing_drug(self):
        with pytest.raises(MissingColumnError):
            IsolateRecord.from_row({"A": "S"}, ["A", "B"])
