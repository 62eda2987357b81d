import pandas as pd
import pytest

from mdr_carbar.association.stratified import analyze_by_stratum, apply_multiple_comparison_correction
from mdr_carbar.errors import SchemaError


@pytest.fixture
def stratified_frame(table_frame):
    kp = table_frame(10, 2, 4, 7).assign(species="K. pneumoniae")
    ec = table_frame(6, 5, 5, 6).assign(species="E. coli")
    degenerate = table_frame(0, 0, 5, 8).assign(species="K. variicola")
    tiny = table_frame(1, 1, 1, 1).assign(species="K. oxytoca")
    return pd.concat([kp, ec, degenerate, tiny], ignore_index=True)


class TestAnalyzeByStratum:
    def test_one_row_per_level(self, stratified_frame):
        out = analyze_by_stratum(stratified_frame, "species")
        assert sorted(out["level"]) == sorted(stratified_frame["species"].unique())
        assert out.set_index("level")["n"].to_dict() == {
            "E. coli": 22, "K. oxytoca": 4, "K. pneumoniae": 23, "K. variicola": 13,
        }

    def test_degenerate_and_small_strata_flagged(self, stratified_frame):
        out = analyze_by_stratum(stratified_frame, "species").set_index("level")
        assert "degenerate" in out.loc["K. variicola", "Error"]
        assert pd.isna(out.loc["K. variicola", "p_value"])
        assert out.loc["K. variicola", "c"] == 5
        assert "Fewer than 10" in out.loc["K. oxytoca", "Error"]
        assert out.loc["K. pneumoniae", "Error"] == ""

    def test_corrections_not_below_raw(self, stratified_frame):
        out = analyze_by_stratum(stratified_frame, "species")
        ok = out[out["Error"] == ""]
        assert len(ok) == 2
        assert (ok["p_value_bonferroni"] >= ok["p_value"] - 1e-12).all()
        assert (ok["p_value_holm"] >= ok["p_value"] - 1e-12).all()
        assert (ok["p_value_fdr"] >= ok["p_value"] - 1e-12).all()
        assert not out.loc[out["Error"] != "", "significant_fdr"].any()

    def test_empty_input_keeps_schema(self, table_frame):
        out = analyze_by_stratum(table_frame(0, 0, 0, 0).assign(species="K. pneumoniae"), "species")
        assert out.empty
        for col in ("level", "n", "odds_ratio", "p_value", "Error", "p_value_fdr", "significant_fdr"):
            assert col in out.columns

    def test_missing_stratum_column(self, table_frame):
        with pytest.raises(SchemaError):
            analyze_by_stratum(table_frame(1, 1, 1, 1), "species")


class TestCorrection:
    def test_bonferroni_values(self):
        df = pd.DataFrame({"p_value": [0.01, 0.04, None]})
        out = apply_multiple_comparison_correction(df, alpha=0.05)
        assert out["p_value_bonferroni"].tolist()[:2] == pytest.approx([0.02, 0.08])
        assert pd.isna(out.loc[2, "p_value_bonferroni"])
        assert out["significant_bonferroni"].tolist() == [True, False, False]
        assert out["significant_bonferroni"].dtype == bool

    def test_empty(self):
        out = apply_multiple_comparison_correction(pd.DataFrame({"p_value": []}))
        assert out.empty
        assert "p_value_fdr" in out.columns
