import pandas as pd
import pytest

from mdr_carbar.errors import SchemaError
from mdr_carbar.summaries.genomic import (
    CARBA_GROUP_COL,
    CARBA_R,
    CARBA_S,
    NO_CARBAPENEMASE,
    ast_interpretation_proportions,
    ast_proportions_by_carbapenemase,
    carbapenemase_group,
    carbapenem_gene_combinations,
    st_carb_gene_pivot,
    top_st_counts,
)


@pytest.fixture
def genomic_frame():
    return pd.DataFrame({
        "ST": ["ST307", "ST307", "ST147", "ST147", "ST147", "ST11", "ST15", "ST15"],
        "Bla_Carb_acquired": ["KPC-3", "-", "NDM-1;OXA-48", "NDM-1;OXA-48", None, "", "OXA-48", "KPC-3"],
        "Isolate_type": ["Clinical"] * 4 + ["Surveillance"] * 4,
        "MEM": ["R", "S", "R", "R", "S", "S", "I", "R"],
        "CIP": ["R", "R", None, "S", "S", "R", "S", "S"],
    })


class TestTopST:
    def test_counts_and_percentage(self, genomic_frame):
        out = top_st_counts(genomic_frame, top_n=2)
        assert out["ST"].tolist() == ["ST147", "ST15"]
        assert out["Number"].tolist() == [3, 2]
        assert out["Percentage"].tolist() == [37.5, 25.0]

    def test_requires_column(self):
        with pytest.raises(SchemaError):
            top_st_counts(pd.DataFrame({"x": [1]}))


class TestCarbapenemGenes:
    def test_combinations_kept_intact(self, genomic_frame):
        out = carbapenem_gene_combinations(genomic_frame).set_index("Gene_Combination")
        assert out.loc[NO_CARBAPENEMASE, "Count"] == 3
        assert out.loc["NDM-1;OXA-48", "Count"] == 2
        assert out.loc["KPC-3", "Percentage"] == 25.0
        assert out["Count"].sum() == len(genomic_frame)

    def test_pivot_totals(self, genomic_frame):
        pivot = st_carb_gene_pivot(genomic_frame)
        assert pivot["ST"].iloc[-1] == "Total"
        body = pivot.iloc[:-1].set_index("ST")
        assert body.loc["ST147", "NDM-1;OXA-48"] == 2
        assert body.loc["ST147", "Total"] == 3
        assert pivot["Total"].iloc[-1] == len(genomic_frame)
        assert pivot[NO_CARBAPENEMASE].iloc[-1] == 3


class TestCarbapenemaseGroup:
    def test_gene_derived_group(self, genomic_frame):
        groups = carbapenemase_group(genomic_frame)
        assert groups.tolist() == [CARBA_R, CARBA_S, CARBA_R, CARBA_R, CARBA_S, CARBA_S, CARBA_R, CARBA_R]

    def test_ast_split_by_carbapenemase(self, genomic_frame):
        out = ast_proportions_by_carbapenemase(genomic_frame, ["MEM", "CIP"])
        assert set(out[CARBA_GROUP_COL]) == {CARBA_R, CARBA_S}
        mem_r = out[(out[CARBA_GROUP_COL] == CARBA_R) & (out["Antimicrobial"] == "MEM")].set_index("Interpretation")
        # carriers: MEM calls R, R, R, I, R
        assert mem_r.loc["R", "count"] == 4
        assert mem_r.loc["R", "proportion"] == pytest.approx(0.8)

    def test_requires_drug_columns(self, genomic_frame):
        with pytest.raises(SchemaError):
            ast_proportions_by_carbapenemase(genomic_frame, ["MEM", "GEN"])


class TestASTProportions:
    def test_proportions_per_group_and_drug(self, genomic_frame):
        out = ast_interpretation_proportions(genomic_frame, ["MEM", "CIP"])
        sums = out.groupby(["Isolate_type", "Antimicrobial"])["proportion"].sum()
        assert sums.tolist() == pytest.approx([1.0] * 4)
        clin_cip = out[(out["Isolate_type"] == "Clinical") & (out["Antimicrobial"] == "CIP")]
        # one missing CIP call is left out of the denominator
        assert clin_cip["count"].sum() == 3
