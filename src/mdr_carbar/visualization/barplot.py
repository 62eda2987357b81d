"""
Stacked proportion bar chart of MDR phenotype by carbapenem status.
"""

from typing import Dict, Optional

import pandas as pd
import plotly.graph_objects as go

from .base import MDR_COLORS, PlotlyFigure


class PhenotypeProportionBarPlot(PlotlyFigure):

    def __init__(
        self,
        proportions: pd.DataFrame,
        group_col: str = "carbapenem_status",
        fill_col: str = "mdr_phenotype",
        value_col: str = "percentage",
        title: str = "Proportion of MDR phenotypes vs Carbapenem susceptibility",
        xlabel: str = "Carbapenem susceptibility",
        colors: Optional[Dict[str, str]] = None,
        height: int = 500,
        width: int = 700,
    ):
        """
        proportions: output of association.analyzer.proportion_table().
        """
        for c in (group_col, fill_col, value_col):
            if c not in proportions.columns:
                raise ValueError(f"Column '{c}' not found in proportion table.")

        colors = colors or MDR_COLORS
        groups = list(dict.fromkeys(proportions[group_col].astype(str)))

        fig = go.Figure()
        for phenotype in dict.fromkeys(proportions[fill_col].astype(str)):
            sel = proportions[proportions[fill_col].astype(str) == phenotype]
            fig.add_trace(go.Bar(
                x=sel[group_col].astype(str).tolist(),
                y=(sel[value_col] / 100).tolist(),
                name=phenotype,
                marker_color=colors.get(phenotype),
                customdata=sel["count"].tolist() if "count" in sel.columns else None,
                hovertemplate="%{x}: %{y:.1%} (n=%{customdata})<extra>" + phenotype + "</extra>",
            ))

        fig.update_layout(
            barmode="stack",
            title=title,
            xaxis=dict(title=xlabel, categoryorder="array", categoryarray=groups),
            yaxis=dict(title="Proportion", tickformat=".0%", range=[0, 1]),
            legend_title_text="MDR Phenotype",
            height=height,
            width=width,
            template="plotly_white",
        )

        super().__init__(fig)
