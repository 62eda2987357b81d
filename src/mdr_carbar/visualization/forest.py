"""
Forest plot for MDR odds ratios.
"""

from typing import Dict, Optional

import pandas as pd
import plotly.graph_objects as go

from .base import PlotlyFigure, significance_colors


class OddsRatioForestPlot(PlotlyFigure):
    """
    Odds ratios with confidence intervals on a log x-axis, one row per
    variable, coloured by significance tag. A dashed line marks OR = 1.
    """

    def __init__(
        self,
        data: pd.DataFrame,
        estimate_col: str = "OddsRatio",
        ci_low_col: str = "CI_Lower",
        ci_high_col: str = "CI_Upper",
        label_col: str = "Variable",
        significance_col: str = "Significance",
        title: str = "Odds Ratio with 95% Confidence Intervals",
        xlabel: str = "Odds Ratio (log scale)",
        colors: Optional[Dict[str, str]] = None,
        significance_threshold: float = 0.01,
        height: int = 500,
        width: int = 700,
    ):
        """
        Args:
            data: One row per variable, e.g. OddsRatioRecord.to_frame().
            estimate_col: Column with point estimates.
            ci_low_col: Column with lower confidence bound.
            ci_high_col: Column with upper confidence bound.
            label_col: Column with row labels.
            significance_col: Column with the significance tag.
            colors: Tag -> colour mapping (default from significance_threshold).
        """
        for c in (estimate_col, ci_low_col, ci_high_col, label_col):
            if c not in data.columns:
                raise ValueError(f"Column '{c}' not found in odds-ratio data.")

        df = data.reset_index(drop=True)
        colors = colors or significance_colors(significance_threshold)
        labels = df[label_col].astype(str).tolist()

        fig = go.Figure()

        tags = df[significance_col].astype(str) if significance_col in df.columns else pd.Series([""] * len(df))
        for tag in sorted(tags.unique()):
            sel = df[tags == tag]
            fig.add_trace(go.Scatter(
                x=sel[estimate_col].tolist(),
                y=sel[label_col].astype(str).tolist(),
                mode="markers",
                marker=dict(size=12, color=colors.get(tag, "grey")),
                # asymmetric error bars; shapes would need log10 coordinates here
                error_x=dict(
                    type="data",
                    symmetric=False,
                    array=(sel[ci_high_col] - sel[estimate_col]).tolist(),
                    arrayminus=(sel[estimate_col] - sel[ci_low_col]).tolist(),
                    color="black",
                    width=6,
                ),
                name=tag or "Estimate",
                customdata=sel[[ci_low_col, ci_high_col]].to_numpy(),
                hovertemplate="<b>%{y}</b><br>OR: %{x:.3f}<br>95% CI: %{customdata[0]:.3f} - %{customdata[1]:.3f}<extra></extra>",
            ))

        # OR = 1 reference line; shape x is log10(OR) on a log axis
        fig.add_shape(
            type="line",
            xref="x", x0=0, x1=0,
            yref="paper", y0=0, y1=1,
            line=dict(color="black", width=1, dash="dash"),
        )

        fig.update_layout(
            title=title,
            xaxis_title=xlabel,
            xaxis_type="log",
            yaxis=dict(categoryorder="array", categoryarray=labels[::-1]),
            legend_title_text="Significance",
            height=height,
            width=width,
            margin=dict(l=150, r=50, t=80, b=50),
            template="plotly_white",
        )

        super().__init__(fig)
