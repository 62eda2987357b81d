"""
Base classes for Plotly visualizations.
"""

from pathlib import Path
from typing import Dict, Union

import plotly.graph_objects as go

# Fill colours shared by the MDR figures
MDR_COLORS = {"MDR": "darkmagenta", "Non-MDR": "turquoise"}


def significance_colors(threshold: float = 0.01) -> Dict[str, str]:
    """Colour per significance tag; keys follow the tag text for `threshold`."""
    return {f"p < {threshold:g}": "blue", f"p > {threshold:g}": "grey"}


class PlotlyFigure:
    """
    Wrapper for a Plotly figure with a convenient save method.
    """

    def __init__(self, figure: go.Figure):
        self.figure = figure

    def save(
        self,
        filename: Union[str, Path],
        width: int = 700,
        height: int = 500,
        scale: float = 2,
        **kwargs,
    ) -> Path:
        """
        Save the figure to a file.

        Args:
            filename: Output file path (extension determines format: .html, .png, .pdf, .svg).
            width: Width in pixels (for static images).
            height: Height in pixels.
            scale: Scale factor for resolution (e.g., 2 for 2x).
        """
        filename = Path(filename)
        filename.parent.mkdir(parents=True, exist_ok=True)

        if filename.suffix.lower() == ".html":
            self.figure.write_html(
                filename,
                include_plotlyjs="cdn",
                config={"responsive": True},
            )
        else:
            # Static export goes through kaleido
            self.figure.write_image(filename, width=width, height=height, scale=scale, **kwargs)
        return filename

    def show(self) -> None:
        """Display the figure in a Jupyter notebook or browser."""
        self.figure.show()
