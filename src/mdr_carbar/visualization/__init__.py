from .forest import OddsRatioForestPlot
from .barplot import PhenotypeProportionBarPlot
from .base import PlotlyFigure
