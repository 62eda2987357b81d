"""
Main Orchestration Pipeline
===========================

End-to-end MDR / carbapenem-resistance analysis:
- Load and validate the isolate table (or take a DataFrame)
- Classify every isolate (MDR phenotype, carbapenem status)
- Build the contingency table, run Fisher's exact test, estimate the odds ratio
- Optionally build figures and write all outputs

Everything is passed explicitly; nothing is kept in module-level state.
Classification finishes for every isolate before the analysis starts, and a
failure in either step aborts the run without writing anything.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

import pandas as pd

from .association.analyzer import AssociationAnalyzer, AssociationResult
from .classification.resistance_classifier import ResistanceClassifier
from .config.settings import RunConfig
from .data.loader import load_isolates
from .export.exporter import ExportedFiles, ResultExporter
from .visualization import OddsRatioForestPlot, PhenotypeProportionBarPlot, PlotlyFigure

logger = logging.getLogger(__name__)


@dataclass
class MDRCarbRResult:
    """Everything one analysis run produces."""
    processed_data: pd.DataFrame
    association: AssociationResult
    figures: Dict[str, PlotlyFigure] = field(default_factory=dict)
    files: Optional[ExportedFiles] = None

    @property
    def proportions(self) -> pd.DataFrame:
        return self.association.proportions

    @property
    def odds_ratio_table(self) -> pd.DataFrame:
        return self.association.odds_ratio.to_frame()


def analyze_mdr_carbr(
    data: Union[str, Path, pd.DataFrame],
    config: Optional[RunConfig] = None,
    *,
    output_dir: Optional[Union[str, Path]] = None,
    save_output: bool = False,
    make_figures: bool = True,
    include_flags: bool = False,
    extra_tables: Optional[Dict[str, pd.DataFrame]] = None,
) -> MDRCarbRResult:
    """
    Run the full analysis.

    Args:
        data: Path to a csv/xlsx/parquet/feather file, or an isolate DataFrame.
        config: RunConfig; defaults apply when omitted.
        output_dir: Required when save_output is True.
        save_output: Write tables, manifest and (if make_figures) figures.
        make_figures: Build the proportion bar chart and the odds-ratio forest plot.
        include_flags: Keep per-category flags and the resistant-category count.
        extra_tables: Additional tables to export next to the main outputs.

    Raises:
        SchemaError / MissingColumnError, InterpretationCodeError, DegenerateTableError
    """
    config = config or RunConfig()
    if save_output and output_dir is None:
        raise ValueError("output_dir is required when save_output=True")

    if isinstance(data, pd.DataFrame):
        df = data
        logger.info(f"Using in-memory isolate table ({len(df):,} rows)")
    else:
        df = load_isolates(data, config.classification)

    classified = ResistanceClassifier(config.classification).classify(df, include_flags=include_flags)
    association = AssociationAnalyzer(config.analysis).run(classified)

    result = MDRCarbRResult(processed_data=classified, association=association)

    if make_figures:
        result.figures = {
            "MDR_barplot": PhenotypeProportionBarPlot(association.proportions),
            "MDR_ORplot": OddsRatioForestPlot(
                association.odds_ratio.to_frame(),
                significance_threshold=config.analysis.significance_threshold,
            ),
        }

    if save_output:
        out = Path(output_dir)
        exporter = ResultExporter(out, prefix=config.output.prefix, table_format=config.output.table_format)
        files = exporter.export(
            classified,
            association,
            config_dict=config.model_dump(mode="json"),
            extra_tables=extra_tables,
        )
        for name, fig in result.figures.items():
            path = out / f"{config.output.prefix}_{name}.{config.output.figure_format}"
            files.extra[name] = fig.save(path)
        result.files = files

    return result
