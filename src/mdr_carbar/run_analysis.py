#!/usr/bin/env python3
"""
Command-line interface for the MDR / carbapenem-resistance analysis.

Usage:
    mdr-carbar --data isolates.xlsx --out ./output

    # Stratify by species, CSV outputs, unknown codes treated as missing
    mdr-carbar --data isolates.csv --out ./output \\
        --stratify-by species --table-format csv --unknown-codes missing
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from .association.stratified import analyze_by_stratum
from .config.settings import RunConfig, load_run_config
from .data.loader import load_isolates
from .errors import DegenerateTableError, InterpretationCodeError, SchemaError
from .pipeline import analyze_mdr_carbr
from .summaries.genomic import (
    ast_proportions_by_carbapenemase,
    carbapenem_gene_combinations,
    st_carb_gene_pivot,
    top_st_counts,
)

logger = logging.getLogger(__name__)

EXIT_INPUT_ERROR = 2
EXIT_DEGENERATE = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="MDR phenotype vs carbapenem resistance: classification, Fisher exact test and odds ratio",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--data", required=True, type=str, help="Isolate table (csv, xlsx, parquet, feather)")
    parser.add_argument("--out", required=True, type=str, help="Output directory")
    parser.add_argument("--config", type=str, default=None, help="RunConfig JSON")
    parser.add_argument("--prefix", type=str, default=None, help="Output file prefix")
    parser.add_argument("--table-format", choices=["xlsx", "csv"], default=None, help="Format of the isolate table output")
    parser.add_argument(
        "--unknown-codes",
        choices=["reject", "missing"],
        default=None,
        help="Codes outside S/I/R: fail (reject) or treat as missing",
    )
    parser.add_argument("--stratify-by", type=str, default=None, help="Also analyse within each level of this column")
    parser.add_argument("--top-n-st", type=int, default=10, help="Rows in the top ST table (if an ST column exists)")
    parser.add_argument("--no-figures", action="store_true", help="Skip figure generation")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


def _resolve_config(args: argparse.Namespace) -> RunConfig:
    config = load_run_config(args.config) if args.config else RunConfig()
    updates = {}
    if args.unknown_codes:
        updates["classification"] = config.classification.model_copy(
            update={"unknown_code_policy": args.unknown_codes}
        )
    output_updates = {}
    if args.prefix:
        output_updates["prefix"] = args.prefix
    if args.table_format:
        output_updates["table_format"] = args.table_format
    if output_updates:
        updates["output"] = config.output.model_copy(update=output_updates)
    return config.model_copy(update=updates) if updates else config


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    out = Path(args.out)

    try:
        config = _resolve_config(args)
        df = load_isolates(args.data, config.classification)
        if args.stratify_by and args.stratify_by not in df.columns:
            raise SchemaError([args.stratify_by])

        extra = {}
        if "ST" in df.columns:
            extra[f"top{args.top_n_st}_ST_counts"] = top_st_counts(df, args.top_n_st)
        if "Bla_Carb_acquired" in df.columns:
            extra["carbapenem_gene_combinations"] = carbapenem_gene_combinations(df)
            extra["AST_by_carbapenemase"] = ast_proportions_by_carbapenemase(
                df, config.classification.required_columns
            )
            if "ST" in df.columns:
                extra["ST_vs_carbapenem_genes"] = st_carb_gene_pivot(df)

        result = analyze_mdr_carbr(
            df,
            config,
            output_dir=out,
            save_output=True,
            make_figures=not args.no_figures,
            extra_tables=extra,
        )

        if args.stratify_by:
            strat = analyze_by_stratum(result.processed_data, args.stratify_by, config.analysis)
            strat_path = out / f"{config.output.prefix}_MDR_by_{args.stratify_by}.csv"
            strat.to_csv(strat_path, index=False)
            logger.info(f"Stratified results saved to {strat_path}")

    except (
        FileNotFoundError,
        json.JSONDecodeError,
        ValidationError,
        SchemaError,
        InterpretationCodeError,
    ) as e:
        logger.error(str(e))
        return EXIT_INPUT_ERROR
    except DegenerateTableError as e:
        logger.error(f"{e}\n{e.table.to_frame()}")
        return EXIT_DEGENERATE

    o = result.association.odds_ratio
    logger.info(
        f"OR={o.odds_ratio:.3f} (95% CI {o.ci_lower:.3f}-{o.ci_upper:.3f}), "
        f"p={o.p_value:.3g} [{o.significance}]"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
