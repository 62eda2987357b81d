"""
MDR / Carbapenem Result Exporter
================================

Writes the outputs of an analysis run to a directory:

- <prefix>_with_MDR_CarbR.xlsx (or .csv): isolate table + derived labels
- <prefix>_MDR_proportions.csv:           carbapenem status x MDR counts / %
- <prefix>_MDR_odds_ratio.csv:            odds-ratio record
- <prefix>_contingency.csv:               the 2x2 table
- <prefix>_manifest.json:                 run metadata, config and exact-test output
"""

from __future__ import annotations

import json
import logging
import platform
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import pandas as pd

from ..association.analyzer import AssociationResult

logger = logging.getLogger(__name__)


def _finite_or_none(value: Any) -> Any:
    # strict JSON has no Infinity/NaN
    if isinstance(value, (float, np.floating)):
        return float(value) if np.isfinite(value) else None
    return value


@dataclass
class ExportedFiles:
    """Paths written by ResultExporter.export()."""
    processed_data: Path
    proportions: Path
    odds_ratio: Path
    contingency: Path
    manifest: Path
    extra: Dict[str, Path] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, str]:
        out = {
            "processed_data": str(self.processed_data),
            "proportions": str(self.proportions),
            "odds_ratio": str(self.odds_ratio),
            "contingency": str(self.contingency),
            "manifest": str(self.manifest),
        }
        out.update({k: str(v) for k, v in self.extra.items()})
        return out


class ResultExporter:
    """Export a classified table and its association result to flat files."""

    def __init__(
        self,
        output_dir: Union[str, Path],
        prefix: str = "GHRU_output",
        table_format: str = "xlsx",
    ):
        if table_format not in ("xlsx", "csv"):
            raise ValueError(f"table_format must be 'xlsx' or 'csv', got {table_format!r}")
        self.output_dir = Path(output_dir)
        self.prefix = prefix
        self.table_format = table_format

    def _path(self, suffix: str) -> Path:
        return self.output_dir / f"{self.prefix}_{suffix}"

    def export(
        self,
        processed_data: pd.DataFrame,
        association: AssociationResult,
        *,
        config_dict: Optional[Dict[str, Any]] = None,
        extra_tables: Optional[Dict[str, pd.DataFrame]] = None,
    ) -> ExportedFiles:
        self.output_dir.mkdir(parents=True, exist_ok=True)

        data_path = self._path(f"with_MDR_CarbR.{self.table_format}")
        if self.table_format == "xlsx":
            processed_data.to_excel(data_path, index=False, engine="openpyxl")
        else:
            processed_data.to_csv(data_path, index=False)

        prop_path = self._path("MDR_proportions.csv")
        association.proportions.to_csv(prop_path, index=False)

        or_path = self._path("MDR_odds_ratio.csv")
        association.odds_ratio.to_frame().to_csv(or_path, index=False)

        ct_path = self._path("contingency.csv")
        association.table.to_frame().to_csv(ct_path)

        extra: Dict[str, Path] = {}
        for name, table in (extra_tables or {}).items():
            p = self._path(f"{name}.csv")
            table.to_csv(p, index=False)
            extra[name] = p

        manifest = {
            "created_at_unix": time.time(),
            "created_at_iso": time.strftime("%Y-%m-%d %H:%M:%S", time.gmtime()),
            "python_version": sys.version,
            "platform": platform.platform(),
            "config": config_dict,
            "n_isolates": int(len(processed_data)),
            "contingency": association.table.counts.tolist(),
            "exact_test": association.exact_test.to_dict(),
            "odds_ratio": {
                k: _finite_or_none(v) for k, v in association.odds_ratio.to_frame().iloc[0].items()
            },
        }
        manifest_path = self._path("manifest.json")
        with open(manifest_path, "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=2, default=str, allow_nan=False)

        files = ExportedFiles(
            processed_data=data_path,
            proportions=prop_path,
            odds_ratio=or_path,
            contingency=ct_path,
            manifest=manifest_path,
            extra=extra,
        )
        logger.info(f"Outputs saved with prefix {self.prefix} in {self.output_dir}")
        return files
