"""
Generate Sample AMR Isolate Dataset
===================================

Creates a realistic-looking isolate table with S/I/R calls for every drug in
the category configuration, a few missing calls, and genomic columns
(species, ST, carbapenemase genes). Carbapenemase carriers are made resistant
to carbapenems and more often to other classes, so the MDR x carbapenem
association is visible.

Usage:
  from mdr_carbar.data.synthetic import generate_isolates
  df = generate_isolates(500, seed=42)
"""

from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd

from ..config.settings import ClassificationConfig

SPECIES = ["Klebsiella pneumoniae", "Escherichia coli", "Klebsiella quasipneumoniae"]
ISOLATE_TYPES = ["Clinical", "Surveillance"]
SEQUENCE_TYPES = ["ST307", "ST147", "ST258", "ST11", "ST15", "ST101", "ST14", "ST231"]
CARB_GENES = ["KPC-3", "NDM-1", "OXA-48", "NDM-5;OXA-181", "OXA-232"]


def generate_isolates(
    n_rows: int = 500,
    seed: int = 42,
    config: Optional[ClassificationConfig] = None,
    *,
    carbapenemase_rate: float = 0.3,
    missing_rate: float = 0.02,
) -> pd.DataFrame:
    config = config or ClassificationConfig()
    rng = np.random.default_rng(seed)

    carrier = rng.random(n_rows) < carbapenemase_rate
    df = pd.DataFrame({
        config.id_column: [f"G{i:05d}" for i in range(n_rows)],
        "species": rng.choice(SPECIES, size=n_rows, p=[0.7, 0.25, 0.05]),
        "Isolate_type": rng.choice(ISOLATE_TYPES, size=n_rows),
        "ST": rng.choice(SEQUENCE_TYPES, size=n_rows),
        "Bla_Carb_acquired": np.where(carrier, rng.choice(CARB_GENES, size=n_rows), "-"),
    })

    carbapenems = set(config.carbapenem_drugs)
    for cat in config.categories:
        # one latent resistance draw per category keeps member drugs correlated
        p_cat = np.where(carrier, 0.65, 0.2)
        cat_res = rng.random(n_rows) < p_cat
        for drug in cat.drugs:
            if drug in carbapenems:
                continue
            p_r = np.where(cat_res, 0.8, 0.05)
            u = rng.random(n_rows)
            df[drug] = np.where(u < p_r, "R", np.where(u < p_r + 0.05, "I", "S"))

    for drug in config.carbapenem_drugs:
        p_r = np.where(carrier, 0.85, 0.02)
        u = rng.random(n_rows)
        df[drug] = np.where(u < p_r, "R", np.where(u < p_r + 0.05, "I", "S"))

    for drug in config.required_columns:
        miss = rng.random(n_rows) < missing_rate
        df[drug] = df[drug].astype(object).mask(miss, np.nan)

    return df
