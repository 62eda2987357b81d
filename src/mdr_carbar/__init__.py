"""
MDR phenotype classification and carbapenem-resistance association analysis.
"""

from .association.analyzer import (
    AssociationAnalyzer,
    AssociationResult,
    ContingencyTable,
    OddsRatioRecord,
    build_contingency_table,
    proportion_table,
    significance_tag,
)
from .classification.resistance_classifier import (
    MDR,
    NON_MDR,
    RESISTANT,
    SUSCEPTIBLE,
    ResistanceClassifier,
)
from .config.settings import (
    MDR_CATEGORY_THRESHOLD,
    AnalysisConfig,
    ClassificationConfig,
    DrugCategory,
    RunConfig,
)
from .errors import (
    DegenerateTableError,
    InterpretationCodeError,
    MissingColumnError,
    SchemaError,
)
from .pipeline import MDRCarbRResult, analyze_mdr_carbr

__version__ = "0.1.0"
