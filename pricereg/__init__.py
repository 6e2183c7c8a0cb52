"""
pricereg: OLS diagnostics and refinement for closing-price regressions

Selects balance-sheet predictors of a company's closing stock price,
explores squared / interaction terms, checks the six OLS assumptions with
quantitative tests, and refines the model with a Box-Cox transform of the
response.
"""

from .config import DEFAULT_THRESHOLDS, Thresholds
from .data import Dataset, Observation, load_dataset
from .diagnostics import (
    AssumptionCheck, DiagnosticReport, check_equal_variance,
    check_independence, check_linearity, check_multicollinearity,
    check_normality, check_outliers, diagnose,
)
from .exceptions import (
    DegenerateTransformError, InsufficientDataError, PriceRegError,
    SelectionDivergenceError,
)
from .models import FittedModel, ModelSpec, fit_model
from .pipeline import AnalysisResult, analyze, run_analysis
from .selection import (
    CandidateSpecs, backward_elimination, forward_selection,
    intersect_specs, select, stepwise_selection,
)
from .terms import check_interactions, check_nonlinearity, explore_terms
from .transform import (
    Refinement, boxcox_transform, refine, refine_steps, search_lambda,
    transform_response,
)

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_THRESHOLDS", "Thresholds",
    "Dataset", "Observation", "load_dataset",
    "ModelSpec", "FittedModel", "fit_model",
    "select", "forward_selection", "backward_elimination",
    "stepwise_selection", "intersect_specs", "CandidateSpecs",
    "check_interactions", "check_nonlinearity", "explore_terms",
    "diagnose", "DiagnosticReport", "AssumptionCheck",
    "check_linearity", "check_normality", "check_equal_variance",
    "check_independence", "check_multicollinearity", "check_outliers",
    "boxcox_transform", "search_lambda", "transform_response",
    "refine", "refine_steps", "Refinement",
    "run_analysis", "analyze", "AnalysisResult",
    "PriceRegError", "InsufficientDataError", "DegenerateTransformError",
    "SelectionDivergenceError",
]
