"""
Analysis thresholds and defaults.

The values are the conventional ones used when the analysis was first run
by hand (alpha = 0.05, VIF < 10, Cook's D < 0.5).  They are exposed here so
a caller can tighten or relax them without touching the algorithms.
"""

from dataclasses import dataclass, replace

# ─── HYPOTHESIS TESTS ────────────────────────────────────────────────────
# Significance level for RESET, Shapiro-Wilk and Breusch-Pagan.
ALPHA = 0.05

# Ramsey RESET: highest power of the fitted values added to the model.
RESET_POWER = 3

# ─── MULTICOLLINEARITY / INFLUENCE ───────────────────────────────────────
# A term whose VIF reaches this value fails the multicollinearity check.
VIF_MAX = 10.0

# An observation whose Cook's distance reaches this value is an outlier.
COOKS_MAX = 0.5

# ─── VARIABLE SELECTION ──────────────────────────────────────────────────
SIGNIFICANCE_ENTER = 0.05
SIGNIFICANCE_REMOVE = 0.05
INTERACTION_ALPHA = 0.05

# Upper bound on add/remove actions for any selection strategy.
MAX_SELECTION_STEPS = 100

# ─── BOX-COX SEARCH ──────────────────────────────────────────────────────
LAMBDA_BOUNDS = (-10.0, 10.0)
LAMBDA_STEP = 0.01

# ─── DATA LOADING ────────────────────────────────────────────────────────
RESPONSE_COLUMN = 'close_price'

# Identifier / date columns stripped before the data reaches the models.
ID_COLUMNS = (
    'ticker', 'symbol', 'company', 'name', 'date', 'period',
    'fiscal_date', 'fiscalDateEnding', 'reportedCurrency', 'currency',
)


@dataclass(frozen=True)
class Thresholds:
    """
    Bundle of every tunable threshold used by the pipeline.

    Instances are immutable; use :meth:`replace` to derive a variant.
    """

    alpha: float = ALPHA
    reset_power: int = RESET_POWER
    vif_max: float = VIF_MAX
    cooks_max: float = COOKS_MAX
    significance_enter: float = SIGNIFICANCE_ENTER
    significance_remove: float = SIGNIFICANCE_REMOVE
    interaction_alpha: float = INTERACTION_ALPHA
    max_selection_steps: int = MAX_SELECTION_STEPS
    lambda_bounds: tuple = LAMBDA_BOUNDS
    lambda_step: float = LAMBDA_STEP

    def __post_init__(self):
        for name in ('alpha', 'significance_enter', 'significance_remove',
                     'interaction_alpha'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must lie in [0, 1], got {value}")
        if self.vif_max <= 1.0:
            raise ValueError(f"vif_max must exceed 1, got {self.vif_max}")
        if self.cooks_max <= 0.0:
            raise ValueError(f"cooks_max must be positive, got {self.cooks_max}")
        if self.max_selection_steps < 1:
            raise ValueError("max_selection_steps must be at least 1")
        lo, hi = self.lambda_bounds
        if not lo < hi:
            raise ValueError(f"Invalid lambda bounds: {self.lambda_bounds}")
        if self.lambda_step <= 0:
            raise ValueError("lambda_step must be positive")

    def replace(self, **changes):
        return replace(self, **changes)


DEFAULT_THRESHOLDS = Thresholds()
