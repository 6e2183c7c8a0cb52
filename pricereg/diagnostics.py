"""
Quantitative checks of the six OLS assumptions.

Every check is a pure function of a :class:`~pricereg.models.FittedModel`
and returns an :class:`AssumptionCheck`.  A violated assumption is an
ordinary result (``passed=False``), never an exception.

=================  ===============================  ======================
Assumption         Statistic                        Pass rule
=================  ===============================  ======================
Linearity          Ramsey RESET F-test              p >= alpha
Normality          Shapiro-Wilk on residuals        p >= alpha
Equal variance     Breusch-Pagan LM test            p >= alpha
Independence       Durbin-Watson (informational)    always passes
Multicollinearity  VIF per term                     all VIF < vif_max
Outliers           Cook's distance per observation  all D < cooks_max
=================  ===============================  ======================
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy import stats
from sklearn.linear_model import LinearRegression
from statsmodels.stats.diagnostic import het_breuschpagan, linear_reset
from statsmodels.stats.stattools import durbin_watson

from . import config
from .config import DEFAULT_THRESHOLDS

LINEARITY = 'linearity'
NORMALITY = 'normality'
EQUAL_VARIANCE = 'equal_variance'
INDEPENDENCE = 'independence'
MULTICOLLINEARITY = 'multicollinearity'
OUTLIERS = 'outliers'

ASSUMPTIONS = (LINEARITY, NORMALITY, EQUAL_VARIANCE, INDEPENDENCE,
               MULTICOLLINEARITY, OUTLIERS)


@dataclass(frozen=True)
class AssumptionCheck:
    """Verdict for one assumption.  ``statistic`` is None if not computed."""

    name: str
    passed: bool
    statistic: float = None
    pvalue: float = None
    detail: str = ''

    def __str__(self):
        verdict = 'PASS' if self.passed else 'FAIL'
        return f"{self.name:18s} {verdict}  {self.detail}"


@dataclass(frozen=True)
class DiagnosticReport:
    """Six assumption verdicts plus the per-term / per-row statistics."""

    linearity: AssumptionCheck
    normality: AssumptionCheck
    equal_variance: AssumptionCheck
    independence: AssumptionCheck
    multicollinearity: AssumptionCheck
    outliers: AssumptionCheck
    vif: tuple = ()
    cooks_distance: tuple = ()

    @property
    def checks(self):
        return tuple(getattr(self, name) for name in ASSUMPTIONS)

    @property
    def passed(self):
        return all(c.passed for c in self.checks)

    @property
    def failures(self):
        return [c.name for c in self.checks if not c.passed]

    @property
    def max_vif(self):
        return max((v for _, v in self.vif), default=1.0)

    @property
    def max_cooks(self):
        return max(self.cooks_distance, default=0.0)

    def vif_series(self):
        return pd.Series(dict(self.vif), dtype=np.float64)

    def to_frame(self):
        """One row per assumption, for printing or export."""
        return pd.DataFrame([
            {'Assumption': c.name, 'Passed': c.passed,
             'Statistic': c.statistic, 'p_value': c.pvalue,
             'Detail': c.detail}
            for c in self.checks
        ])

    def __str__(self):
        return "\n".join(str(c) for c in self.checks)


# ---------------------------------------------------------------------------
# Raw statistics
# ---------------------------------------------------------------------------

def _term_matrix(fitted):
    """Design columns of the fit, intercept excluded."""
    exog = fitted.results.model.exog
    return pd.DataFrame(exog[:, 1:], columns=list(fitted.spec.terms))


def compute_vif(fitted):
    r"""
    Variance inflation factor of every term.

    :math:`VIF_j = 1 / (1 - R_j^2)` where :math:`R_j^2` comes from
    regressing term *j* on all other terms (with intercept).  An exact
    linear dependence gives ``inf``; a lone term has VIF 1.

    Returns
    -------
    pd.Series
        Indexed by term name.
    """
    X = _term_matrix(fitted)
    if X.shape[1] == 0:
        return pd.Series(dtype=np.float64)
    if X.shape[1] == 1:
        return pd.Series({X.columns[0]: 1.0})

    vifs = {}
    for term in X.columns:
        others = X.drop(columns=[term])
        target = X[term].values
        r2 = LinearRegression().fit(others, target).score(others, target)
        vifs[term] = np.inf if r2 >= 1.0 else 1.0 / (1.0 - r2)
    return pd.Series(vifs, dtype=np.float64)


def compute_cooks_distance(fitted):
    """Cook's distance of every observation used in the fit."""
    influence = fitted.results.get_influence()
    return np.asarray(influence.cooks_distance[0], dtype=np.float64)


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------

def check_linearity(fitted, alpha=config.ALPHA, power=config.RESET_POWER):
    """Ramsey RESET: do powers of the fitted values add explanatory power?"""
    if not fitted.spec.terms:
        return AssumptionCheck(LINEARITY, True,
                               detail='intercept-only model')
    df_left = fitted.results.df_resid - (power - 1)
    if df_left < 1:
        return AssumptionCheck(
            LINEARITY, True,
            detail='too few residual degrees of freedom for RESET')

    test = linear_reset(fitted.results, power=power, test_type='fitted',
                        use_f=True)
    stat = float(np.squeeze(test.statistic))
    p = float(np.squeeze(test.pvalue))
    return AssumptionCheck(LINEARITY, bool(p >= alpha), stat, p,
                           f"RESET F={stat:.3f}, p={p:.4f}")


def check_normality(fitted, alpha=config.ALPHA):
    """Shapiro-Wilk test on the residuals."""
    resid = np.asarray(fitted.residuals)
    if len(resid) < 3:
        return AssumptionCheck(NORMALITY, True,
                               detail='fewer than 3 residuals')
    stat, p = stats.shapiro(resid)
    stat, p = float(stat), float(p)
    return AssumptionCheck(NORMALITY, bool(p >= alpha), stat, p,
                           f"Shapiro-Wilk W={stat:.4f}, p={p:.4f}")


def check_equal_variance(fitted, alpha=config.ALPHA):
    """Breusch-Pagan test of residual variance against the design."""
    if not fitted.spec.terms:
        return AssumptionCheck(EQUAL_VARIANCE, True,
                               detail='intercept-only model')
    lm, p, _, _ = het_breuschpagan(np.asarray(fitted.residuals),
                                   fitted.results.model.exog)
    lm, p = float(lm), float(p)
    return AssumptionCheck(EQUAL_VARIANCE, bool(p >= alpha), lm, p,
                           f"Breusch-Pagan LM={lm:.3f}, p={p:.4f}")


def check_independence(fitted):
    """
    Independence is assumed (cross-sectional company records).

    The Durbin-Watson statistic is reported for reference only.
    """
    dw = float(durbin_watson(np.asarray(fitted.residuals)))
    return AssumptionCheck(INDEPENDENCE, True, dw,
                           detail=f"assumed; Durbin-Watson={dw:.3f}")


def check_multicollinearity(fitted, vif_max=config.VIF_MAX, vif=None):
    """All VIFs must be below ``vif_max``."""
    if vif is None:
        vif = compute_vif(fitted)
    if len(vif) == 0:
        return AssumptionCheck(MULTICOLLINEARITY, True, 1.0,
                               detail='no terms')
    worst = vif.idxmax()
    top = float(vif.max())
    offenders = vif[vif >= vif_max].index.tolist()
    detail = f"max VIF={top:.2f} ({worst})"
    if offenders:
        detail += f"; VIF >= {vif_max:g}: {offenders}"
    return AssumptionCheck(MULTICOLLINEARITY, not offenders, top,
                           detail=detail)


def check_outliers(fitted, cooks_max=config.COOKS_MAX, cooks=None):
    """All Cook's distances must be below ``cooks_max``."""
    if cooks is None:
        cooks = compute_cooks_distance(fitted)
    if len(cooks) == 0:
        return AssumptionCheck(OUTLIERS, True, 0.0, detail='no observations')
    top = float(np.max(cooks))
    idx = int(np.argmax(cooks))
    n_over = int(np.sum(~(cooks < cooks_max)))
    return AssumptionCheck(
        OUTLIERS, n_over == 0, top,
        detail=(f"max Cook's D={top:.3f} (row {fitted.row_index[idx]}); "
                f"{n_over} >= {cooks_max:g}"))


def diagnose(fitted, thresholds=DEFAULT_THRESHOLDS):
    """
    Run all six assumption checks on ``fitted``.

    Parameters
    ----------
    fitted : FittedModel
    thresholds : Thresholds

    Returns
    -------
    DiagnosticReport
    """
    vif = compute_vif(fitted)
    cooks = compute_cooks_distance(fitted)
    return DiagnosticReport(
        linearity=check_linearity(fitted, thresholds.alpha,
                                  thresholds.reset_power),
        normality=check_normality(fitted, thresholds.alpha),
        equal_variance=check_equal_variance(fitted, thresholds.alpha),
        independence=check_independence(fitted),
        multicollinearity=check_multicollinearity(
            fitted, thresholds.vif_max, vif),
        outliers=check_outliers(fitted, thresholds.cooks_max, cooks),
        vif=tuple((t, float(v)) for t, v in vif.items()),
        cooks_distance=tuple(float(c) for c in cooks),
    )
