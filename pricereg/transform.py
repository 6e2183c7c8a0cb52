"""
Box-Cox refinement of the response.

The response (closing price) is power-transformed,

    y(λ) = (y^λ - 1) / λ     for λ != 0
    y(λ) = log(y)            for λ == 0,

with λ chosen on a grid to maximise the regression profile log-likelihood

    ℓ(λ) = -n/2 · log(RSS(λ) / n) + (λ - 1) · Σ log y.

The model is then refitted on y(λ) and pruned one term at a time (highest
VIF first, then least significant) while the diagnostic report improves.
"""

import logging
from collections import namedtuple
from dataclasses import dataclass

import numpy as np
from scipy import stats

from . import config
from .config import DEFAULT_THRESHOLDS
from .diagnostics import MULTICOLLINEARITY, diagnose
from .exceptions import DegenerateTransformError
from .models import design_matrix, fit_model

log = logging.getLogger(__name__)


LambdaSearch = namedtuple('LambdaSearch', ['lmbda', 'grid', 'loglik'])


# ---------------------------------------------------------------------------
# Transform and likelihood profile
# ---------------------------------------------------------------------------

def boxcox_transform(y, lmbda):
    """
    Box-Cox transform of a positive response.

    NaN entries are passed through; zero, negative or infinite entries
    raise :class:`DegenerateTransformError`.
    """
    y = np.asarray(y, dtype=np.float64).ravel()
    observed = y[~np.isnan(y)]
    if np.any(observed <= 0) or not np.all(np.isfinite(observed)):
        raise DegenerateTransformError(
            "Box-Cox needs a strictly positive, finite response")
    return stats.boxcox(y, lmbda=lmbda)


def lambda_grid(bounds=config.LAMBDA_BOUNDS, step=config.LAMBDA_STEP):
    """Evenly spaced λ values over ``bounds`` (inclusive), containing 0."""
    lo, hi = bounds
    if step <= 0 or hi < lo:
        raise ValueError(f"Invalid lambda grid: bounds={bounds}, step={step}")
    n_steps = int(np.floor((hi - lo) / step + 1e-9))
    return np.round(lo + step * np.arange(n_steps + 1), 10)


def boxcox_profile(dataset, spec, grid):
    """
    Profile log-likelihood of ``spec`` at each λ in ``grid``.

    Entries are NaN / ±inf wherever the likelihood is undefined, e.g. for a
    non-positive response.
    """
    X, y = design_matrix(dataset, spec)
    X = X.to_numpy()
    y = y.to_numpy()
    grid = np.asarray(grid, dtype=np.float64)
    n = len(y)

    loglik = np.full(grid.shape, np.nan)
    if n == 0:
        return loglik

    # Work with y / geometric mean: the intercept absorbs the "- 1" and
    # the scaling, so RSS(y(λ)) = gm^(2λ) · RSS(ỹ^λ) / λ², and the powers
    # stay well conditioned at the ends of the grid.
    with np.errstate(all='ignore'):
        log_y = np.log(y)
        sum_log_y = np.sum(log_y)
        if not np.isfinite(sum_log_y):
            return loglik
        log_ty = log_y - sum_log_y / n

        W = np.empty((n, len(grid)))
        for j, lam in enumerate(grid):
            W[:, j] = log_ty if lam == 0 else np.exp(lam * log_ty)
        scale = np.where(grid == 0, 1.0, grid ** 2)

        usable = np.all(np.isfinite(W), axis=0)
        if not usable.any():
            return loglik

        beta = np.linalg.lstsq(X, W[:, usable], rcond=None)[0]
        rss = np.sum((W[:, usable] - X @ beta) ** 2, axis=0)
        loglik[usable] = (-0.5 * n * np.log(rss / (scale[usable] * n))
                          - sum_log_y)
    return loglik


def search_lambda(dataset, spec, bounds=config.LAMBDA_BOUNDS,
                  step=config.LAMBDA_STEP, grid=None):
    """
    Grid search for the maximum-likelihood Box-Cox parameter.

    Parameters
    ----------
    dataset : Dataset
    spec : ModelSpec
    bounds, step : float
        Grid definition, ignored when ``grid`` is given.
    grid : array-like, optional
        Explicit λ values.

    Returns
    -------
    LambdaSearch
        ``(lmbda, grid, loglik)``.

    Raises
    ------
    DegenerateTransformError
        If the grid is empty or no λ yields a finite log-likelihood.
    """
    grid = lambda_grid(bounds, step) if grid is None else np.asarray(
        grid, dtype=np.float64).ravel()
    if grid.size == 0:
        raise DegenerateTransformError("Empty Box-Cox lambda grid")

    loglik = boxcox_profile(dataset, spec, grid)
    finite = np.isfinite(loglik)
    if not finite.any():
        raise DegenerateTransformError(
            f"No finite Box-Cox log-likelihood for {spec.formula} over "
            f"λ in [{grid.min():g}, {grid.max():g}]; the response must be "
            f"strictly positive"
        )
    best = np.flatnonzero(finite)[np.argmax(loglik[finite])]
    lmbda = float(grid[best])
    log.info("Box-Cox: λ*=%.2f (log-likelihood %.3f)", lmbda, loglik[best])
    return LambdaSearch(lmbda, grid, loglik)


def transform_response(dataset, lmbda):
    """New Dataset whose response is Box-Cox transformed with ``lmbda``."""
    y = boxcox_transform(dataset.column(dataset.response), lmbda)
    return dataset.with_response(y)


# ---------------------------------------------------------------------------
# Iterative refinement
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class RefinementStep:
    """One model in the refinement sequence and the term dropped to get it."""

    spec: object
    model: object
    report: object
    dropped: str = None


@dataclass(frozen=True, eq=False)
class Refinement:
    """Full history of a refinement run."""

    lmbda: float
    steps: tuple
    converged: bool
    search: LambdaSearch = None

    @property
    def model(self):
        return self.steps[-1].model

    @property
    def report(self):
        return self.steps[-1].report

    @property
    def spec(self):
        return self.steps[-1].spec

    @property
    def dropped(self):
        return [s.dropped for s in self.steps[1:]]


def _score(step, alpha):
    """Lower is better: failed checks, insignificant terms, max VIF."""
    return (len(step.report.failures),
            len(step.model.insignificant_terms(alpha)),
            step.report.max_vif)


def _removal_candidates(step, thresholds):
    """
    Terms implicated by the report, most suspect first.

    VIF offenders (highest VIF first) when multicollinearity fails, then
    insignificant terms (highest p-value first).
    """
    alpha = thresholds.alpha
    terms = []
    if MULTICOLLINEARITY in step.report.failures:
        vif = step.report.vif_series().sort_values(ascending=False,
                                                   kind='mergesort')
        terms.extend(vif[vif >= thresholds.vif_max].index)
    insignificant = step.model.insignificant_terms(alpha)
    if insignificant:
        pv = step.model.term_pvalues().fillna(1.0)[insignificant]
        terms.extend(t for t in pv.sort_values(ascending=False,
                                               kind='mergesort').index
                     if t not in terms)
    return terms


def _best_removal(transformed, current, thresholds, lmbda):
    """Removal with the lowest score, if any strictly beats ``current``."""
    alpha = thresholds.alpha
    best, best_score = None, _score(current, alpha)
    for term in _removal_candidates(current, thresholds):
        new_spec = current.spec.without(term)
        new_model = fit_model(transformed, new_spec, lmbda=lmbda)
        candidate = RefinementStep(new_spec, new_model,
                                   diagnose(new_model, thresholds), term)
        score = _score(candidate, alpha)
        log.debug("refine: dropping %s scores %s", term, score)
        if score < best_score:
            best, best_score = candidate, score
    return best


def refine_steps(dataset, spec, thresholds=DEFAULT_THRESHOLDS, lmbda=None):
    """
    Box-Cox transform the response, refit, and prune terms.

    Parameters
    ----------
    dataset : Dataset
        Untransformed data; not modified.
    spec : ModelSpec
        Starting model.
    thresholds : Thresholds
    lmbda : float, optional
        Fixed Box-Cox parameter.  Searched on the grid when omitted.

    Returns
    -------
    Refinement
        ``converged`` is False when assumptions still fail but no further
        removal improves the report.

    Notes
    -----
    Each round scores the removal of every implicated term (VIF offenders
    when multicollinearity fails, and every term with p > alpha) and keeps
    the one with the lowest score, provided it strictly beats the current
    model.
    """
    search = None
    if lmbda is None:
        search = search_lambda(dataset, spec, thresholds.lambda_bounds,
                               thresholds.lambda_step)
        lmbda = search.lmbda
    transformed = transform_response(dataset, lmbda)

    model = fit_model(transformed, spec, lmbda=lmbda)
    steps = [RefinementStep(spec, model, diagnose(model, thresholds))]
    alpha = thresholds.alpha
    converged = False

    while True:
        current = steps[-1]
        if current.report.passed and not current.model.insignificant_terms(
                alpha):
            converged = True
            break

        candidate = _best_removal(transformed, current, thresholds, lmbda)
        if candidate is None:
            log.info("refine: no removal improves the report (%s); "
                     "stopping", current.report.failures)
            break
        log.info("refine: dropped %s", candidate.dropped)
        steps.append(candidate)

    return Refinement(lmbda, tuple(steps), converged, search)


def refine(dataset, spec, thresholds=DEFAULT_THRESHOLDS, lmbda=None):
    """Final :class:`FittedModel` of :func:`refine_steps`."""
    return refine_steps(dataset, spec, thresholds, lmbda).model
