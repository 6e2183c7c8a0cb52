"""
Significance-based variable selection.

Three independent strategies produce candidate :class:`ModelSpec` objects:

* forward selection  -- add the most significant excluded predictor while
  its p-value is below ``significance_enter``;
* backward elimination -- start from the full model and remove the least
  significant predictor while its p-value is above ``significance_remove``;
* stepwise (bidirectional) -- a forward step followed by a backward pass at
  every iteration.

The stable base model is then chosen explicitly with :func:`intersect_specs`
(the predictors every strategy agrees on).
"""

import logging
from dataclasses import dataclass

import numpy as np

from . import config
from .exceptions import SelectionDivergenceError
from .models import ModelSpec, fit_model

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Single steps
# ---------------------------------------------------------------------------

def _pvalue(fitted, term):
    """p-value of ``term``; NaN (no residual df) counts as 1."""
    p = fitted.pvalues[term]
    return 1.0 if np.isnan(p) else p


def _forward_step(dataset, current, candidates, significance_enter):
    """
    Try each candidate on top of ``current``.

    Returns ``(predictor, p_value)`` for the most significant candidate if
    it qualifies for entry, else None.
    """
    best_pred, best_p = None, np.inf
    for cand in candidates:
        spec = ModelSpec(dataset.response, tuple(current) + (cand,))
        p = _pvalue(fit_model(dataset, spec), cand)
        if p < best_p:
            best_pred, best_p = cand, p
    if best_pred is None or not best_p < significance_enter:
        return None
    return best_pred, best_p


def _least_significant(dataset, current):
    """Fit ``current`` and return ``(predictor, p_value)`` of the weakest."""
    fitted = fit_model(dataset, ModelSpec(dataset.response, tuple(current)))
    worst_pred, worst_p = None, -np.inf
    for pred in current:
        p = _pvalue(fitted, pred)
        if p > worst_p:
            worst_pred, worst_p = pred, p
    return worst_pred, worst_p


def _check_budget(method, steps, max_steps):
    if steps >= max_steps:
        raise SelectionDivergenceError(method, max_steps)


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def forward_selection(dataset, significance_enter=config.SIGNIFICANCE_ENTER,
                      max_steps=config.MAX_SELECTION_STEPS):
    """
    Forward selection starting from the intercept-only model.

    Parameters
    ----------
    dataset : Dataset
    significance_enter : float
        A predictor enters only if its p-value is strictly below this.
    max_steps : int
        Cap on the number of additions.

    Returns
    -------
    ModelSpec
        Predictors in order of entry.
    """
    current = []
    steps = 0
    while True:
        candidates = [p for p in dataset.predictors if p not in current]
        if not candidates:
            break
        step = _forward_step(dataset, current, candidates, significance_enter)
        if step is None:
            break
        _check_budget('forward', steps, max_steps)
        current.append(step[0])
        steps += 1
        log.info("forward: added %s (p=%.4g)", step[0], step[1])

    return ModelSpec(dataset.response, tuple(current))


def backward_elimination(dataset,
                         significance_remove=config.SIGNIFICANCE_REMOVE,
                         max_steps=config.MAX_SELECTION_STEPS):
    """
    Backward elimination starting from the full additive model.

    A predictor is removed when its p-value is strictly greater than
    ``significance_remove``.  The remaining predictors keep dataset order.

    So ``significance_remove=0.0`` strips every predictor (any p > 0) and
    ``significance_remove=1.0`` keeps the full model.  A higher threshold
    is more permissive, mirroring ``significance_enter`` in
    :func:`forward_selection`.
    """
    current = list(dataset.predictors)
    steps = 0
    while current:
        worst, p = _least_significant(dataset, current)
        if not p > significance_remove:
            break
        _check_budget('backward', steps, max_steps)
        current.remove(worst)
        steps += 1
        log.info("backward: removed %s (p=%.4g)", worst, p)

    return ModelSpec(dataset.response, tuple(current))


def stepwise_selection(dataset, significance_enter=config.SIGNIFICANCE_ENTER,
                       significance_remove=config.SIGNIFICANCE_REMOVE,
                       max_steps=config.MAX_SELECTION_STEPS):
    """
    Bidirectional stepwise selection.

    Each iteration makes one forward step, then removes predictors while
    the weakest one has p > ``significance_remove``.  Predictors removed in
    an iteration may not re-enter in the next one.  Raises
    :class:`SelectionDivergenceError` once ``max_steps`` add/remove actions
    have been spent without settling.
    """
    current = []
    just_removed = set()
    steps = 0
    while True:
        changed = False
        candidates = [p for p in dataset.predictors
                      if p not in current and p not in just_removed]
        step = None
        if candidates:
            step = _forward_step(dataset, current, candidates,
                                 significance_enter)
        if step is not None:
            _check_budget('stepwise', steps, max_steps)
            current.append(step[0])
            steps += 1
            changed = True
            log.info("stepwise: added %s (p=%.4g)", step[0], step[1])

        removed = set()
        while current:
            worst, p = _least_significant(dataset, current)
            if not p > significance_remove:
                break
            _check_budget('stepwise', steps, max_steps)
            current.remove(worst)
            removed.add(worst)
            steps += 1
            changed = True
            log.info("stepwise: removed %s (p=%.4g)", worst, p)

        just_removed = removed
        if not changed:
            break

    return ModelSpec(dataset.response, tuple(current))


# ---------------------------------------------------------------------------
# Combining strategies
# ---------------------------------------------------------------------------

def intersect_specs(*specs, order=None):
    """
    Predictors (and product terms) common to every spec.

    Parameters
    ----------
    *specs : ModelSpec
        At least one spec; all must share the same response.
    order : sequence of str, optional
        Ordering for the result, usually ``dataset.predictors``.  Defaults
        to the order of the first spec.

    Returns
    -------
    ModelSpec
    """
    if not specs:
        raise ValueError("intersect_specs needs at least one ModelSpec")
    responses = {s.response for s in specs}
    if len(responses) != 1:
        raise ValueError(f"Specs disagree on the response: {responses}")

    common = set(specs[0].predictors)
    pairs = set(specs[0].interactions)
    for s in specs[1:]:
        common &= set(s.predictors)
        pairs &= set(s.interactions)

    order = specs[0].predictors if order is None else order
    predictors = tuple(p for p in order if p in common)
    interactions = tuple(p for p in specs[0].interactions if p in pairs)
    return ModelSpec(specs[0].response, predictors, interactions)


@dataclass(frozen=True)
class CandidateSpecs:
    """The three selection results for one dataset."""

    forward: ModelSpec
    backward: ModelSpec
    stepwise: ModelSpec
    predictor_order: tuple = ()

    def __iter__(self):
        return iter((self.forward, self.backward, self.stepwise))

    def common(self):
        """Predictors selected by all three strategies."""
        return intersect_specs(self.forward, self.backward, self.stepwise,
                               order=self.predictor_order or None)


def select(dataset, response_name=None,
           significance_enter=config.SIGNIFICANCE_ENTER,
           significance_remove=config.SIGNIFICANCE_REMOVE,
           max_steps=config.MAX_SELECTION_STEPS):
    """
    Run forward, backward and stepwise selection on ``dataset``.

    Parameters
    ----------
    dataset : Dataset
    response_name : str, optional
        Must match ``dataset.response`` when given.
    significance_enter, significance_remove : float
        Entry / removal p-value thresholds.
    max_steps : int
        Cap on add/remove actions per strategy.

    Returns
    -------
    CandidateSpecs
    """
    if response_name is not None and response_name != dataset.response:
        raise ValueError(
            f"Dataset response is '{dataset.response}', not "
            f"'{response_name}'"
        )
    forward = forward_selection(dataset, significance_enter, max_steps)
    backward = backward_elimination(dataset, significance_remove, max_steps)
    stepwise = stepwise_selection(dataset, significance_enter,
                                  significance_remove, max_steps)
    log.info("selection: forward=%s backward=%s stepwise=%s",
             list(forward.predictors), list(backward.predictors),
             list(stepwise.predictors))
    return CandidateSpecs(forward, backward, stepwise,
                          tuple(dataset.predictors))
