"""
Product-term exploration on top of a selected base model.

Candidate terms are pairwise products of base predictors (interactions) or
squares of single predictors (curvature).  Each search fits the base model
plus every candidate, then greedily drops the least significant candidate
until all remaining ones are significant.  Main effects are never touched.
"""

import logging
from itertools import combinations

import numpy as np

from . import config
from .models import fit_model, term_name

log = logging.getLogger(__name__)


def _prune_products(dataset, base_spec, candidates, alpha):
    """Greedy backward elimination restricted to ``candidates``."""
    pairs = list(base_spec.interactions)
    pairs += [c for c in candidates if c not in pairs]
    spec = base_spec.with_interactions(pairs)
    tested = [c for c in spec.interactions if c not in base_spec.interactions]

    while tested:
        fitted = fit_model(dataset, spec)
        pvals = {pair: fitted.pvalues[term_name(pair)] for pair in tested}
        worst = max(tested,
                    key=lambda pair: 1.0 if np.isnan(pvals[pair])
                    else pvals[pair])
        p = 1.0 if np.isnan(pvals[worst]) else pvals[worst]
        if not p > alpha:
            break
        log.info("terms: dropped %s (p=%.4g)", term_name(worst), p)
        tested.remove(worst)
        spec = spec.without(term_name(worst))

    return spec


def check_interactions(dataset, base_spec, alpha=config.INTERACTION_ALPHA):
    """
    Keep the two-way interactions that are significant at ``alpha``.

    Parameters
    ----------
    dataset : Dataset
    base_spec : ModelSpec
        Not modified.
    alpha : float
        An interaction is dropped while its p-value exceeds this.

    Returns
    -------
    ModelSpec
        ``base_spec`` plus the surviving interaction terms.
    """
    candidates = list(combinations(base_spec.predictors, 2))
    return _prune_products(dataset, base_spec, candidates, alpha)


def check_nonlinearity(dataset, base_spec, alpha=config.INTERACTION_ALPHA):
    """Keep the squared terms ``x^2`` that are significant at ``alpha``."""
    candidates = [(p, p) for p in base_spec.predictors]
    return _prune_products(dataset, base_spec, candidates, alpha)


def explore_terms(dataset, base_spec, alpha=config.INTERACTION_ALPHA):
    """Curvature search, then interaction search on the result."""
    spec = check_nonlinearity(dataset, base_spec, alpha)
    return check_interactions(dataset, spec, alpha)
