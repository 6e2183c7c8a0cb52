"""
Model specifications and fitted OLS models.

:class:`ModelSpec` names the terms of a linear model; :func:`fit_model`
binds it to a :class:`~pricereg.data.Dataset` with statsmodels OLS and
returns an immutable :class:`FittedModel`.  Every refinement step builds a
new spec / model, so intermediate results can be kept and compared freely.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType

import numpy as np
import pandas as pd
import statsmodels.api as sm

from .exceptions import InsufficientDataError

log = logging.getLogger(__name__)

CONST = 'const'


def term_name(pair):
    """Design-column name of an interaction pair; ``(a, a)`` is a square."""
    a, b = pair
    return f"{a}^2" if a == b else f"{a}:{b}"


# ---------------------------------------------------------------------------
# ModelSpec
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelSpec:
    """
    Response name, ordered predictors and optional pairwise products.

    Parameters
    ----------
    response : str
        Response column.
    predictors : sequence of str
        Main-effect predictors, in order.
    interactions : sequence of (str, str)
        Pairwise product terms over ``predictors``.  A pair ``(a, a)`` is
        the squared term of ``a``.
    """

    response: str
    predictors: tuple = ()
    interactions: tuple = ()

    def __post_init__(self):
        predictors = tuple(self.predictors)
        if len(set(predictors)) != len(predictors):
            raise ValueError(f"Duplicate predictors in {predictors}")
        order = {p: i for i, p in enumerate(predictors)}

        pairs = []
        for pair in self.interactions:
            a, b = pair
            for name in (a, b):
                if name not in order:
                    raise ValueError(
                        f"Interaction {pair} uses '{name}', which is not a "
                        f"predictor of the model"
                    )
            if order[a] > order[b]:
                a, b = b, a
            if (a, b) not in pairs:
                pairs.append((a, b))

        object.__setattr__(self, 'predictors', predictors)
        object.__setattr__(self, 'interactions', tuple(pairs))

    @property
    def terms(self):
        """Design-column names: main effects then product terms."""
        return self.predictors + tuple(term_name(p) for p in self.interactions)

    @property
    def formula(self):
        rhs = " + ".join(self.terms) if self.terms else "1"
        return f"{self.response} ~ {rhs}"

    def with_predictors(self, predictors):
        """New spec with ``predictors``; interactions on dropped names go."""
        keep = set(predictors)
        inter = [p for p in self.interactions if p[0] in keep and p[1] in keep]
        return ModelSpec(self.response, tuple(predictors), tuple(inter))

    def with_interactions(self, pairs):
        """New spec with the interaction set replaced by ``pairs``."""
        return ModelSpec(self.response, self.predictors, tuple(pairs))

    def without(self, term):
        """
        New spec without ``term``.

        ``term`` is either a predictor (its product terms are dropped too)
        or the design name of an interaction (``'a:b'`` / ``'a^2'``).
        """
        if term in self.predictors:
            return self.with_predictors(
                [p for p in self.predictors if p != term])
        pairs = [p for p in self.interactions if term_name(p) != term]
        if len(pairs) == len(self.interactions):
            raise KeyError(f"'{term}' is not a term of {self.formula}")
        return self.with_interactions(pairs)

    def __str__(self):
        return self.formula


# ---------------------------------------------------------------------------
# Design matrices
# ---------------------------------------------------------------------------

def design_matrix(dataset, spec):
    """
    Build the OLS design matrix for ``spec`` on ``dataset``.

    Rows with a missing value in any used column are dropped.

    Returns
    -------
    X : pd.DataFrame
        Intercept column ``const`` followed by one column per term.
    y : pd.Series
        Response aligned with ``X``.
    """
    if spec.response != dataset.response:
        raise ValueError(
            f"Spec response '{spec.response}' does not match dataset "
            f"response '{dataset.response}'"
        )
    unknown = [p for p in spec.predictors if p not in dataset.predictors]
    if unknown:
        raise KeyError(f"Predictor(s) not in dataset: {unknown}")

    frame = dataset.frame
    cols = list(spec.predictors) + [spec.response]
    frame = frame.loc[:, cols].dropna()

    X = pd.DataFrame(index=frame.index)
    X[CONST] = 1.0
    for p in spec.predictors:
        X[p] = frame[p]
    for pair in spec.interactions:
        X[term_name(pair)] = frame[pair[0]] * frame[pair[1]]
    return X, frame[spec.response]


def _readonly(values):
    arr = np.array(values, dtype=np.float64)
    arr.setflags(write=False)
    return arr


# ---------------------------------------------------------------------------
# FittedModel
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class FittedModel:
    """
    A :class:`ModelSpec` bound to OLS estimates.

    Attributes
    ----------
    spec : ModelSpec
    coefficients : Mapping[str, float]
        Estimates keyed by design column (``const`` for the intercept).
    pvalues : Mapping[str, float]
        Two-sided t-test p-values, same keys.
    rsquared, rsquared_adj : float
    residuals, fitted_values : np.ndarray
        Read-only, one entry per observation used in the fit.
    row_index : tuple of int
        Dataset positions of the observations used.
    lmbda : float or None
        Box-Cox parameter applied to the response, if any.
    """

    spec: ModelSpec
    coefficients: MappingProxyType
    pvalues: MappingProxyType
    rsquared: float
    rsquared_adj: float
    residuals: np.ndarray
    fitted_values: np.ndarray
    row_index: tuple
    lmbda: float = None
    results: object = field(default=None, repr=False)

    @property
    def n_obs(self):
        return len(self.residuals)

    @property
    def terms(self):
        return self.spec.terms

    def term_pvalues(self):
        """p-values of the non-intercept terms, in term order."""
        return pd.Series({t: self.pvalues[t] for t in self.spec.terms},
                         dtype=np.float64)

    def insignificant_terms(self, alpha):
        """Terms whose p-value exceeds ``alpha`` (NaN counts as 1)."""
        pv = self.term_pvalues().fillna(1.0)
        return pv[pv > alpha].index.tolist()

    def summary(self):
        """statsmodels summary table as text."""
        return str(self.results.summary())


def fit_model(dataset, spec, lmbda=None):
    """
    Fit ``spec`` by ordinary least squares (with intercept).

    Parameters
    ----------
    dataset : Dataset
    spec : ModelSpec
    lmbda : float, optional
        Box-Cox parameter already applied to the dataset response; stored
        on the result for provenance only.

    Returns
    -------
    FittedModel

    Raises
    ------
    InsufficientDataError
        If fewer observations than terms + 1 are available.
    """
    X, y = design_matrix(dataset, spec)
    n_terms = len(spec.terms)
    if len(y) < n_terms + 1:
        raise InsufficientDataError(len(y), n_terms)

    results = sm.OLS(y.to_numpy(), X.to_numpy(), hasconst=True).fit()
    names = list(X.columns)
    params = dict(zip(names, (float(v) for v in results.params)))
    pvalues = dict(zip(names, (float(v) for v in results.pvalues)))
    rsquared = float(results.rsquared) if n_terms else 0.0
    rsquared_adj = float(results.rsquared_adj) if n_terms else 0.0

    log.debug("Fitted %s on n=%d (R²=%.4f)", spec.formula, len(y), rsquared)

    return FittedModel(
        spec=spec,
        coefficients=MappingProxyType(params),
        pvalues=MappingProxyType(pvalues),
        rsquared=rsquared,
        rsquared_adj=rsquared_adj,
        residuals=_readonly(results.resid),
        fitted_values=_readonly(results.fittedvalues),
        row_index=tuple(int(i) for i in X.index),
        lmbda=lmbda,
        results=results,
    )
