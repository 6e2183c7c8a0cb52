"""
End-to-end analysis: select → explore terms → diagnose → Box-Cox refine.

Every intermediate artefact is returned in an :class:`AnalysisResult`, so
the models of different stages can be compared after the run.
"""

import logging
import time
from dataclasses import dataclass

from .config import DEFAULT_THRESHOLDS
from .data import Dataset, load_dataset
from .diagnostics import diagnose
from .models import fit_model
from .selection import select
from .terms import explore_terms
from .transform import refine_steps

log = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class AnalysisResult:
    """Provenance of one analysis run."""

    dataset: Dataset
    thresholds: object
    candidates: object
    base_spec: object
    explored_spec: object
    initial_model: object
    initial_report: object
    refinement: object
    runtime: float

    @property
    def final_model(self):
        return self.refinement.model

    @property
    def final_report(self):
        return self.refinement.report


def run_analysis(dataset, thresholds=DEFAULT_THRESHOLDS, include_terms=True,
                 verbose=True):
    """
    Run the full workflow on ``dataset``.

    Parameters
    ----------
    dataset : Dataset
    thresholds : Thresholds
    include_terms : bool, default=True
        Whether to search squared and interaction terms.
    verbose : bool, default=True
        Print progress and a final summary.

    Returns
    -------
    AnalysisResult
    """
    t0 = time.time()
    n, p = dataset.n_obs, len(dataset.predictors)
    log.info("Analysis of %s on n=%d, p=%d", dataset.response, n, p)

    if verbose:
        print("=" * 70)
        print("CLOSING PRICE REGRESSION ANALYSIS")
        print("=" * 70)
        print(f"  Dataset : n={n}, p={p}, response={dataset.response}")
        print(f"  alpha={thresholds.alpha}  VIF<{thresholds.vif_max:g}  "
              f"Cook's D<{thresholds.cooks_max:g}")
        print()

    # Step 1 ---------------------------------------------------------------
    if verbose:
        print("STEP 1: VARIABLE SELECTION")
        print("-" * 70)
    candidates = select(
        dataset,
        significance_enter=thresholds.significance_enter,
        significance_remove=thresholds.significance_remove,
        max_steps=thresholds.max_selection_steps,
    )
    base_spec = candidates.common()
    if verbose:
        print(f"  Forward   : {list(candidates.forward.predictors)}")
        print(f"  Backward  : {list(candidates.backward.predictors)}")
        print(f"  Stepwise  : {list(candidates.stepwise.predictors)}")
        print(f"  Common    : {list(base_spec.predictors)}")
        print()

    # Step 2 ---------------------------------------------------------------
    explored_spec = base_spec
    if include_terms:
        if verbose:
            print("STEP 2: SQUARED / INTERACTION TERMS "
                  f"(alpha={thresholds.interaction_alpha})")
            print("-" * 70)
        explored_spec = explore_terms(dataset, base_spec,
                                      thresholds.interaction_alpha)
        if verbose:
            print(f"  Model : {explored_spec.formula}")
            print()

    # Step 3 ---------------------------------------------------------------
    if verbose:
        print("STEP 3: ASSUMPTION DIAGNOSTICS")
        print("-" * 70)
    initial_model = fit_model(dataset, explored_spec)
    initial_report = diagnose(initial_model, thresholds)
    if verbose:
        print(f"  R²={initial_model.rsquared:.4f}  "
              f"adj R²={initial_model.rsquared_adj:.4f}")
        for check in initial_report.checks:
            print(f"  {check}")
        print()

    # Step 4 ---------------------------------------------------------------
    if verbose:
        print("STEP 4: BOX-COX REFINEMENT")
        print("-" * 70)
    refinement = refine_steps(dataset, explored_spec, thresholds)
    if verbose:
        print(f"  λ* = {refinement.lmbda:g}")
        for step in refinement.steps[1:]:
            print(f"  Dropped {step.dropped:20s} -> {step.spec.formula}")
        print()

    result = AnalysisResult(
        dataset=dataset,
        thresholds=thresholds,
        candidates=candidates,
        base_spec=base_spec,
        explored_spec=explored_spec,
        initial_model=initial_model,
        initial_report=initial_report,
        refinement=refinement,
        runtime=time.time() - t0,
    )
    if verbose:
        print_summary(result)
    return result


def print_summary(result):
    final = result.final_model
    report = result.final_report

    print("=" * 70)
    print("FINAL MODEL SUMMARY")
    print("=" * 70)
    print(f"\n  {final.spec.formula}")
    print(f"  Box-Cox λ : {result.refinement.lmbda:g}")
    print(f"\n  {'Term':24s}  {'Coefficient':>14s}  {'p-value':>10s}")
    for name, coef in final.coefficients.items():
        print(f"  {name:24s}  {coef:>14.6g}  {final.pvalues[name]:>10.4g}")

    print("\nAssumptions:")
    print("-" * 70)
    for check in report.checks:
        print(f"  {check}")

    print(f"\nModel Comparison:")
    print(f"  Untransformed R²     : {result.initial_model.rsquared:.4f}")
    print(f"  Refined R²           : {final.rsquared:.4f}")
    print(f"  Checks failing       : {len(result.initial_report.failures)}"
          f" -> {len(report.failures)}")
    print(f"  Max VIF              : {report.max_vif:.2f}")
    print(f"  Max Cook's D         : {report.max_cooks:.3f}")
    print(f"  Converged            : {result.refinement.converged}")
    print(f"  Runtime              : {result.runtime:.2f}s")
    print("=" * 70)


def analyze(source, response=None, thresholds=DEFAULT_THRESHOLDS,
            include_terms=True, verbose=True):
    """
    One-liner convenience function.

    Parameters
    ----------
    source : Dataset, pd.DataFrame or path
        Raw inputs are cleaned with :func:`~pricereg.data.load_dataset`.
    response : str, optional
        Response column for raw inputs.
    thresholds : Thresholds
    include_terms : bool
        Search squared / interaction terms?
    verbose : bool
        Print progress?

    Returns
    -------
    AnalysisResult
    """
    if isinstance(source, Dataset):
        dataset = source
    elif response is None:
        dataset = load_dataset(source)
    else:
        dataset = load_dataset(source, response)
    return run_analysis(dataset, thresholds, include_terms, verbose)
