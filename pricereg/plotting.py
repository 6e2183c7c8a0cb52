"""
Optional matplotlib rendering of fitted models and diagnostic reports.

Nothing here decides a verdict; the figures show the same numbers the
:mod:`pricereg.diagnostics` checks already computed.
"""

import numpy as np
import matplotlib.pyplot as plt
from scipy import stats

from . import config


def plot_diagnostics(fitted, report, figsize=(12, 10),
                     cooks_max=config.COOKS_MAX):
    """
    4-panel diagnostic figure.

    Panel 1: Residuals vs fitted
    Panel 2: Normal Q-Q plot
    Panel 3: Scale-location
    Panel 4: Cook's distance

    Returns
    -------
    matplotlib.figure.Figure
    """
    fitted_vals = np.asarray(fitted.fitted_values)
    resid = np.asarray(fitted.residuals)
    sd = resid.std(ddof=1) if len(resid) > 1 else 1.0
    std_resid = resid / sd if sd > 0 else resid

    fig, axes = plt.subplots(2, 2, figsize=figsize)

    ax = axes[0, 0]
    ax.scatter(fitted_vals, resid, alpha=0.6, s=14, color='steelblue')
    ax.axhline(y=0, color='red', ls='--', lw=1)
    ax.set_xlabel("Fitted values")
    ax.set_ylabel("Residuals")
    ax.set_title(f"Residuals vs Fitted ({report.linearity.detail})",
                 fontsize=9)
    ax.grid(True, alpha=0.3)

    ax = axes[0, 1]
    stats.probplot(resid, plot=ax)
    ax.set_title(f"Normal Q-Q ({report.normality.detail})", fontsize=9)
    ax.grid(True, alpha=0.3)

    ax = axes[1, 0]
    ax.scatter(fitted_vals, np.sqrt(np.abs(std_resid)), alpha=0.6, s=14,
               color='steelblue')
    ax.set_xlabel("Fitted values")
    ax.set_ylabel("√|standardised residual|")
    ax.set_title(f"Scale-Location ({report.equal_variance.detail})",
                 fontsize=9)
    ax.grid(True, alpha=0.3)

    ax = axes[1, 1]
    cooks = np.asarray(report.cooks_distance)
    ax.bar(np.arange(len(cooks)), cooks, color='steelblue')
    ax.axhline(y=cooks_max, color='red', ls='--', lw=1,
               label=f"Threshold ({cooks_max:g})")
    ax.set_xlabel("Observation")
    ax.set_ylabel("Cook's distance")
    ax.set_title("Influential Observations", fontsize=9)
    ax.legend(fontsize=8)
    ax.grid(True, alpha=0.3)

    title = f"{fitted.spec.formula}  (R²={fitted.rsquared:.3f})"
    if fitted.lmbda is not None:
        title += f"  Box-Cox λ={fitted.lmbda:g}"
    fig.suptitle(title, fontsize=12)
    fig.tight_layout()
    return fig


def plot_boxcox_profile(search, figsize=(7, 5)):
    """Profile log-likelihood over the λ grid with λ* marked."""
    fig, ax = plt.subplots(1, 1, figsize=figsize)
    finite = np.isfinite(search.loglik)
    ax.plot(search.grid[finite], search.loglik[finite], color='steelblue',
            lw=2)
    ax.axvline(x=search.lmbda, color='red', ls='--', lw=1.5,
               label=f"λ* = {search.lmbda:g}")
    ax.set_xlabel("λ")
    ax.set_ylabel("Profile log-likelihood")
    ax.set_title("Box-Cox Profile")
    ax.legend(fontsize=10, loc='best')
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def plot_vif(report, figsize=(8, 5), vif_max=config.VIF_MAX):
    """Horizontal bar chart of term VIFs (infinite values clipped)."""
    vif = report.vif_series().sort_values()
    cap = max(vif_max * 2, float(vif[np.isfinite(vif)].max())
              if np.isfinite(vif).any() else vif_max * 2)
    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.barh(vif.index, vif.clip(upper=cap).values, color='steelblue')
    ax.axvline(x=vif_max, color='red', ls='--', lw=1.5,
               label=f"VIF = {vif_max:g}")
    ax.set_xlabel("Variance inflation factor")
    ax.set_title("Multicollinearity")
    ax.legend(fontsize=9)
    fig.tight_layout()
    return fig
