"""
Example: analyse a balance-sheet CSV export
===========================================
Loads a CSV with one row per company-period (identifier and date columns
are stripped automatically), runs the workflow and saves the diagnostic
figures next to the input.

Usage:
    python examples/csv_analysis.py path/to/balance_sheets.csv [response]
"""

import logging
import os
import sys

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

# If running from the repo root (not pip-installed), uncomment:
# sys.path.insert(0, '..')

from pricereg import load_dataset, run_analysis
from pricereg.plotting import plot_boxcox_profile, plot_diagnostics, plot_vif

logging.basicConfig(level=logging.INFO,
                    format="%(levelname)s %(name)s: %(message)s")

if len(sys.argv) < 2:
    sys.exit(__doc__)

path = sys.argv[1]
response = sys.argv[2] if len(sys.argv) > 2 else 'close_price'

# ------------------------------------------------------------------
# 1.  Load and clean
# ------------------------------------------------------------------
dataset = load_dataset(path, response)

# ------------------------------------------------------------------
# 2.  Fit, diagnose, refine
# ------------------------------------------------------------------
result = run_analysis(dataset)
print(result.final_model.summary())

# ------------------------------------------------------------------
# 3.  Figures
# ------------------------------------------------------------------
out_dir = os.path.splitext(path)[0] + "_figures"
os.makedirs(out_dir, exist_ok=True)

figures = {
    'initial.png': plot_diagnostics(result.initial_model,
                                    result.initial_report),
    'refined.png': plot_diagnostics(result.final_model, result.final_report),
    'vif.png': plot_vif(result.initial_report),
    'boxcox.png': plot_boxcox_profile(result.refinement.search),
}
for name, fig in figures.items():
    fig.savefig(os.path.join(out_dir, name), dpi=150, bbox_inches='tight')
    plt.close(fig)
print(f"\nFigures written to {out_dir}")
