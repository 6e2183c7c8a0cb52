"""
Example: closing price of oil & gas producers
=============================================
Builds a synthetic panel of quarterly balance sheets for Canadian oil and
gas producers and runs the full workflow on it:

  1. forward / backward / stepwise selection and their intersection
  2. squared and interaction term search
  3. the six assumption checks
  4. Box-Cox refinement of the closing price

The data generating process is multiplicative (log price is linear in the
balance-sheet items), so the Box-Cox search should land near λ = 0, and the
deliberately duplicated "net_debt" item should be removed for collinearity.
"""

import numpy as np
import pandas as pd

# If running from the repo root (not pip-installed), uncomment:
# import sys; sys.path.insert(0, '..')

from pricereg import Dataset, Thresholds, run_analysis

# ------------------------------------------------------------------
# 1.  Simulate balance sheets (values in CAD billions)
# ------------------------------------------------------------------
rng = np.random.RandomState(2023)
n = 160

df = pd.DataFrame({
    'total_assets': rng.uniform(5, 60, n),
    'total_liabilities': rng.uniform(2, 30, n),
    'cash_and_equivalents': rng.gamma(2.0, 0.8, n),
    'property_plant_equipment': rng.uniform(3, 45, n),
    'retained_earnings': rng.normal(4, 3, n),
    'goodwill': rng.gamma(1.5, 0.5, n),
})
df['long_term_debt'] = 0.6 * df['total_liabilities'] + rng.normal(0, 1, n)
# Derived item: an exact linear combination of two others
df['net_debt'] = df['long_term_debt'] - df['cash_and_equivalents']

log_price = (2.0 + 0.025 * df['total_assets']
             - 0.03 * df['total_liabilities']
             + 0.05 * df['retained_earnings']
             + rng.normal(0, 0.12, n))
df['close_price'] = np.exp(log_price)

dataset = Dataset(df, 'close_price')
print(dataset)
print()

# ------------------------------------------------------------------
# 2.  Run the analysis
# ------------------------------------------------------------------
result = run_analysis(dataset, Thresholds(vif_max=10.0, cooks_max=0.5))

# ------------------------------------------------------------------
# 3.  Compare stages
# ------------------------------------------------------------------
print("\nStage comparison:")
print(f"  base model     : {result.base_spec.formula}")
print(f"  explored model : {result.explored_spec.formula}")
print(f"  refined model  : {result.final_model.spec.formula}")
print(f"  dropped        : {result.refinement.dropped}")
print("\nInitial report:")
print(result.initial_report.to_frame().to_string(index=False))
print("\nFinal report:")
print(result.final_report.to_frame().to_string(index=False))
