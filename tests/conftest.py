"""
Shared synthetic datasets.

Each fixture builds a small balance-sheet style table with a known data
generating process, so tests can assert on what the pipeline should find.
"""

import os
import sys

import matplotlib
matplotlib.use("Agg")
import numpy as np
import pandas as pd
import pytest

# Allow running from repo root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from pricereg import Dataset


def make_balance_sheet(n=120, seed=42):
    """close = 10 + 2·assets − 1.5·debt + noise; cash and two noise items."""
    rng = np.random.RandomState(seed)
    df = pd.DataFrame({
        'total_assets': rng.uniform(5, 15, n),
        'total_debt': rng.uniform(1, 5, n),
        'cash': rng.uniform(0, 3, n),
        'goodwill': rng.randn(n),
        'inventory': rng.randn(n),
    })
    df['close_price'] = (10 + 2 * df['total_assets'] - 1.5 * df['total_debt']
                         + rng.randn(n) * 0.5)
    return df


@pytest.fixture
def balance_sheet():
    return Dataset(make_balance_sheet(), 'close_price')


@pytest.fixture
def noise_dataset():
    """Response unrelated to any of the four predictors."""
    rng = np.random.RandomState(7)
    n = 80
    df = pd.DataFrame(rng.randn(n, 4), columns=['A', 'B', 'C', 'D'])
    df['y'] = 50 + rng.randn(n)
    return Dataset(df, 'y')


@pytest.fixture
def collinear_dataset():
    """B = 2A exactly; C independent."""
    rng = np.random.RandomState(3)
    n = 100
    a = rng.randn(n)
    c = rng.randn(n)
    df = pd.DataFrame({'A': a, 'B': 2 * a, 'C': c})
    df['y'] = 50 + a + c + rng.randn(n) * 0.5
    return Dataset(df, 'y')


@pytest.fixture
def outlier_dataset():
    """Twenty clean rows plus one row at an extreme x with 100× response."""
    rng = np.random.RandomState(11)
    x = np.arange(1, 21, dtype=float)
    y = 10 + 2 * x + rng.randn(20) * 0.5
    x = np.append(x, 60.0)
    y = np.append(y, 100 * y.mean())
    return Dataset(pd.DataFrame({'x': x, 'y': y}), 'y')
