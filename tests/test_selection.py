"""
Tests for datasets, model specs, variable selection and term exploration.

Run with:  python -m pytest tests/ -v
"""

import dataclasses

import numpy as np
import pandas as pd
import pytest
from sklearn.linear_model import LinearRegression

from pricereg import (
    Dataset, InsufficientDataError, ModelSpec, SelectionDivergenceError,
    backward_elimination, check_interactions, check_nonlinearity,
    explore_terms, fit_model, forward_selection, intersect_specs, select,
    stepwise_selection,
)
from pricereg import selection


# ---------------------------------------------------------------------------
# Dataset / ModelSpec / fit_model
# ---------------------------------------------------------------------------

def test_dataset_is_a_private_copy():
    df = pd.DataFrame({'a': [1.0, 2.0, 3.0], 'y': [2.0, 4.0, 7.0]})
    ds = Dataset(df, 'y')
    df.loc[0, 'a'] = 100.0
    assert ds.column('a')[0] == 1.0

    obs = list(ds)
    assert len(obs) == 3
    assert obs[1].values['a'] == 2.0
    assert obs[1].response == 4.0
    with pytest.raises(TypeError):
        obs[0].values['a'] = 5.0


def test_dataset_rejects_unknown_or_text_columns():
    df = pd.DataFrame({'a': [1.0, 2.0], 'name': ['x', 'y'], 'y': [1.0, 2.0]})
    with pytest.raises(ValueError):
        Dataset(df, 'y', predictors=['a', 'missing'])
    with pytest.raises(ValueError):
        Dataset(df, 'y')
    with pytest.raises(ValueError):
        Dataset(df, 'price')


def test_with_response_leaves_original(balance_sheet):
    y = balance_sheet.column('close_price')
    shifted = balance_sheet.with_response(y + 1)
    assert np.allclose(shifted.column('close_price'), y + 1)
    assert np.allclose(balance_sheet.column('close_price'), y)
    assert shifted.predictors == balance_sheet.predictors


def test_model_spec_terms_and_without():
    spec = ModelSpec('y', ('a', 'b', 'c'), [('b', 'a'), ('c', 'c')])
    assert spec.interactions == (('a', 'b'), ('c', 'c'))
    assert spec.terms == ('a', 'b', 'c', 'a:b', 'c^2')
    assert spec.formula == 'y ~ a + b + c + a:b + c^2'

    no_a = spec.without('a')
    assert no_a.predictors == ('b', 'c')
    assert no_a.interactions == (('c', 'c'),)
    assert spec.without('a:b').interactions == (('c', 'c'),)
    # Original untouched
    assert spec.terms == ('a', 'b', 'c', 'a:b', 'c^2')

    with pytest.raises(KeyError):
        spec.without('zzz')
    with pytest.raises(ValueError):
        ModelSpec('y', ('a',), [('a', 'b')])
    with pytest.raises(dataclasses.FrozenInstanceError):
        spec.predictors = ('a',)


def test_fit_model_matches_sklearn(balance_sheet):
    spec = ModelSpec('close_price', ('total_assets', 'total_debt'))
    fitted = fit_model(balance_sheet, spec)

    frame = balance_sheet.frame
    ols = LinearRegression().fit(frame[list(spec.predictors)],
                                 frame['close_price'])
    assert abs(fitted.coefficients['const'] - ols.intercept_) < 1e-8
    for name, coef in zip(spec.predictors, ols.coef_):
        assert abs(fitted.coefficients[name] - coef) < 1e-8
    assert abs(fitted.coefficients['total_assets'] - 2.0) < 0.1
    assert fitted.rsquared > 0.95
    assert fitted.n_obs == balance_sheet.n_obs
    assert 'OLS Regression Results' in fitted.summary()


def test_fitted_model_is_read_only(balance_sheet):
    fitted = fit_model(balance_sheet,
                       ModelSpec('close_price', ('total_assets',)))
    with pytest.raises(ValueError):
        fitted.residuals[0] = 0.0
    with pytest.raises(TypeError):
        fitted.coefficients['const'] = 0.0
    with pytest.raises(dataclasses.FrozenInstanceError):
        fitted.rsquared = 1.0


def test_fit_model_rejects_foreign_predictor(balance_sheet):
    with pytest.raises(KeyError):
        fit_model(balance_sheet, ModelSpec('close_price', ('revenue',)))
    with pytest.raises(ValueError):
        fit_model(balance_sheet, ModelSpec('open_price', ('cash',)))


def test_fit_model_drops_rows_with_missing_values():
    df = pd.DataFrame({'a': [1.0, 2.0, np.nan, 4.0, 5.0, 6.0],
                       'y': [1.1, 2.0, 3.2, 3.9, 5.1, 6.0]})
    fitted = fit_model(Dataset(df, 'y'), ModelSpec('y', ('a',)))
    assert fitted.n_obs == 5
    assert 2 not in fitted.row_index


# ---------------------------------------------------------------------------
# Insufficient data
# ---------------------------------------------------------------------------

def _wide_dataset(n_obs, n_pred, seed=0):
    rng = np.random.RandomState(seed)
    df = pd.DataFrame(rng.randn(n_obs, n_pred),
                      columns=[f"item_{i}" for i in range(n_pred)])
    df['close_price'] = 40 + rng.randn(n_obs)
    return Dataset(df, 'close_price')


def test_thirty_observations_allow_twenty_five_predictors():
    ds = _wide_dataset(30, 25)
    full = backward_elimination(ds, significance_remove=1.0)
    assert full.predictors == ds.predictors


def test_thirty_observations_reject_more_than_twenty_nine_predictors():
    ds = _wide_dataset(30, 32)
    with pytest.raises(InsufficientDataError):
        backward_elimination(ds)
    with pytest.raises(InsufficientDataError):
        select(ds)

    spec = ModelSpec('close_price', ds.predictors[:30])
    with pytest.raises(InsufficientDataError) as info:
        fit_model(ds, spec)
    assert info.value.n_obs == 30
    assert info.value.n_terms == 30

    # 29 predictors + intercept is still identifiable
    fit_model(ds, ModelSpec('close_price', ds.predictors[:29]))


# ---------------------------------------------------------------------------
# Selection strategies
# ---------------------------------------------------------------------------

def test_backward_boundaries(noise_dataset):
    """Removal threshold 0 strips every predictor; 1 keeps them all."""
    assert backward_elimination(
        noise_dataset, significance_remove=0.0).predictors == ()
    assert backward_elimination(
        noise_dataset, significance_remove=1.0).predictors == (
        noise_dataset.predictors)


def test_forward_entry_boundaries(noise_dataset):
    assert forward_selection(
        noise_dataset, significance_enter=0.0).predictors == ()


def test_strategies_find_signal(balance_sheet):
    candidates = select(balance_sheet, 'close_price')
    for spec in candidates:
        assert {'total_assets', 'total_debt'} <= set(spec.predictors)
        assert set(spec.predictors) <= set(balance_sheet.predictors)
        assert spec.interactions == ()

    common = candidates.common()
    assert {'total_assets', 'total_debt'} <= set(common.predictors)
    # Common predictors follow dataset order
    order = [balance_sheet.predictors.index(p) for p in common.predictors]
    assert order == sorted(order)
    # Forward records the order of entry: assets has the larger effect
    assert candidates.forward.predictors[0] == 'total_assets'


def test_select_checks_response_name(balance_sheet):
    with pytest.raises(ValueError):
        select(balance_sheet, 'open_price')


def test_stepwise_subset_of_predictors(noise_dataset):
    spec = stepwise_selection(noise_dataset, 0.1, 0.2)
    assert set(spec.predictors) <= set(noise_dataset.predictors)


def test_selection_step_cap(balance_sheet, noise_dataset):
    with pytest.raises(SelectionDivergenceError):
        forward_selection(balance_sheet, max_steps=1)
    with pytest.raises(SelectionDivergenceError):
        backward_elimination(noise_dataset, significance_remove=0.0,
                             max_steps=1)
    with pytest.raises(SelectionDivergenceError):
        stepwise_selection(balance_sheet, max_steps=1)


def test_stepwise_removed_predictor_sits_out_one_iteration(
        noise_dataset, monkeypatch):
    """Entry at 1.0 and removal at 0.0 make every added predictor leave."""
    calls = []
    real_step = selection._forward_step

    def recording_step(dataset, current, candidates, significance_enter):
        result = real_step(dataset, current, candidates, significance_enter)
        calls.append((list(candidates), result[0]))
        return result

    monkeypatch.setattr(selection, "_forward_step", recording_step)
    with pytest.raises(SelectionDivergenceError):
        stepwise_selection(noise_dataset, significance_enter=1.0,
                           significance_remove=0.0, max_steps=6)

    assert len(calls) >= 3
    assert calls[0][0] == list(noise_dataset.predictors)
    for (_, added), (later, _) in zip(calls, calls[1:]):
        assert added not in later
    # The bar lasts a single iteration
    first_added = calls[0][1]
    assert first_added in calls[2][0]


def test_intersect_specs():
    s1 = ModelSpec('y', ('a', 'b', 'c'))
    s2 = ModelSpec('y', ('c', 'a'))
    s3 = ModelSpec('y', ('a', 'c', 'd'))
    common = intersect_specs(s1, s2, s3)
    assert common.predictors == ('a', 'c')
    assert intersect_specs(s2, s1, order=('c', 'b', 'a')).predictors == (
        'c', 'a')
    assert intersect_specs(s1, ModelSpec('y', ())).predictors == ()

    with pytest.raises(ValueError):
        intersect_specs(s1, ModelSpec('z', ('a',)))
    with pytest.raises(ValueError):
        intersect_specs()


# ---------------------------------------------------------------------------
# Term exploration
# ---------------------------------------------------------------------------

def test_check_interactions_keeps_real_interaction():
    rng = np.random.RandomState(5)
    n = 200
    df = pd.DataFrame({'A': rng.randn(n), 'B': rng.randn(n),
                       'C': rng.randn(n)})
    df['y'] = df['A'] + df['B'] + 0.8 * df['A'] * df['B'] + rng.randn(n) * 0.3
    ds = Dataset(df, 'y')
    base = ModelSpec('y', ('A', 'B', 'C'))

    refined = check_interactions(ds, base)

    assert ('A', 'B') in refined.interactions
    assert refined.predictors == base.predictors
    assert base.interactions == ()
    fitted = fit_model(ds, refined)
    for pair in refined.interactions:
        assert fitted.pvalues[f"{pair[0]}:{pair[1]}"] <= 0.05


def test_check_interactions_drops_everything_on_additive_data(balance_sheet):
    base = ModelSpec('close_price', ('total_assets', 'total_debt'))
    refined = check_interactions(balance_sheet, base, alpha=0.0)
    assert refined.interactions == ()
    assert refined.predictors == base.predictors


def test_check_nonlinearity_finds_square():
    rng = np.random.RandomState(8)
    n = 150
    df = pd.DataFrame({'A': rng.uniform(-3, 3, n), 'B': rng.randn(n)})
    df['y'] = 5 + df['A'] + 2 * df['A'] ** 2 + df['B'] + rng.randn(n) * 0.5
    ds = Dataset(df, 'y')

    spec = check_nonlinearity(ds, ModelSpec('y', ('A', 'B')))
    assert ('A', 'A') in spec.interactions

    explored = explore_terms(ds, ModelSpec('y', ('A', 'B')))
    assert ('A', 'A') in explored.interactions
