import warnings

import numpy as np
import pandas as pd
import pytest

from starima.data.weights import WeightSet
from starima.errors import DimensionMismatchError, InsufficientDataError, NonConvergenceWarning
from starima.models.baselines import predict_last, predict_seasonal_naive
from starima.models.forecast import forecast
from starima.models.starima import StarimaSpec, fit

from conftest import path_adjacency


def test_one_step_ahead_uses_observed_lags(ar1_panel):
    model = fit(ar1_panel.iloc[:30], StarimaSpec(p=1))
    phi = model.ar[0, 0]
    res = forecast(model, ar1_panel, history=30, horizon=6)

    expected = phi * ar1_panel.iloc[29:35].to_numpy()
    np.testing.assert_allclose(res.predicted.to_numpy(), expected)
    pd.testing.assert_index_equal(res.predicted.index, ar1_panel.index[30:36])
    np.testing.assert_allclose(res.residuals.to_numpy(), ar1_panel.iloc[30:].to_numpy() - expected)


def test_pure_extrapolation_beyond_the_data(ar1_panel):
    model = fit(ar1_panel, StarimaSpec(p=1))
    phi = model.ar[0, 0]
    res = forecast(model, ar1_panel, history=36, horizon=3)

    last = ar1_panel.iloc[-1].to_numpy()
    expected = np.vstack([phi ** h * last for h in (1, 2, 3)])
    np.testing.assert_allclose(res.predicted.to_numpy(), expected)
    assert res.observed.isna().all().all()
    assert res.residuals.isna().all().all()
    # monthly index is extended past the window
    assert res.predicted.index[0] == pd.Timestamp("2003-01-01")


def test_partially_observed_horizon(ar1_panel):
    model = fit(ar1_panel.iloc[:30], StarimaSpec(p=1))
    res = forecast(model, ar1_panel.iloc[:32], history=30, horizon=4)
    assert res.predicted.shape == (4, 3)
    assert res.residuals.iloc[:2].notna().all().all()
    assert res.residuals.iloc[2:].isna().all().all()
    assert np.isfinite(res.rmse())


def test_seasonal_difference_only_repeats_last_year(noisy_panel):
    model = fit(noisy_panel.iloc[:96], StarimaSpec(p=0, d=12, q=0))
    res = forecast(model, noisy_panel, history=96, horizon=12)
    naive = predict_seasonal_naive(noisy_panel, history=96, horizon=12)
    np.testing.assert_allclose(res.predicted.to_numpy(), naive.predicted.to_numpy())
    np.testing.assert_allclose(res.predicted.to_numpy(), noisy_panel.iloc[84:96].to_numpy())


def test_moving_average_feeds_back_one_step_residuals(noisy_panel):
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", NonConvergenceWarning)
        model = fit(noisy_panel.iloc[:100], StarimaSpec(p=0, d=0, q=1))
    theta = model.ma[0, 0]
    res = forecast(model, noisy_panel, history=100, horizon=5)

    z = noisy_panel.to_numpy()
    e = np.zeros_like(z)
    expected = []
    for t in range(1, 105):
        yhat = theta * e[t - 1]
        e[t] = z[t] - yhat
        if t >= 100:
            expected.append(yhat)
    np.testing.assert_allclose(res.predicted.to_numpy(), np.vstack(expected))


def test_seasonal_difference_with_autoregression(noisy_panel):
    model = fit(noisy_panel.iloc[:100], StarimaSpec(p=1, d=12, q=0))
    phi = model.ar[0, 0]
    z = noisy_panel.to_numpy()

    res = forecast(model, noisy_panel, history=100, horizon=6)
    t = np.arange(100, 106)
    expected = z[t - 12] + phi * (z[t - 1] - z[t - 13])
    np.testing.assert_allclose(res.predicted.to_numpy(), expected)

    # EN: past the data the first prediction stands in for z_100.
    # JP: データ範囲外では最初の予測値を z_100 の代わりに使う。
    ahead = forecast(model, noisy_panel.iloc[:100], history=100, horizon=2)
    first = z[88] + phi * (z[99] - z[87])
    second = z[89] + phi * (first - z[88])
    np.testing.assert_allclose(ahead.predicted.to_numpy(), np.vstack([first, second]))


def test_forecast_is_deterministic_and_does_not_mutate(noisy_panel):
    w = WeightSet.from_adjacency(path_adjacency(5), max_order=2, ids=list(noisy_panel.columns))
    model = fit(noisy_panel.iloc[:100], StarimaSpec(p=2, d=12, q=1, weights=w))
    ar_before = model.ar.copy()

    a = forecast(model, noisy_panel, history=100, horizon=20)
    b = forecast(model, noisy_panel, history=100, horizon=20)
    pd.testing.assert_frame_equal(a.predicted, b.predicted)
    pd.testing.assert_frame_equal(a.observed, b.observed)
    np.testing.assert_array_equal(model.ar, ar_before)
    assert a.rmse_by_location().index.tolist() == list(noisy_panel.columns)


def test_forecast_requires_enough_history(noisy_panel):
    model = fit(noisy_panel, StarimaSpec(p=2, d=12, q=1))
    with pytest.raises(InsufficientDataError):
        forecast(model, noisy_panel, history=13, horizon=1)
    forecast(model, noisy_panel, history=14, horizon=1)


def test_forecast_checks_locations(noisy_panel):
    model = fit(noisy_panel, StarimaSpec(p=1))
    with pytest.raises(DimensionMismatchError):
        forecast(model, noisy_panel.iloc[:, :4], history=50, horizon=2)


def test_forecast_rejects_reordered_locations(noisy_panel):
    # EN: weights without ids cannot catch the reorder; the fitted columns must.
    # JP: idの無い重みでは検出できないため、学習時の列順で確認する。
    w = WeightSet.from_adjacency(path_adjacency(5))
    model = fit(noisy_panel.iloc[:100], StarimaSpec(p=1, weights=w))
    reordered = noisy_panel.iloc[:, [2, 1, 0, 3, 4]]
    with pytest.raises(DimensionMismatchError):
        forecast(model, reordered, history=100, horizon=3)

    identity_model = fit(noisy_panel.iloc[:100], StarimaSpec(p=1))
    with pytest.raises(DimensionMismatchError):
        forecast(identity_model, reordered, history=100, horizon=3)

    res = forecast(model, noisy_panel, history=100, horizon=3)
    assert list(res.predicted.columns) == list(noisy_panel.columns)


def test_persistence_baseline(noisy_panel):
    res = predict_last(noisy_panel, history=60, horizon=5)
    np.testing.assert_allclose(res.predicted.to_numpy(), np.tile(noisy_panel.iloc[59].to_numpy(), (5, 1)))
    np.testing.assert_allclose(res.observed.to_numpy(), noisy_panel.iloc[60:65].to_numpy())
