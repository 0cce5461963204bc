"""Rolled-forward STARIMA forecasting.

English:
    The window passed to ``forecast`` holds ``history`` observed rows followed
    by up to ``horizon`` rows of the forecast period (rows may be missing or
    contain NaN where no observation exists). At each forecast step the model
    predicts one step ahead in differenced space:

        - lags that have an observation use it; lags without one use the
          earlier prediction (pure extrapolation),
        - MA terms use residuals computable from the provided data:
          one-step residuals over the history and over observed forecast
          steps, zero elsewhere,
        - the prediction is integrated back to levels with the level d steps
          earlier (observed if available, else predicted).

    The model is never mutated; identical inputs give identical results.

日本語:
    ``history`` 行の観測履歴と、予測期間の最大 ``horizon`` 行（観測が無い
    部分は欠損可）を受け取り、差分空間で1期先予測を逐次行います。
    観測がある時点は観測値を、無い時点は予測値をラグとして使い、
    MA項はデータから計算できる残差（無ければ0）を使います。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from ..errors import DimensionMismatchError, InsufficientDataError
from ..eval.metrics import mae, nrmse, rmse
from .starima import FittedModel


@dataclass(frozen=True, eq=False)
class ForecastResult:
    """Predicted and observed panels over the forecast horizon (time-aligned)."""

    predicted: pd.DataFrame
    observed: pd.DataFrame

    @property
    def residuals(self) -> pd.DataFrame:
        """observed - predicted; NaN where nothing was observed."""
        return self.observed - self.predicted

    def rmse(self) -> float:
        return rmse(self.observed.to_numpy(), self.predicted.to_numpy())

    def mae(self) -> float:
        return mae(self.observed.to_numpy(), self.predicted.to_numpy())

    def nrmse(self) -> float:
        return nrmse(self.observed.to_numpy(), self.predicted.to_numpy())

    def rmse_by_location(self) -> pd.Series:
        """Per-location RMSE, e.g. for a spatial error map."""
        err = self.residuals
        return np.sqrt((err ** 2).mean(axis=0, skipna=True)).rename("rmse")


def _future_index(index: pd.Index, history: int, horizon: int) -> pd.Index:
    if len(index) >= history + horizon:
        return index[history : history + horizon]
    if isinstance(index, pd.DatetimeIndex) and len(index) >= 3:
        freq = index.freq or pd.infer_freq(index)
        if freq is not None:
            return pd.date_range(start=index[history - 1], periods=horizon + 1, freq=freq)[1:]
    return pd.RangeIndex(history, history + horizon)


def split_window(window, history: int, horizon: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray, pd.Index, pd.Index]:
    """Split a forecast window into (history values, future observations, future index, columns).

    Future observations are padded with NaN up to ``horizon`` rows.
    """
    if isinstance(window, pd.DataFrame):
        values = window.to_numpy(dtype=float)
        index, columns = window.index, pd.Index([str(c) for c in window.columns])
    else:
        values = np.asarray(window, dtype=float)
        if values.ndim != 2:
            raise ValueError("window must be 2-D [time, location]")
        index = pd.RangeIndex(values.shape[0])
        columns = pd.Index([str(i) for i in range(values.shape[1])])

    if history < 1 or history > values.shape[0]:
        raise ValueError(f"history must be in 1..{values.shape[0]}")
    if horizon is None:
        horizon = values.shape[0] - history
    if horizon < 1:
        raise ValueError("horizon must be >= 1")

    hist = values[:history]
    if np.isnan(hist).any():
        raise ValueError("history rows must not contain missing values")
    future = np.full((horizon, values.shape[1]), np.nan)
    avail = values[history : history + horizon]
    future[: avail.shape[0]] = avail
    return hist, future, _future_index(index, history, horizon), columns


def forecast(model: FittedModel, window, history: int, horizon: Optional[int] = None) -> ForecastResult:
    """Forecast ``horizon`` steps after the first ``history`` rows of ``window``."""
    hist, future, future_index, columns = split_window(window, history, horizon)
    if isinstance(window, pd.DataFrame):
        if list(columns) != model.locations:
            raise DimensionMismatchError(
                f"window locations {list(columns)} differ from the fitted locations {model.locations}"
            )
    elif len(columns) == len(model.locations):
        columns = pd.Index(model.locations)
    model.weights.check(columns)
    p, d, q = model.spec.order
    w = model.spec.warmup
    if history < w + d:
        raise InsufficientDataError(f"forecasting STARIMA{model.spec.order} needs at least {w + d} history steps")

    horizon = future.shape[0]
    n = hist.shape[1]
    mats = model.weights.matrices()

    # Levels: observed where available, otherwise filled with predictions as we go.
    levels = np.vstack([hist, np.zeros((horizon, n))])
    total = history + horizon
    dz = np.zeros((total - d, n))
    dz[: history - d] = hist[d:] - hist[: history - d] if d else hist
    E = np.zeros_like(dz)

    def one_step(j: int) -> np.ndarray:
        yhat = np.zeros(n)
        for k in range(1, p + 1):
            for l, W in enumerate(mats):
                yhat += model.ar[k - 1, l] * (W @ dz[j - k])
        for k in range(1, q + 1):
            for l, W in enumerate(mats):
                yhat += model.ma[k - 1, l] * (W @ E[j - k])
        return yhat

    # EN: one-step residuals over the history (warm-up residuals stay zero).
    # JP: 履歴区間の1期先残差（ウォームアップ期間は0のまま）。
    for j in range(w, history - d):
        E[j] = dz[j] - one_step(j)

    predicted = np.empty((horizon, n))
    for h in range(horizon):
        t = history + h
        j = t - d
        yhat = one_step(j)
        base = levels[t - d] if d else 0.0
        predicted[h] = yhat + base

        obs = future[h]
        seen = ~np.isnan(obs)
        levels[t] = np.where(seen, obs, predicted[h])
        dz[j] = levels[t] - base
        E[j] = np.where(seen, dz[j] - yhat, 0.0)

    return ForecastResult(
        predicted=pd.DataFrame(predicted, index=future_index, columns=columns),
        observed=pd.DataFrame(future, index=future_index, columns=columns),
    )
