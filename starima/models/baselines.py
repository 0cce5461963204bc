"""Baselines for quick sanity checks.

English:
    - Last-value (persistence)
    - Seasonal naive (repeat last season, 12 months by default)

    Both follow the forecasting window contract of ``models.forecast`` and
    return a ForecastResult, so STARIMA can be compared on equal terms.

日本語:
    - 直前値（persistence）
    - 季節ナイーブ（前季の繰り返し、既定は12か月）
"""

from __future__ import annotations
from typing import Optional
import numpy as np
import pandas as pd

from .forecast import ForecastResult, split_window


def _result(pred: np.ndarray, future: np.ndarray, index: pd.Index, columns: pd.Index) -> ForecastResult:
    return ForecastResult(
        predicted=pd.DataFrame(pred, index=index, columns=columns),
        observed=pd.DataFrame(future, index=index, columns=columns),
    )


def predict_last(window, history: int, horizon: Optional[int] = None) -> ForecastResult:
    hist, future, index, columns = split_window(window, history, horizon)
    pred = np.tile(hist[-1], (future.shape[0], 1))
    return _result(pred, future, index, columns)


def predict_seasonal_naive(window, history: int, horizon: Optional[int] = None, season: int = 12) -> ForecastResult:
    hist, future, index, columns = split_window(window, history, horizon)
    if hist.shape[0] < season:
        return predict_last(window, history, horizon)
    tail = hist[-season:]
    rep = int(np.ceil(future.shape[0] / season))
    pred = np.tile(tail, (rep, 1))[: future.shape[0]]
    return _result(pred, future, index, columns)
