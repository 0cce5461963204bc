"""Forecasting metrics.

English:
    Error metrics for [time, location] panels. NRMSE divides the RMSE by the
    standard deviation of the observations, so it does not depend on the scale of
    the data.

日本語:
    [時間, 地点] 行列に対する誤差指標です。NRMSEはRMSEを観測値の標準偏差で
    割るため、データのスケールに依存しません。
"""

from __future__ import annotations
import numpy as np


def rmse(y_true, y_pred) -> float:
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    return float(np.sqrt(np.nanmean((y_true - y_pred) ** 2)))


def mae(y_true, y_pred) -> float:
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    return float(np.nanmean(np.abs(y_true - y_pred)))


def nrmse(y_true, y_pred, eps: float = 1e-12) -> float:
    """RMSE / std(y_true); NaN pairs are ignored, nan on zero variance."""
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    mask = ~(np.isnan(y_true) | np.isnan(y_pred))
    if not np.any(mask):
        return float("nan")
    sd = float(np.std(y_true[mask]))
    if sd <= eps * float(np.max(np.abs(y_true[mask]))):
        return float("nan")
    return float(np.sqrt(np.mean((y_true[mask] - y_pred[mask]) ** 2)) / sd)


def nrmse_trace(observed: np.ndarray, residuals: np.ndarray, start: int = 0, eps: float = 1e-12) -> np.ndarray:
    """Expanding-window NRMSE, one value per time step from ``start`` onward.

    EN:
        value[j] = sqrt(mean(e^2 over rows start..start+j))
                   / std(observed over rows start..start+j)
        pooled over every location (population std).
    JP:
        start行目から各時刻までの累積ウィンドウでNRMSEを計算します
        （全地点をまとめ、母標準偏差を使用）。
    """
    obs = np.asarray(observed, dtype=float)[start:]
    res = np.asarray(residuals, dtype=float)[start:]
    if obs.ndim == 1:
        obs = obs[:, None]
        res = res[:, None]
    sse = np.cumsum((res ** 2).sum(axis=1))
    out = np.full(obs.shape[0], np.nan)
    for j in range(obs.shape[0]):
        window = obs[: j + 1]
        sd = float(np.std(window))
        # zero variance relative to the data magnitude
        if sd <= eps * float(np.max(np.abs(window))):
            continue
        out[j] = np.sqrt(sse[j] / window.size) / sd
    return out
