"""Space-time autocorrelation diagnostics.

English:
    STACF / STPACF generalise the classical ACF / PACF with spatial lags.
    For spatial order l and time lag s (data centred per location):

        gamma_l0(s) = sum_t (W_l z_{t-s}) . z_t / (N (T - s))
        rho_l(s)    = gamma_l0(s) / sqrt(gamma_ll(0) gamma_00(0))

    The partial version is the last coefficient of the pooled regression of
    z_t on W_l z_{t-1}, ..., W_l z_{t-k} over the common sample t >= max_lag.

    With identity-only weights, order 0 is the classical (adjusted) ACF
    pooled over locations: mean_i acov_i(s) / mean_i acov_i(0).

日本語:
    STACF / STPACF は古典的なACF / PACFに空間ラグを加えたものです。
    重みが単位行列のみの場合、次数0は地点でプールした古典的ACFと一致します。
"""

from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd
from scipy.linalg import lstsq
from statsmodels.stats.diagnostic import acorr_ljungbox

from ..data.preprocess import validate_observations
from ..data.weights import WeightSet
from ..features.lag import spatial_lag


def _centred(Z, weights: Optional[WeightSet], max_lag: int):
    values, _, columns = validate_observations(Z)
    weights = weights if weights is not None else WeightSet.identity(values.shape[1])
    weights.check(columns)
    if max_lag < 1 or max_lag >= values.shape[0]:
        raise ValueError(f"max_lag must be in 1..{values.shape[0] - 1}")
    return values - values.mean(axis=0), weights


def stacf(Z, weights: Optional[WeightSet] = None, max_lag: int = 24) -> pd.DataFrame:
    """Space-time autocorrelation; rows = time lag 1..max_lag, columns = spatial order."""
    X, weights = _centred(Z, weights, max_lag)
    T, N = X.shape
    g00 = float(np.sum(X ** 2)) / (N * T)

    out = {}
    for l, W in enumerate(weights.matrices()):
        S = spatial_lag(X, W)
        denom = np.sqrt(float(np.sum(S ** 2)) / (N * T) * g00)
        vals = np.full(max_lag, np.nan)
        if denom > 0:
            for s in range(1, max_lag + 1):
                vals[s - 1] = float(np.sum(S[: T - s] * X[s:])) / (N * (T - s)) / denom
        out[l] = vals
    return pd.DataFrame(out, index=pd.RangeIndex(1, max_lag + 1, name="time_lag"))


def stpacf(Z, weights: Optional[WeightSet] = None, max_lag: int = 24) -> pd.DataFrame:
    """Space-time partial autocorrelation, same layout as ``stacf``."""
    X, weights = _centred(Z, weights, max_lag)
    T = X.shape[0]
    y = X[max_lag:].ravel()

    out = {}
    for l, W in enumerate(weights.matrices()):
        S = spatial_lag(X, W)
        lagged = np.column_stack([S[max_lag - j : T - j].ravel() for j in range(1, max_lag + 1)])
        vals = np.full(max_lag, np.nan)
        if np.any(lagged):
            for k in range(1, max_lag + 1):
                beta = lstsq(lagged[:, :k], y, lapack_driver="gelsd")[0]
                vals[k - 1] = float(beta[-1])
        out[l] = vals
    return pd.DataFrame(out, index=pd.RangeIndex(1, max_lag + 1, name="time_lag"))


def ljung_box(residuals, lags: int = 12, model_df: int = 0) -> pd.DataFrame:
    """Per-location Ljung-Box whiteness test on residuals.

    EN: accepts a FittedModel (usable residual rows are used) or a DataFrame.
    JP: FittedModel（ウォームアップ後の残差を使用）またはDataFrameを受け付けます。
    """
    if hasattr(residuals, "usable_residuals"):
        residuals = residuals.usable_residuals
    residuals = pd.DataFrame(residuals)
    rows = {}
    for col in residuals.columns:
        x = residuals[col].dropna().to_numpy(dtype=float)
        if len(x) <= lags:
            rows[col] = {"lb_stat": np.nan, "lb_pvalue": np.nan}
            continue
        res = acorr_ljungbox(x, lags=[lags], model_df=model_df)
        rows[col] = {"lb_stat": float(res["lb_stat"].iloc[-1]), "lb_pvalue": float(res["lb_pvalue"].iloc[-1])}
    out = pd.DataFrame.from_dict(rows, orient="index")
    out.index.name = "location"
    return out
