"""Space-time lag operators and differencing.

English:
    The STARIMA design is built from space-time lags W_l z_{t-k}: the vector
    of all locations at time t-k, spatially averaged with the weight matrix of
    order l. Panels are arrays shaped [time, location], so the spatial lag of
    every row at once is ``Z @ W.T``.

    Differencing at lag d (typically 12 for monthly data) removes the annual
    cycle; ``undifference`` inverts it exactly given the first d rows.

日本語:
    STARIMAの説明変数は時空間ラグ W_l z_{t-k}（時刻t-kの全地点を次数lの
    重み行列で空間平均したもの）から作ります。行列は [時間, 地点] の形なので、
    全時刻の空間ラグは ``Z @ W.T`` で計算できます。

    ラグdの差分（月次データでは通常12）で年周期を除去し、
    ``undifference`` は最初のd行から元系列を正確に復元します。
"""

from __future__ import annotations

from typing import Dict, Iterable, Tuple

import numpy as np
import pandas as pd

from ..data.weights import WeightSet


def difference(Z, d: int):
    """Lag-d difference along time: Z[t] - Z[t - d] (d rows shorter).

    EN: DataFrames keep their index (first d labels dropped); d=0 is a no-op.
    JP: DataFrameはインデックスを保持します（先頭d行を除外）。d=0なら何もしません。
    """
    if d < 0:
        raise ValueError("d must be >= 0")
    if isinstance(Z, pd.DataFrame):
        return Z.copy() if d == 0 else (Z - Z.shift(d)).iloc[d:]
    Z = np.asarray(Z, dtype=float)
    return Z.copy() if d == 0 else Z[d:] - Z[:-d]


def undifference(Zd, initial):
    """Invert ``difference``: rebuild the series from its first d rows.

    The result has len(initial) + len(Zd) rows; row t (t >= d) equals
    Zd[t - d] + result[t - d].
    """
    init = np.asarray(initial, dtype=float)
    dz = np.asarray(Zd, dtype=float)
    d = init.shape[0]
    if d == 0:
        return dz.copy()
    out = np.empty((d + dz.shape[0],) + dz.shape[1:], dtype=float)
    out[:d] = init
    for t in range(dz.shape[0]):
        out[t + d] = dz[t] + out[t]
    return out


def spatial_lag(Z: np.ndarray, W: np.ndarray) -> np.ndarray:
    """Row t of the result is W @ Z[t]."""
    return np.asarray(Z, dtype=float) @ np.asarray(W, dtype=float).T


def shift_rows(X: np.ndarray, k: int) -> np.ndarray:
    """Time shift by k rows; the first k rows have no history (NaN)."""
    out = np.full_like(X, np.nan, dtype=float)
    if k == 0:
        out[:] = X
    elif k < X.shape[0]:
        out[k:] = X[:-k]
    return out


def space_time_lags(
    Z: np.ndarray,
    weights: WeightSet,
    time_lags: Iterable[int],
) -> Dict[Tuple[int, int], np.ndarray]:
    """All space-time lags W_l z_{t-k}.

    Returns a dict keyed by (time_lag, spatial_order), each value shaped like Z.
    """
    Z = np.asarray(Z, dtype=float)
    spatial = [spatial_lag(Z, W) for W in weights.matrices()]
    out = {}
    for k in time_lags:
        for l, S in enumerate(spatial):
            out[(k, l)] = shift_rows(S, k)
    return out
