"""Panel preparation utilities.

English:
    - pivot a long table (datetime, location, value) into a wide
      ObservationMatrix (rows = months, columns = boroughs)
    - regularize to a fixed monthly grid
    - drop months with any missing borough (the model needs a dense panel)

日本語:
    - 縦持ちの表 (datetime, location, value) を横持ちの観測行列へ変換
      （行=月、列=行政区）
    - 月次の規則的な時間軸にリサンプリング
    - 欠損を含む月を除外（モデルは欠損のない行列を前提とします）
"""

from __future__ import annotations
from typing import Tuple
import numpy as np
import pandas as pd


def to_observation_matrix(df: pd.DataFrame, freq: str = "MS") -> pd.DataFrame:
    """Build a dense [time, location] panel.

    Expected input columns: datetime, location, value
    """
    for col in ("datetime", "location", "value"):
        if col not in df:
            raise ValueError("df must have columns ['datetime', 'location', 'value']")

    wide = df.pivot_table(index="datetime", columns="location", values="value", aggfunc="mean")
    wide.index = pd.to_datetime(wide.index)
    wide = wide.sort_index().resample(freq).mean()
    wide = wide.dropna(axis=0, how="any")
    if wide.empty:
        raise ValueError("No complete time steps left after dropping missing values.")

    wide = wide.reindex(sorted(wide.columns), axis=1)
    wide.columns = [str(c) for c in wide.columns]
    wide.columns.name = "location"
    return wide.astype(float)


def validate_observations(Z) -> Tuple[np.ndarray, pd.Index, pd.Index]:
    """Return (values, time index, location ids) of an ObservationMatrix.

    EN: accepts a DataFrame or a 2-D array; NaNs are rejected.
    JP: DataFrameまたは2次元配列を受け付け、欠損値はエラーにします。
    """
    if isinstance(Z, pd.DataFrame):
        values = Z.to_numpy(dtype=float)
        index, columns = Z.index, pd.Index([str(c) for c in Z.columns])
    else:
        values = np.asarray(Z, dtype=float)
        if values.ndim != 2:
            raise ValueError("ObservationMatrix must be 2-D [time, location]")
        index = pd.RangeIndex(values.shape[0])
        columns = pd.Index([str(i) for i in range(values.shape[1])])
    if values.ndim != 2:
        raise ValueError("ObservationMatrix must be 2-D [time, location]")
    if np.isnan(values).any():
        raise ValueError("ObservationMatrix contains missing values; drop them upstream.")
    return values, index, columns


def train_test_split(Z: pd.DataFrame, n_test: int) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Chronological split keeping the last n_test rows for testing."""
    if n_test < 0 or n_test >= len(Z):
        raise ValueError("n_test must be in [0, len(Z))")
    cut = len(Z) - n_test
    return Z.iloc[:cut].copy(), Z.iloc[cut:].copy()
