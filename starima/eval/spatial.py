"""Global Moran's I per period.

English:
    Spatial clustering of each monthly map (observations, residuals or
    forecast errors) with esda's Moran statistic on a WeightSet order.

日本語:
    各月の地図（観測値・残差・予測誤差）の空間的なまとまりを
    esdaのMoran's Iで評価します。
"""

from __future__ import annotations

import numpy as np
import pandas as pd
from esda.moran import Moran

from ..data.preprocess import validate_observations
from ..data.weights import WeightSet


def moran_by_period(Z, weights: WeightSet, order: int = 1, permutations: int = 0) -> pd.DataFrame:
    """One row per time step with I, EI, z_norm, p_norm (and p_sim if permuted)."""
    values, index, columns = validate_observations(Z)
    weights.check(columns)
    w = weights.to_libpysal(order)

    rows = []
    for t in range(values.shape[0]):
        y = values[t]
        if np.allclose(y, y[0]):
            # constant map: Moran's I undefined
            rows.append({"I": np.nan, "EI": np.nan, "z_norm": np.nan, "p_norm": np.nan})
            continue
        mi = Moran(y, w, permutations=permutations)
        row = {"I": float(mi.I), "EI": float(mi.EI), "z_norm": float(mi.z_norm), "p_norm": float(mi.p_norm)}
        if permutations:
            row["p_sim"] = float(mi.p_sim)
        rows.append(row)
    return pd.DataFrame(rows, index=index)
