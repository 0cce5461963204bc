"""Rolling-origin backtesting.

English:
    Walk-forward validation for STARIMA: fit on the first ``start`` months,
    forecast the next ``horizon`` months from that history, move the origin by
    ``step`` and repeat.

日本語:
    STARIMAのウォークフォワード検証（rolling-origin）を実装します。
"""

from __future__ import annotations
import logging
from dataclasses import asdict
from typing import Any, Dict, Optional
import numpy as np
import pandas as pd

from ..config import BacktestConfig, FitConfig
from ..data.preprocess import validate_observations
from ..models.forecast import forecast
from ..models.starima import StarimaSpec, fit

logger = logging.getLogger(__name__)


def rolling_origin(
    Z: pd.DataFrame,
    spec: StarimaSpec,
    cfg: BacktestConfig = BacktestConfig(),
    fit_cfg: FitConfig = FitConfig(),
) -> Dict[str, Any]:
    """Run rolling-origin evaluation.

    Parameters
    ----------
    Z:
        ObservationMatrix [time, location].
    spec:
        STARIMA order and weights, refitted on every fold.
    cfg:
        BacktestConfig.

    Returns
    -------
    dict with per-fold metrics and global summary.
    """
    values, index, columns = validate_observations(Z)
    panel = pd.DataFrame(values, index=index, columns=columns)
    n = len(panel)

    folds = []
    start = cfg.min_train
    while start + cfg.horizon <= n:
        model = fit(panel.iloc[:start], spec, fit_cfg)
        window = panel.iloc[: start + cfg.horizon]
        res = forecast(model, window, history=start, horizon=cfg.horizon)

        fold = {
            "train_end": index[start - 1],
            "test_start": index[start],
            "test_end": index[start + cfg.horizon - 1],
            "converged": model.converged,
            "fit_nrmse": model.final_nrmse,
            "rmse": res.rmse(),
            "mae": res.mae(),
            "nrmse": res.nrmse(),
        }
        logger.debug("fold ending %s: rmse=%.4f", fold["train_end"], fold["rmse"])
        folds.append(fold)
        start += cfg.step

    out = {
        "config": asdict(cfg),
        "order": list(spec.order),
        "n_folds": len(folds),
        "folds": folds,
        "mean_rmse": float(np.mean([f["rmse"] for f in folds])) if folds else None,
        "mean_mae": float(np.mean([f["mae"] for f in folds])) if folds else None,
        "mean_nrmse": float(np.nanmean([f["nrmse"] for f in folds])) if folds else None,
    }
    return out
