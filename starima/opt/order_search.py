"""STARIMA order selection by NRMSE.

English:
    Candidate (p, d, q) orders are compared on the NRMSE trace of the fit:
    either its final value or its mean. Orders that cannot be fitted
    (too short a panel, singular design) are recorded as failed instead of
    aborting the search.

日本語:
    候補次数 (p, d, q) を推定時のNRMSE（最終値または平均）で比較します。
    推定できない次数（データ不足・特異な計画行列）は失敗として記録し、
    探索は継続します。
"""

from __future__ import annotations

import logging
import warnings
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from ..config import BOConfig, FitConfig, OrderSearchSpace
from ..data.weights import WeightSet
from ..errors import InsufficientDataError, NonConvergenceWarning, SingularDesignError
from ..models.starima import StarimaSpec, fit
from .gp_bo import lattice_bo_minimize

logger = logging.getLogger(__name__)

_SCORES = ("final", "mean")


def candidate_orders(space: OrderSearchSpace) -> List[Tuple[int, int, int]]:
    out = []
    for d in space.d_values:
        for p in range(space.p_max + 1):
            for q in range(space.q_max + 1):
                if p == 0 and q == 0 and not space.allow_white_noise:
                    continue
                out.append((p, d, q))
    return out


def evaluate_order(
    Z,
    order: Tuple[int, int, int],
    weights: Optional[WeightSet],
    score: str = "final",
    fit_cfg: FitConfig = FitConfig(),
) -> Dict[str, Any]:
    """Fit one order; returns a row with score, convergence and status."""
    if score not in _SCORES:
        raise ValueError(f"Unknown score: {score}")
    p, d, q = order
    row: Dict[str, Any] = {"p": p, "d": d, "q": q}
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", NonConvergenceWarning)
            model = fit(Z, StarimaSpec(p=p, d=d, q=q, weights=weights), fit_cfg)
    except (InsufficientDataError, SingularDesignError) as exc:
        logger.debug("STARIMA%s skipped: %s", order, exc)
        row.update(score=np.inf, final_nrmse=np.nan, mean_nrmse=np.nan, converged=False, status=type(exc).__name__)
        return row

    value = model.final_nrmse if score == "final" else model.mean_nrmse
    row.update(
        score=value if np.isfinite(value) else np.inf,
        final_nrmse=model.final_nrmse,
        mean_nrmse=model.mean_nrmse,
        converged=model.converged,
        status="ok",
    )
    logger.debug("STARIMA%s score=%.4f", order, row["score"])
    return row


def grid_search(
    Z,
    weights: Optional[WeightSet] = None,
    space: OrderSearchSpace = OrderSearchSpace(),
    fit_cfg: FitConfig = FitConfig(),
) -> pd.DataFrame:
    """Fit every candidate order; rows sorted by score (best first)."""
    rows = [evaluate_order(Z, o, weights, space.score, fit_cfg) for o in candidate_orders(space)]
    out = pd.DataFrame(rows, columns=["p", "d", "q", "score", "final_nrmse", "mean_nrmse", "converged", "status"])
    return out.sort_values(["score", "p", "q", "d"], kind="mergesort").reset_index(drop=True)


def bayes_search(
    Z,
    weights: Optional[WeightSet] = None,
    space: OrderSearchSpace = OrderSearchSpace(),
    bo_cfg: BOConfig = BOConfig(),
    fit_cfg: FitConfig = FitConfig(),
) -> Dict[str, Any]:
    """Gaussian-process search over the candidate lattice."""
    lattice = np.array(candidate_orders(space), dtype=float)
    rows = []

    def obj(x: np.ndarray) -> float:
        row = evaluate_order(Z, tuple(int(v) for v in x), weights, space.score, fit_cfg)
        rows.append(row)
        return float(row["score"])

    bo = lattice_bo_minimize(
        obj,
        lattice,
        n_init=bo_cfg.n_init,
        n_iter=bo_cfg.n_iter,
        seed=bo_cfg.random_seed,
        xi=bo_cfg.exploration,
    )
    p, d, q = bo["x_best"]
    return {
        "best_spec": StarimaSpec(p=p, d=d, q=q, weights=weights),
        "best_score": bo["y_best"],
        "trace": pd.DataFrame(rows),
        "bo_trace": bo,
    }
