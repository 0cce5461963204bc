"""Space-time ARIMA (STARIMA) estimation.

English:
    Model on the (optionally lag-d differenced) panel z_t (one value per
    location):

        z_t = sum_k sum_l phi[k, l] W_l z_{t-k}
            + sum_k sum_l theta[k, l] W_l e_{t-k} + e_t

    with W_0 = I. Coefficients are global: every location shares them and
    only the weight matrices carry location-specific propagation.

    Estimation is Box-Jenkins style iterative least squares. Residuals are
    zero during the warm-up (the first max(p, q) steps). The starting
    residuals come from the autoregressive part alone; each refinement pass
    regresses z_t on the AR columns plus MA columns built from the current
    residuals and recomputes residuals = response - fitted. The loop stops
    when the relative residual change drops below the tolerance or the
    iteration cap is hit.

日本語:
    （必要ならラグdで差分した）行列 z_t に対して上式のモデルを推定します。
    係数は全地点で共通で、地点ごとの伝播は重み行列が表現します。
    推定はBox-Jenkins流の反復最小二乗です。ウォームアップ期間の残差は0、
    初期残差はAR部分のみの回帰から作り、残差の相対変化が閾値未満になるか
    反復上限に達するまで更新します。
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Tuple

import numpy as np
import pandas as pd
from scipy.linalg import lstsq

from ..config import FitConfig
from ..data.preprocess import validate_observations
from ..data.weights import WeightSet
from ..errors import InsufficientDataError, NonConvergenceWarning, SingularDesignError
from ..eval.metrics import nrmse_trace
from ..features.lag import difference, space_time_lags

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StarimaSpec:
    """STARIMA(p, d, q) plus the spatial weights (None = identity only)."""

    p: int = 1
    d: int = 0
    q: int = 0
    weights: Optional[WeightSet] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        for name in ("p", "d", "q"):
            v = getattr(self, name)
            if int(v) != v or v < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {v!r}")

    @property
    def order(self) -> Tuple[int, int, int]:
        return (self.p, self.d, self.q)

    @property
    def warmup(self) -> int:
        return max(self.p, self.q)

    @property
    def kind(self) -> str:
        """Which terms are present: 'white_noise', 'ar', 'ma' or 'arma'."""
        if self.p == 0 and self.q == 0:
            return "white_noise"
        if self.q == 0:
            return "ar"
        if self.p == 0:
            return "ma"
        return "arma"

    def weight_set(self, n_locations: int) -> WeightSet:
        return self.weights if self.weights is not None else WeightSet.identity(n_locations)


@dataclass(frozen=True, eq=False)
class FittedModel:
    """Result of ``fit``; arrays are read-only.

    ar[k - 1, l] is the coefficient of W_l z_{t-k}; ma[k - 1, l] of W_l e_{t-k}.
    residuals covers every differenced time step (warm-up rows are zero).
    """

    spec: StarimaSpec
    weights: WeightSet
    ar: np.ndarray
    ma: np.ndarray
    residuals: pd.DataFrame
    nrmse: pd.Series
    converged: bool
    n_iter: int

    @property
    def locations(self) -> List[str]:
        return list(self.residuals.columns)

    @property
    def usable_residuals(self) -> pd.DataFrame:
        return self.residuals.iloc[self.spec.warmup :]

    @property
    def final_nrmse(self) -> float:
        return float(self.nrmse.iloc[-1])

    @property
    def mean_nrmse(self) -> float:
        return float(np.nanmean(self.nrmse.to_numpy()))

    def coef_table(self) -> pd.DataFrame:
        """Long table of coefficients: term, time_lag, spatial_lag, value."""
        rows = []
        for term, coefs in (("ar", self.ar), ("ma", self.ma)):
            for k in range(coefs.shape[0]):
                for l in range(coefs.shape[1]):
                    rows.append({"term": term, "time_lag": k + 1, "spatial_lag": l, "value": float(coefs[k, l])})
        return pd.DataFrame(rows, columns=["term", "time_lag", "spatial_lag", "value"])


class _Step(NamedTuple):
    beta: np.ndarray
    residuals: np.ndarray
    change: float
    converged: bool


def lag_design(X: np.ndarray, weights: WeightSet, n_lags: int, start: int) -> np.ndarray:
    """Stacked space-time lag columns for rows t = start..T-1 (start >= n_lags).

    Row order is (t, location); column order is (time lag k, spatial lag l).
    """
    T, n = X.shape
    lags = space_time_lags(X, weights, range(1, n_lags + 1))
    cols = [
        lags[(k, l)][start:].ravel()
        for k in range(1, n_lags + 1)
        for l in range(weights.n_spatial_lags)
    ]
    if not cols:
        return np.empty(((T - start) * n, 0))
    return np.column_stack(cols)


def active_ma_lags(n_steps: int, q: int, w: int) -> int:
    """MA lags whose columns can hold a non-warm-up residual.

    Row t >= w reads e_{t-k}; e is zero for t - k < w, so lag k carries
    information only when k < n_steps - w. Higher lags are structurally
    absent and their coefficients stay at zero.
    """
    return max(0, min(q, n_steps - w - 1))


def _solve(X: np.ndarray, y: np.ndarray, cfg: FitConfig) -> np.ndarray:
    if X.shape[1] == 0:
        return np.empty(0)
    if X.shape[0] < X.shape[1]:
        raise SingularDesignError(
            f"design has {X.shape[0]} rows for {X.shape[1]} coefficients"
        )
    beta, _, rank, s = lstsq(X, y, lapack_driver="gelsd")
    if s[0] == 0.0 or s[-1] <= cfg.singular_rcond * s[0]:
        raise SingularDesignError(
            f"design matrix is rank-deficient (rank {rank} of {X.shape[1]}, "
            f"s_min/s_max={s[-1] / s[0] if s[0] else 0.0:.3g})"
        )
    return beta


def _residuals(Zd: np.ndarray, fitted: np.ndarray, w: int) -> np.ndarray:
    E = np.zeros_like(Zd)
    E[w:] = Zd[w:] - fitted.reshape(Zd.shape[0] - w, Zd.shape[1])
    return E


def _refine(
    Zd: np.ndarray,
    weights: WeightSet,
    X_ar: np.ndarray,
    y: np.ndarray,
    q: int,
    w: int,
    E: np.ndarray,
    cfg: FitConfig,
) -> _Step:
    """One refinement pass: current residual estimate in, next estimate out."""
    X = np.hstack([X_ar, lag_design(E, weights, q, w)])
    beta = _solve(X, y, cfg)
    E_new = _residuals(Zd, X @ beta, w)
    scale = float(np.linalg.norm(E))
    change = float(np.linalg.norm(E_new - E)) / scale if scale > 0 else float("inf")
    return _Step(beta, E_new, change, change < cfg.convergence_tolerance)


def fit(Z, spec: StarimaSpec = StarimaSpec(), cfg: FitConfig = FitConfig()) -> FittedModel:
    """Estimate a STARIMA(p, d, q) model on an ObservationMatrix [time, location]."""
    values, index, columns = validate_observations(Z)
    weights = spec.weight_set(values.shape[1])
    weights.check(columns)
    if cfg.max_iterations < 1:
        raise ValueError("max_iterations must be >= 1")

    p, d, q = spec.order
    w = spec.warmup
    if values.shape[0] - d <= w:
        raise InsufficientDataError(
            f"{values.shape[0]} time steps are not enough for STARIMA{spec.order} "
            f"(need more than {w + d})"
        )

    Zd = difference(values, d)
    y = Zd[w:].ravel()
    X_ar = lag_design(Zd, weights, p, w)
    n_lags = weights.n_spatial_lags
    q_active = active_ma_lags(Zd.shape[0], q, w)
    if q_active < q:
        logger.debug("STARIMA%s: MA lags %d..%d only see warm-up residuals; fixed at 0", spec.order, q_active + 1, q)

    if q_active == 0:
        beta = _solve(X_ar, y, cfg)
        E = _residuals(Zd, X_ar @ beta, w)
        converged, n_iter = True, 1
    else:
        # EN: starting residuals from the AR part alone (MA columns of zeros carry no information).
        # JP: 初期残差はAR部分のみの回帰から作成（0のMA列は情報を持たないため）。
        E = _residuals(Zd, X_ar @ _solve(X_ar, y, cfg), w)
        converged = False
        for n_iter in range(1, cfg.max_iterations + 1):
            step = _refine(Zd, weights, X_ar, y, q_active, w, E, cfg)
            beta, E = step.beta, step.residuals
            logger.debug("STARIMA%s pass %d: relative residual change %.3g", spec.order, n_iter, step.change)
            if step.converged:
                converged = True
                break
        if not converged:
            warnings.warn(
                f"STARIMA{spec.order} did not converge in {cfg.max_iterations} iterations "
                f"(last relative change {step.change:.3g})",
                NonConvergenceWarning,
                stacklevel=2,
            )

    ar = np.asarray(beta[: p * n_lags], dtype=float).reshape(p, n_lags)
    ma = np.zeros((q, n_lags))
    ma[:q_active] = np.asarray(beta[p * n_lags :], dtype=float).reshape(q_active, n_lags)
    for arr in (ar, ma, E):
        arr.setflags(write=False)

    index_d = index[d:]
    residuals = pd.DataFrame(E, index=index_d, columns=columns)
    trace = pd.Series(nrmse_trace(Zd, E, start=w), index=index_d[w:], name="nrmse")

    logger.info(
        "fitted STARIMA%s on %d steps x %d locations: converged=%s, iterations=%d, final NRMSE=%.4f",
        spec.order, values.shape[0], values.shape[1], converged, n_iter, trace.iloc[-1],
    )
    return FittedModel(
        spec=spec,
        weights=weights,
        ar=ar,
        ma=ma,
        residuals=residuals,
        nrmse=trace,
        converged=converged,
        n_iter=n_iter,
    )
