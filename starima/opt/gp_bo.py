"""Bayesian optimization over a finite integer lattice.

English:
    STARIMA orders are small integers, so instead of sampling a continuous
    box the search scores every not-yet-evaluated lattice point:
    - GaussianProcessRegressor surrogate fitted on evaluated points
    - Expected Improvement acquisition over the remaining points
    - each point is evaluated at most once; the search stops early when the
      lattice is exhausted
    Objectives may return ``inf`` for infeasible points; those are kept out
    of the surrogate but never re-evaluated.

日本語:
    STARIMAの次数は小さな整数なので、連続空間ではなく有限の格子点上で
    探索します。
    - 評価済みの点にガウス過程を当てはめる
    - 未評価の点でExpected Improvementを計算
    - 各点は高々1回だけ評価（格子を使い切ったら終了）
"""

from __future__ import annotations
from typing import Callable, Dict
import numpy as np
from sklearn.gaussian_process import GaussianProcessRegressor
from sklearn.gaussian_process.kernels import Matern, WhiteKernel, ConstantKernel
from scipy.stats import norm


def _expected_improvement(mu: np.ndarray, sigma: np.ndarray, best: float, xi: float) -> np.ndarray:
    # EN: EI for minimization (lower is better).
    # JP: 最小化問題のEI（小さいほど良い）。
    imp = best - mu - xi
    z = imp / np.maximum(sigma, 1e-9)
    ei = imp * norm.cdf(z) + sigma * norm.pdf(z)
    ei[sigma < 1e-9] = 0.0
    return ei


def lattice_bo_minimize(
    objective: Callable[[np.ndarray], float],
    lattice: np.ndarray,
    n_init: int = 4,
    n_iter: int = 8,
    seed: int = 42,
    xi: float = 0.01,
) -> Dict[str, object]:
    """Minimize objective(x) over the rows of ``lattice`` (shape [m, d]).

    Returns x_best / y_best plus the evaluation trace X, y in visiting order.
    """
    lattice = np.asarray(lattice, dtype=float)
    if lattice.ndim != 2 or len(lattice) == 0:
        raise ValueError("lattice must be a non-empty 2-D array")
    rng = np.random.default_rng(seed)

    remaining = list(rng.permutation(len(lattice)))
    visited = []
    y = []

    def evaluate(i: int) -> None:
        remaining.remove(i)
        visited.append(i)
        y.append(float(objective(lattice[i])))

    for i in list(remaining[: min(n_init, len(remaining))]):
        evaluate(i)

    kernel = ConstantKernel(1.0) * Matern(nu=2.5) + WhiteKernel(noise_level=1e-5)
    gp = GaussianProcessRegressor(kernel=kernel, normalize_y=True, random_state=seed)

    for _ in range(n_iter):
        if not remaining:
            break
        ys = np.asarray(y)
        ok = np.isfinite(ys)
        if ok.sum() < 2:
            # EN: not enough feasible points for a surrogate; explore at random.
            # JP: サロゲートに十分な点がないのでランダムに探索。
            evaluate(remaining[0])
            continue
        gp.fit(lattice[np.asarray(visited)[ok]], ys[ok])
        cand = lattice[remaining]
        mu, std = gp.predict(cand, return_std=True)
        ei = _expected_improvement(mu, std, best=float(ys[ok].min()), xi=xi)
        evaluate(remaining[int(np.argmax(ei))])

    ys = np.asarray(y)
    best = int(np.argmin(np.where(np.isfinite(ys), ys, np.inf)))
    return {
        "x_best": lattice[visited[best]].astype(int).tolist(),
        "y_best": float(ys[best]),
        "X": lattice[visited].astype(int).tolist(),
        "y": ys.tolist(),
    }
