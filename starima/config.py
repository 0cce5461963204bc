"""Central configuration dataclasses.

English:
    Keep fitting / evaluation / order-search settings in one place.

日本語:
    推定・評価・次数探索の設定を一箇所で管理します。
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class FitConfig:
    """Iterative least-squares settings.

    EN:
        max_iterations: hard cap on refinement passes (always respected).
        convergence_tolerance: stop when ||e_new - e_old|| / ||e_old|| falls below.
        singular_rcond: design is rank-deficient if s_min / s_max <= this.
    JP:
        max_iterations: 反復回数の上限（必ず守られる）。
        convergence_tolerance: 残差の相対変化がこの値未満で停止。
        singular_rcond: 特異値比 s_min / s_max がこの値以下なら特異とみなす。
    """

    max_iterations: int = 50
    convergence_tolerance: float = 1e-6
    singular_rcond: float = 1e-10


@dataclass(frozen=True)
class BacktestConfig:
    """Rolling-origin evaluation settings (steps are months)."""

    horizon: int = 12      # forecast horizon in steps
    step: int = 12         # move the origin by this many steps
    min_train: int = 60    # minimum training length


@dataclass(frozen=True)
class OrderSearchSpace:
    # EN: small integer ranges; STARIMA designs grow as (p + q) * (k + 1) columns.
    # JP: 探索範囲は小さめ（列数は (p + q) * (k + 1) で増える）。
    p_max: int = 3
    q_max: int = 2
    d_values: Tuple[int, ...] = (0, 12)
    score: str = "final"  # "final" or "mean" of the NRMSE trace
    allow_white_noise: bool = False  # include (0, d, 0)


@dataclass(frozen=True)
class BOConfig:
    """Bayesian optimization settings."""

    n_init: int = 4
    n_iter: int = 8
    random_seed: int = 42
    exploration: float = 0.01
