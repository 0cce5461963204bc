"""Test configuration.

English:
    Allow running `pytest` without installing the package, and provide
    small synthetic panels shared by the tests.

日本語:
    パッケージをインストールしなくても `pytest` が動くように
    import path を調整し、テスト用の合成データを提供します。
"""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Repo root contains the `starima/` package directory.
ROOT = Path(__file__).resolve().parents[1]

# EN: Add the parent dir so `import starima` works.
# JP: `import starima` が通るように親ディレクトリを追加。
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def simulate_ar1(n_steps: int, start, phi: float, sigma: float, seed: int) -> np.ndarray:
    """z_t = phi * z_{t-1} + N(0, sigma^2) per location, starting from ``start``."""
    rng = np.random.default_rng(seed)
    start = np.asarray(start, dtype=float)
    z = np.empty((n_steps, start.size))
    z[0] = start
    for t in range(1, n_steps):
        z[t] = phi * z[t - 1] + rng.normal(0.0, sigma, size=start.size)
    return z


def as_panel(values: np.ndarray, names=None) -> pd.DataFrame:
    names = names or [f"borough_{i}" for i in range(values.shape[1])]
    idx = pd.date_range("2000-01-01", periods=values.shape[0], freq="MS")
    return pd.DataFrame(values, index=idx, columns=names)


def path_adjacency(n: int) -> np.ndarray:
    adj = np.zeros((n, n))
    for i in range(n - 1):
        adj[i, i + 1] = adj[i + 1, i] = 1.0
    return adj


@pytest.fixture
def ar1_panel() -> pd.DataFrame:
    # EN: 3 boroughs x 36 months, decaying AR(1) signal plus small noise.
    # JP: 3地点 x 36か月、減衰するAR(1)信号と小さなノイズ。
    return as_panel(simulate_ar1(36, [10.0, -8.0, 6.0], phi=0.7, sigma=0.2, seed=7))


@pytest.fixture
def noisy_panel() -> pd.DataFrame:
    rng = np.random.default_rng(3)
    return as_panel(simulate_ar1(120, rng.normal(size=5), phi=0.5, sigma=1.0, seed=11))
