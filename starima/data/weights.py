"""Spatial weight sets.

English:
    A WeightSet holds one N x N matrix per spatial lag order 1..k. Order 0 is
    the identity (self influence) and is never stored. Entry (i, j) of order l
    is the influence of location j on location i, so a spatial lag of the
    vector z_t is ``W_l @ z_t``.

    Higher-order contiguity is derived from a first-order adjacency matrix
    with libpysal (k-th order = neighbours at shortest-path distance exactly k).

日本語:
    WeightSetは空間ラグ次数1..kごとのN×N重み行列を保持します。
    次数0は単位行列（自分自身）で、明示的には保存しません。
    高次の隣接はlibpysalで1次隣接行列から作成します。
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np
from libpysal.weights import W, full2W, higher_order

from ..errors import DimensionMismatchError


def _row_standardize(m: np.ndarray) -> np.ndarray:
    rs = m.sum(axis=1, keepdims=True)
    rs = np.where(rs == 0, 1.0, rs)
    return m / rs


class WeightSet:
    """Spatial weight matrices keyed by spatial lag order."""

    def __init__(self, matrices: Sequence[np.ndarray] = (), ids: Optional[Sequence] = None, n_locations: Optional[int] = None):
        mats = [np.array(m, dtype=float) for m in matrices]
        if mats:
            n = mats[0].shape[0] if mats[0].ndim == 2 else -1
        elif ids is not None:
            n = len(ids)
        elif n_locations is not None:
            n = int(n_locations)
        else:
            raise ValueError("WeightSet needs matrices, ids or n_locations")

        for order, m in enumerate(mats, start=1):
            if m.ndim != 2 or m.shape != (n, n):
                raise DimensionMismatchError(
                    f"weight matrix of order {order} has shape {m.shape}, expected ({n}, {n})"
                )
            if np.any(m < 0) or not np.all(np.isfinite(m)):
                raise ValueError(f"weight matrix of order {order} must be finite and non-negative")
        if ids is not None and len(ids) != n:
            raise DimensionMismatchError(f"{len(ids)} ids for {n} locations")

        self._matrices: List[np.ndarray] = mats
        for m in self._matrices:
            m.setflags(write=False)
        self.ids = None if ids is None else [str(i) for i in ids]
        self.n_locations = n

    @classmethod
    def identity(cls, n_locations: int, ids: Optional[Sequence] = None) -> "WeightSet":
        """No spatial structure: only the implicit order-0 identity."""
        return cls((), ids=ids, n_locations=n_locations)

    @classmethod
    def from_adjacency(
        cls,
        adjacency: np.ndarray,
        max_order: int = 1,
        ids: Optional[Sequence] = None,
        row_standardize: bool = True,
    ) -> "WeightSet":
        """Build orders 1..max_order from a first-order contiguity matrix."""
        adj = (np.asarray(adjacency, dtype=float) > 0).astype(float)
        if adj.ndim != 2 or adj.shape[0] != adj.shape[1]:
            raise DimensionMismatchError(f"adjacency must be square, got {adj.shape}")
        if max_order < 1:
            raise ValueError("max_order must be >= 1")
        np.fill_diagonal(adj, 0.0)
        labels = [str(i) for i in ids] if ids is not None else [str(i) for i in range(adj.shape[0])]

        w1 = full2W(adj, ids=labels)
        mats = [adj]
        for k in range(2, max_order + 1):
            wk = higher_order(w1, k=k, silence_warnings=True)
            mats.append(_dense(wk, labels))
        if row_standardize:
            mats = [_row_standardize(m) for m in mats]
        return cls(mats, ids=ids)

    @property
    def max_order(self) -> int:
        return len(self._matrices)

    @property
    def n_spatial_lags(self) -> int:
        """Number of spatial lag orders including order 0."""
        return len(self._matrices) + 1

    def matrix(self, order: int) -> np.ndarray:
        if order == 0:
            return np.eye(self.n_locations)
        if not 1 <= order <= self.max_order:
            raise IndexError(f"spatial order {order} not in 0..{self.max_order}")
        return self._matrices[order - 1]

    def matrices(self) -> List[np.ndarray]:
        """All matrices for orders 0..k (identity first)."""
        return [self.matrix(l) for l in range(self.n_spatial_lags)]

    def check(self, columns: Sequence) -> None:
        """Raise DimensionMismatchError if this set does not fit the locations."""
        columns = [str(c) for c in columns]
        if len(columns) != self.n_locations:
            raise DimensionMismatchError(
                f"WeightSet is {self.n_locations}x{self.n_locations} but observations have {len(columns)} locations"
            )
        if self.ids is not None and list(self.ids) != columns:
            raise DimensionMismatchError("WeightSet location order differs from ObservationMatrix columns")

    def to_libpysal(self, order: int = 1) -> W:
        """libpysal W for a spatial order (for esda statistics)."""
        if order < 1:
            raise ValueError("order 0 has no neighbours")
        labels = self.ids if self.ids is not None else [str(i) for i in range(self.n_locations)]
        return full2W(np.array(self.matrix(order)), ids=labels)

    def __repr__(self) -> str:
        return f"WeightSet(n_locations={self.n_locations}, max_order={self.max_order})"


def _dense(w: W, labels: List[str]) -> np.ndarray:
    # EN: libpysal may reorder ids; align back to the requested order.
    # JP: libpysalのid順序を元の順序に戻します。
    arr, arr_ids = w.full()
    pos = [list(arr_ids).index(i) for i in labels]
    return (np.asarray(arr)[np.ix_(pos, pos)] > 0).astype(float)
