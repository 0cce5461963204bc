"""Error and warning types.

English:
    Fatal problems are raised immediately and never return a partial result.
    Non-convergence of the refinement loop is only a warning: the last iterate
    is still returned with ``converged=False``.

日本語:
    致命的なエラーは即座に送出し、部分的な結果は返しません。
    反復推定が収束しない場合は警告のみで、最後の推定結果を返します。
"""

from __future__ import annotations

import numpy as np
from statsmodels.tools.sm_exceptions import ConvergenceWarning


class StarimaError(Exception):
    """Base class for fatal STARIMA errors."""


class InsufficientDataError(StarimaError, ValueError):
    """Not enough time steps for the requested (p, d, q)."""


class DimensionMismatchError(StarimaError, ValueError):
    """WeightSet shape or location ids disagree with the observations."""


class SingularDesignError(StarimaError, np.linalg.LinAlgError):
    """Rank-deficient design matrix; reduce p/q or the number of spatial lags."""


class NonConvergenceWarning(ConvergenceWarning):
    """Iteration cap reached before the residuals stabilised."""
