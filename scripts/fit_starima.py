#!/usr/bin/env python3
"""Fit a STARIMA model and forecast a hold-out period.

This script demonstrates how to:
  - load a long CSV (datetime, location, value) of borough monthly tasmax
  - build the ObservationMatrix and a WeightSet from an adjacency CSV
  - fit STARIMA(p, d, q) on the training months and forecast the test months

Example:
  python scripts/fit_starima.py --csv data/borough_tasmax.csv --adjacency data/adjacency.csv \
      --p 1 --d 12 --q 1 --max-order 2 --test-months 24
"""

from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from pathlib import Path
import pandas as pd

# EN: Allow `python scripts/...` without requiring `pip install -e .` first.
# JP: `pip install -e .` 前でも `python scripts/...` が動くようにパスを追加。
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from starima.config import FitConfig
from starima.data.preprocess import to_observation_matrix, train_test_split
from starima.data.weights import WeightSet
from starima.eval.diagnostics import ljung_box
from starima.models.baselines import predict_seasonal_naive
from starima.models.forecast import forecast
from starima.models.starima import StarimaSpec, fit


def load_inputs(csv: str, adjacency: str, max_order: int):
    df = pd.read_csv(csv)
    df["datetime"] = pd.to_datetime(df["datetime"])
    Z = to_observation_matrix(df)

    adj = pd.read_csv(adjacency, index_col=0)
    adj.index = adj.index.astype(str)
    adj.columns = adj.columns.astype(str)
    adj = adj.loc[list(Z.columns), list(Z.columns)]
    weights = WeightSet.from_adjacency(adj.to_numpy(), max_order=max_order, ids=list(Z.columns))
    return Z, weights


def main() -> None:
    p = argparse.ArgumentParser()
    p.add_argument("--csv", required=True)
    p.add_argument("--adjacency", required=True)
    p.add_argument("--p", type=int, default=1)
    p.add_argument("--d", type=int, default=12)
    p.add_argument("--q", type=int, default=0)
    p.add_argument("--max-order", type=int, default=1)
    p.add_argument("--test-months", type=int, default=24)
    p.add_argument("--max-iterations", type=int, default=50)
    p.add_argument("--tol", type=float, default=1e-6)
    p.add_argument("--out", default="artifacts/starima_fit.json")
    args = p.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    Z, weights = load_inputs(args.csv, args.adjacency, args.max_order)
    train, _ = train_test_split(Z, args.test_months)

    spec = StarimaSpec(p=args.p, d=args.d, q=args.q, weights=weights)
    model = fit(train, spec, FitConfig(max_iterations=args.max_iterations, convergence_tolerance=args.tol))
    res = forecast(model, Z, history=len(train), horizon=args.test_months)
    naive = predict_seasonal_naive(Z, history=len(train), horizon=args.test_months)

    out = {
        "order": list(spec.order),
        "n_locations": len(Z.columns),
        "train": [str(train.index[0]), str(train.index[-1])],
        "converged": model.converged,
        "n_iter": model.n_iter,
        "coefficients": model.coef_table().to_dict(orient="records"),
        "fit_final_nrmse": model.final_nrmse,
        "fit_mean_nrmse": model.mean_nrmse,
        "test_rmse": res.rmse(),
        "test_nrmse": res.nrmse(),
        "seasonal_naive_rmse": naive.rmse(),
        "rmse_by_location": res.rmse_by_location().to_dict(),
        "ljung_box": ljung_box(model, lags=12).to_dict(orient="index"),
    }

    os.makedirs(os.path.dirname(args.out) or ".", exist_ok=True)
    with open(args.out, "w", encoding="utf-8") as f:
        json.dump(out, f, indent=2, default=str)

    print(f"Saved fit report: {args.out}")
    print("Summary:", {k: out[k] for k in ["order", "converged", "fit_final_nrmse", "test_rmse", "seasonal_naive_rmse"]})


if __name__ == "__main__":
    main()
