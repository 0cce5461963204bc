#!/usr/bin/env python3
"""STARIMA order selection.

Example:
  python scripts/search_orders.py --csv data/borough_tasmax.csv --adjacency data/adjacency.csv \
      --method bayes --out artifacts/starima_orders.json
"""

from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from pathlib import Path

# EN: Allow running as a script without install.
# JP: インストール前でも実行できるようにパスを追加。
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from starima.config import BOConfig, OrderSearchSpace
from starima.opt.order_search import bayes_search, grid_search
from fit_starima import load_inputs


def main() -> None:
    p = argparse.ArgumentParser()
    p.add_argument("--csv", required=True)
    p.add_argument("--adjacency", required=True)
    p.add_argument("--max-order", type=int, default=1)
    p.add_argument("--method", choices=["grid", "bayes"], default="grid")
    p.add_argument("--p-max", type=int, default=3)
    p.add_argument("--q-max", type=int, default=2)
    p.add_argument("--score", choices=["final", "mean"], default="final")
    p.add_argument("--out", default="artifacts/starima_orders.json")
    args = p.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    Z, weights = load_inputs(args.csv, args.adjacency, args.max_order)
    space = OrderSearchSpace(p_max=args.p_max, q_max=args.q_max, score=args.score)

    if args.method == "grid":
        table = grid_search(Z, weights, space)
        best = table.iloc[0]
        serializable = {
            "best_order": [int(best["p"]), int(best["d"]), int(best["q"])],
            "best_score": float(best["score"]),
            "candidates": table.to_dict(orient="records"),
        }
    else:
        result = bayes_search(Z, weights, space, BOConfig())
        serializable = {
            "best_order": list(result["best_spec"].order),
            "best_score": result["best_score"],
            "candidates": result["trace"].to_dict(orient="records"),
        }

    os.makedirs(os.path.dirname(args.out) or ".", exist_ok=True)
    with open(args.out, "w", encoding="utf-8") as f:
        json.dump(serializable, f, indent=2, default=str)

    print(f"Saved: {args.out}")
    print("Best:", serializable["best_order"], serializable["best_score"])


if __name__ == "__main__":
    main()
