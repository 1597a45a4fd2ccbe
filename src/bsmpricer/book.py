"""Batch pricing of a book of option quotes.

Each row carries the contract terms and either a volatility (``sigma``,
priced forward) or a discounted market price (``price``, implied vol
backed out).

Input CSV format
----------------
    id,kind,S0,K,T,r,q,sigma,price
    1,call,100,110,0.0548,0.05,0.05,0.2,
    2,put,100,110,0.0548,0.05,0.05,,10.0103

JSON input is a list of objects with the same keys.

Output
------
    CSV or JSON with columns: id, price, implied_vol[, <greeks>][, error]
"""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

from .black_scholes import OptionInputs, greeks
from .core import parse_kind

logger = logging.getLogger(__name__)

__all__ = ["price_row", "price_book", "read_rows", "write_results"]


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    return float(value)


def price_row(row: Mapping[str, Any], *, compute_greeks: bool = False) -> dict:
    """Price a single quote and return the result dict.

    Raises ``ValueError``/``KeyError`` for malformed rows and
    ``ImpliedVolatilityError`` when a quoted price has no implied vol.
    """
    rid = row.get("id", "")
    is_call = parse_kind(row["kind"])
    S0 = float(row["S0"])
    K = float(row["K"])
    T = float(row["T"])
    r = float(row["r"])
    q = _optional_float(row.get("q")) or 0.0
    sigma = _optional_float(row.get("sigma"))
    quoted = _optional_float(row.get("price"))

    opt = OptionInputs(is_call, S0, K, r, q, T)
    if sigma is not None:
        opt.with_implied_vol(sigma)
    elif quoted is not None:
        opt.with_price(quoted, strict=True)
    else:
        raise ValueError("row needs either 'sigma' or 'price'")

    result = {"id": rid, "price": opt.price, "implied_vol": opt.implied_vol}
    if compute_greeks:
        result.update(greeks(opt))
    return result


def price_book(rows: Iterable[Mapping[str, Any]], *, compute_greeks: bool = False) -> list[dict]:
    """Price every row; a failing row becomes ``{"id", "price": None, "error"}``."""
    results = []
    for i, row in enumerate(rows):
        try:
            results.append(price_row(row, compute_greeks=compute_greeks))
        except (KeyError, TypeError, ValueError) as e:
            rid = row.get("id", "")
            logger.warning("row %d (id=%s): %s", i, rid or "?", e)
            results.append({"id": rid, "price": None, "implied_vol": None,
                            "error": str(e)})
    return results


def read_rows(path: str | Path) -> list[dict]:
    path = Path(path)
    if path.suffix == ".json":
        with open(path) as f:
            rows = json.load(f)
        if not isinstance(rows, list):
            raise ValueError(f"{path}: expected a JSON list of quotes")
        return rows
    with open(path, newline="") as f:
        return list(csv.DictReader(f))


def write_results(results: list[dict], path: str | Path) -> None:
    """Write to JSON or CSV depending on the suffix of ``path``."""
    path = Path(path)
    if path.suffix == ".json":
        with open(path, "w") as f:
            json.dump(results, f, indent=2, default=str)
        return

    fieldnames: list[str] = []
    for r in results:
        for k in r:
            if k not in fieldnames:
                fieldnames.append(k)
    with open(path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)
