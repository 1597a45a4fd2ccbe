#!/usr/bin/env python3
"""Batch-price a book of option quotes.

Usage
-----
    python scripts/price_book.py --input quotes.csv --output prices.csv
    python scripts/price_book.py --input quotes.json --output prices.json --greeks

Rows quote either ``sigma`` (priced forward) or ``price`` (implied vol
backed out); see ``bsmpricer.book`` for the column layout.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from bsmpricer.cli import main


if __name__ == "__main__":
    sys.exit(main(["book", *sys.argv[1:]]))
